"""
Integration tests for the entire Toolflow engine.

This module tests end-to-end functionality across all layers with a small
content pipeline: generate ideas, draft each idea, then write a meta description.
"""

import msgspec
import pytest

from toolflow import (
    ExecutionOptions,
    FanOutMode,
    InvalidInput,
    ToolContext,
    ToolMixin,
    UnknownTool,
    WorkflowStepFailed,
    create,
)


class IdeaGeneratorTool(ToolMixin):
    """Pretends to be a model that answers with chatty JSON."""

    tool_name = "content_idea_generator"
    description = "Generate content ideas for a topic"
    input_schema = {
        "type": "object",
        "properties": {"topic": {"type": "string"}, "keywords": {"type": "string"}},
        "required": ["topic", "keywords"],
    }
    output_schema = {
        "type": "object",
        "properties": {
            "ideas": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"idea": {"type": "string"}, "category": {"type": "string"}},
                    "required": ["idea"],
                },
            }
        },
        "required": ["ideas"],
    }

    def execute(self, context: ToolContext):
        topic = context.tool_args["topic"]
        ideas = [{"idea": f"{topic}: {word}", "category": topic} for word in context.tool_args["keywords"].split(",")]
        payload = msgspec.json.encode({"ideas": ideas}).decode()
        for start in range(0, len(payload), 7):
            yield payload[start : start + 7]


class ContentProductionTool(ToolMixin):
    tool_name = "content_production"
    input_schema = {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "meta": {"type": "object", "properties": {"wordCount": {"type": "integer"}}},
        },
        "required": ["title"],
    }
    output_schema = {
        "type": "object",
        "properties": {"title": {"type": "string"}, "content": {"type": "string"}},
        "required": ["title", "content"],
    }

    def execute(self, context: ToolContext):
        words = context.tool_args.get("meta", {}).get("wordCount", 3)
        return {"title": context.tool_args["title"], "content": " ".join(["word"] * words)}


class MetaDescriptionTool(ToolMixin):
    tool_name = "meta_description_generator"
    input_schema = {
        "type": "object",
        "properties": {"titles": {"type": "array", "items": {"type": "string"}}, "keywords": {"type": "string"}},
    }
    output_schema = {"type": "object", "properties": {"metaDesc": {"type": "string"}}, "required": ["metaDesc"]}

    async def execute(self, context: ToolContext):
        return {"metaDesc": f"{len(context.tool_args['titles'])} posts on {context.tool_args['keywords']}"}


class RecordingProductionTool(ToolMixin):
    tool_name = "content_production"
    input_schema = ContentProductionTool.input_schema
    output_schema = ContentProductionTool.output_schema
    titles: list[str] = []

    def execute(self, context: ToolContext):
        self.titles.append(context.tool_args["title"])
        return {"title": context.tool_args["title"], "content": "c"}


class EchoTool(ToolMixin):
    tool_name = "echo"
    input_schema = {
        "type": "object",
        "properties": {"topic": {"type": "string"}, "keywords": {"type": "string"}},
    }
    output_schema = {"type": "object", "properties": {"ideas": {"type": "array"}}}

    def execute(self, context: ToolContext):
        return {"ideas": []}


def content_workflow():
    return {
        "name": "content_pipeline",
        "description": "Ideas, drafts and a meta description",
        "steps": [
            {
                "toolName": "content_idea_generator",
                "inputMapping": {"topic": "input.topic", "keywords": "input.keywords"},
            },
            {
                "toolName": "content_production",
                "inputMapping": {"title": "output.ideas[$index].idea", "meta": {"wordCount": 2}},
            },
            {
                "toolName": "meta_description_generator",
                "inputMapping": {"titles": "context.step_1.output.title", "keywords": "input.keywords"},
            },
        ],
    }


class TestIntegration:
    """Integration test cases."""

    def setup_method(self):
        self.client = create(tools=[IdeaGeneratorTool, ContentProductionTool, MetaDescriptionTool])

    def test_execute_tool_round_trip(self):
        client = create(tools=[EchoTool])

        assert client.execute_tool("echo", {"topic": "x", "keywords": "y"}) == {"ideas": []}
        with pytest.raises(InvalidInput):
            client.execute_tool("echo", {"topic": 5})

    def test_full_pipeline(self):
        workflow_id = self.client.create_workflow(content_workflow())

        result = self.client.execute_workflow(workflow_id, {"topic": "seo", "keywords": "links,speed"})

        assert result == {"metaDesc": "2 posts on links,speed"}

    def test_fan_out_invokes_tool_per_idea(self):
        RecordingProductionTool.titles = []
        self.client.tool(RecordingProductionTool)
        workflow = content_workflow()
        workflow["steps"] = workflow["steps"][:2]
        workflow_id = self.client.create_workflow(workflow)

        result = self.client.execute_workflow(workflow_id, {"topic": "seo", "keywords": "A,B"})

        assert RecordingProductionTool.titles == ["seo: A", "seo: B"]
        assert result == [{"title": "seo: A", "content": "c"}, {"title": "seo: B", "content": "c"}]

    def test_parallel_pipeline_matches_sequential(self):
        parallel = create(
            tools=[IdeaGeneratorTool, ContentProductionTool, MetaDescriptionTool],
            execution_options=ExecutionOptions(fan_out_mode=FanOutMode.PARALLEL, max_workers=4),
        )
        payload = {"topic": "seo", "keywords": "a,b,c,d,e"}
        workflow = content_workflow()
        workflow["steps"] = workflow["steps"][:2]

        sequential_result = self.client.execute_workflow(self.client.create_workflow(workflow), payload)
        parallel_result = parallel.execute_workflow(parallel.create_workflow(workflow), payload)

        assert parallel_result == sequential_result
        assert [r["title"] for r in parallel_result] == [f"seo: {k}" for k in "abcde"]

    def test_creation_fails_for_unknown_tool(self):
        workflow = content_workflow()
        workflow["steps"].append({"toolName": "publisher", "inputMapping": {}})

        with pytest.raises(UnknownTool):
            self.client.create_workflow(workflow)

        assert self.client.get_workflow_by_name("content_pipeline") is None

    def test_failure_reports_step(self):
        workflow_id = self.client.create_workflow(content_workflow())

        with pytest.raises(WorkflowStepFailed) as exc_info:
            self.client.execute_workflow(workflow_id, {"topic": "seo"})

        assert exc_info.value.index == 0
        assert exc_info.value.tool_name == "content_idea_generator"
        assert isinstance(exc_info.value.cause, InvalidInput)

    def test_repeated_runs_are_identical(self):
        workflow_id = self.client.create_workflow(content_workflow())
        payload = {"topic": "seo", "keywords": "links"}

        assert self.client.execute_workflow(workflow_id, payload) == self.client.execute_workflow(workflow_id, payload)

    def test_workflow_export(self):
        workflow_id = self.client.create_workflow(content_workflow())

        exported = msgspec.json.decode(self.client.get_workflow(workflow_id).to_json())

        assert exported["id"] == workflow_id
        assert exported["steps"][1]["inputMapping"]["title"] == "output.ideas[$index].idea"

    def test_host_messages(self):
        created = self.client.handle({"type": "CREATE_WORKFLOW", "data": content_workflow()})
        response = self.client.handle(
            {
                "type": "EXECUTE_WORKFLOW",
                "data": {"workflowId": created["data"]["workflowId"], "input": {"topic": "seo", "keywords": "x"}},
            }
        )
        failed = self.client.handle(
            {"type": "EXECUTE_WORKFLOW", "data": {"workflowId": created["data"]["workflowId"], "input": {}}}
        )

        assert response == {"status": "success", "data": {"metaDesc": "1 posts on x"}}
        assert failed["status"] == "error"
        assert failed["message"].startswith("Workflow execution failed at step 0")

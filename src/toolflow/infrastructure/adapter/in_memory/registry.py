import copy
import uuid

from toolflow.application.port import IdGenerator, ToolRegistry
from toolflow.domain.entity import Tool, Workflow, WorkflowDefinition
from toolflow.domain.error import InvalidToolDefinition
from toolflow.domain.port import DataSource


class UUIDGenerator(IdGenerator):
    """Generates unique identifiers using UUID."""

    def generate(self) -> str:
        """
        Generate a unique identifier.

        :returns: A unique identifier string
        :rtype: str
        """
        return str(uuid.uuid4())


class InMemoryToolRegistry(ToolRegistry):
    """Keeps tools, workflows and data sources in process memory."""

    def __init__(self, tools: list[Tool] | None = None, id_generator: IdGenerator | None = None):
        """
        Initializes the registry with optional tools.

        :param tools: Tools to register up front
        :type tools: list[Tool] | None
        :param id_generator: Source of workflow identifiers
        :type id_generator: IdGenerator | None
        """
        self._tools: dict[str, Tool] = {}
        self._workflows: dict[str, Workflow] = {}
        self._data_sources: dict[str, DataSource] = {}
        self.id_generator = id_generator if id_generator is not None else UUIDGenerator()
        for tool in tools or []:
            self.register_tool(tool)

    def register_tool(self, tool: Tool) -> None:
        """
        Store a tool under its name; an existing tool with that name is replaced.

        :param tool: The tool to store
        :type tool: Tool
        :raises InvalidToolDefinition: If the tool is structurally malformed
        """
        if not isinstance(tool, Tool):
            raise InvalidToolDefinition(f"expected a Tool, got {type(tool).__name__}")
        if not tool.name or not isinstance(tool.name, str):
            raise InvalidToolDefinition(f"invalid tool name: {tool.name!r}")
        if not isinstance(tool.input_schema, dict) or not isinstance(tool.output_schema, dict):
            raise InvalidToolDefinition(f"schemas of tool {tool.name} must be dicts")
        if not callable(tool.handler):
            raise InvalidToolDefinition(f"handler of tool {tool.name} is not callable")
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def create_workflow(self, definition: WorkflowDefinition) -> str:
        workflow_id = self.id_generator.generate()
        self._workflows[workflow_id] = Workflow(
            id=workflow_id,
            name=definition.name,
            description=definition.description,
            steps=tuple(copy.deepcopy(definition.steps)),
        )
        return workflow_id

    def get_workflow(self, workflow_id: str) -> Workflow | None:
        return self._workflows.get(workflow_id)

    def get_workflow_by_name(self, name: str) -> Workflow | None:
        return next((w for w in self._workflows.values() if w.name == name), None)

    def list_workflows(self) -> list[Workflow]:
        return list(self._workflows.values())

    def register_data_source(self, source: DataSource) -> None:
        self._data_sources[source.name] = source

    def get_data_source(self, name: str) -> DataSource | None:
        return self._data_sources.get(name)

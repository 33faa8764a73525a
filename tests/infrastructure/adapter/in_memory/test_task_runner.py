"""
Tests for the in-memory task runner.
"""

import asyncio
from unittest.mock import Mock

import pytest

from toolflow.domain.entity import ToolContext
from toolflow.infrastructure.adapter.in_memory.task_runner import InMemoryTaskRunner


class Chunk:
    """Stands in for a model message chunk."""

    def __init__(self, content):
        self.content = content


class TestInMemoryTaskRunner:
    """Test cases for InMemoryTaskRunner."""

    def setup_method(self):
        self.runner = InMemoryTaskRunner()
        self.context = ToolContext(tool_name="t", tool_args={"topic": "seo"})

    def test_run_plain_handler(self):
        handler = Mock(return_value={"ok": True})

        result = self.runner.run(handler, self.context)

        handler.assert_called_once_with(self.context)
        assert result == {"ok": True}

    def test_run_coroutine_handler(self):
        async def handler(context):
            return {"topic": context.tool_args["topic"]}

        assert self.runner.run(handler, self.context) == {"topic": "seo"}

    def test_run_generator_handler(self):
        def handler(context):
            yield '{"topic": '
            yield '"seo"}'

        assert self.runner.run(handler, self.context) == '{"topic": "seo"}'

    def test_run_async_generator_handler(self):
        async def handler(context):
            for piece in ("{", '"a": 1', "}"):
                yield piece

        assert self.runner.run(handler, self.context) == '{"a": 1}'

    def test_chunks_with_content(self):
        def handler(context):
            return iter([Chunk("{"), Chunk('"a": 2'), Chunk("}")])

        assert self.runner.run(handler, self.context) == '{"a": 2}'

    def test_coroutine_returning_stream(self):
        async def handler(context):
            return iter(["[1,", "2]"])

        assert self.runner.run(handler, self.context) == "[1,2]"

    def test_lists_are_not_treated_as_streams(self):
        assert self.runner.run(lambda ctx: ["a", "b"], self.context) == ["a", "b"]

    def test_exceptions_propagate(self):
        def handler(context):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            self.runner.run(handler, self.context)

    def test_coroutine_handler_inside_running_loop(self):
        async def handler(context):
            await asyncio.sleep(0)
            return {"topic": context.tool_args["topic"]}

        async def host():
            return self.runner.run(handler, self.context)

        assert asyncio.run(host()) == {"topic": "seo"}

    def test_async_generator_inside_running_loop(self):
        async def handler(context):
            for piece in ("[", "1", "]"):
                yield piece

        async def host():
            return self.runner.run(handler, self.context)

        assert asyncio.run(host()) == "[1]"

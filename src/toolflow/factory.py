from toolflow.client import Client
from toolflow.domain.entity import Tool
from toolflow.domain.port import ToolMixin
from toolflow.domain.value_object import ExecutionOptions
from toolflow.infrastructure.adapter.in_memory.client import create as create_in_memory_client


def create(
    tools: list[Tool | type[ToolMixin]] | None = None,
    execution_options: ExecutionOptions | None = None,
) -> Client:
    """
    Factory function to create a Client, the process's composition root.

    :param tools: Optional tools (or ToolMixin subclasses) to pre-register
    :type tools: list[Tool | type[ToolMixin]] | None
    :param execution_options: Engine options; defaults to ``ExecutionOptions()``
    :type execution_options: ExecutionOptions | None
    :returns: A configured Client instance
    :rtype: Client
    """
    tools = [t.as_tool() if isinstance(t, type) and issubclass(t, ToolMixin) else t for t in tools or []]
    return create_in_memory_client(tools, execution_options)

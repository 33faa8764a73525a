from toolflow.application.adapter import JsonSchemaValidator, MappingResolver, ToolExecutor
from toolflow.application.service import WorkflowManager
from toolflow.client import Client
from toolflow.domain.entity import Tool
from toolflow.domain.value_object import ExecutionOptions
from toolflow.infrastructure.adapter.in_memory.registry import InMemoryToolRegistry
from toolflow.infrastructure.adapter.in_memory.task_runner import InMemoryTaskRunner


def create(tools: list[Tool], execution_options: ExecutionOptions | None = None) -> Client:
    """
    Creates a Client wired to in-memory infrastructure.

    :param tools: Tools to register up front
    :type tools: list[Tool]
    :param execution_options: Engine options; defaults to ``ExecutionOptions()``
    :type execution_options: ExecutionOptions | None
    :returns: Configured Client instance
    :rtype: Client
    """
    options = execution_options if execution_options is not None else ExecutionOptions()
    registry = InMemoryToolRegistry(tools)
    tool_executor = ToolExecutor(
        registry=registry,
        validator=JsonSchemaValidator(),
        task_runner=InMemoryTaskRunner(),
        execution_options=options,
    )
    workflow_manager = WorkflowManager(
        registry=registry,
        tool_executor=tool_executor,
        mapping_resolver=MappingResolver(),
        execution_options=options,
    )
    return Client(
        registry=registry,
        tool_executor=tool_executor,
        workflow_manager=workflow_manager,
        execution_options=options,
    )

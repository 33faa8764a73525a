import threading
from collections.abc import Iterator
from typing import Any

from toolflow.application.adapter import ToolExecutor, iter_fragments
from toolflow.application.message import RequestHandler
from toolflow.application.port import ToolRegistry
from toolflow.application.service import WorkflowManager
from toolflow.domain.entity import Tool, Workflow, WorkflowDefinition
from toolflow.domain.port import DataSource, ToolMixin
from toolflow.domain.value_object import ExecutionOptions


class Client:
    """
    Unified client façade over the tool registry, executor and workflow manager.

    The Client is what a host process interacts with. It is built by a
    composition root (see :func:`toolflow.factory.create`) and owns no global
    state: two clients never share tools or workflows.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        tool_executor: ToolExecutor,
        workflow_manager: WorkflowManager,
        execution_options: ExecutionOptions | None = None,
    ):
        """
        Initialize the client with its collaborators.

        :param registry: Catalog of tools, workflows and data sources
        :type registry: ToolRegistry
        :param tool_executor: Validating tool executor
        :type tool_executor: ToolExecutor
        :param workflow_manager: Workflow creation and execution
        :type workflow_manager: WorkflowManager
        :param execution_options: Options shared with the executor and manager
        :type execution_options: ExecutionOptions | None
        """
        self._registry = registry
        self._executor = tool_executor
        self._manager = workflow_manager
        self._options = execution_options if execution_options is not None else ExecutionOptions()
        self._requests = RequestHandler(tool_executor, workflow_manager)

    def tool(self, tool: Tool | type[ToolMixin]) -> "Client":
        """
        Register a tool, replacing any tool with the same name.

        :param tool: A Tool or a ToolMixin subclass
        :type tool: Tool | type[ToolMixin]
        :returns: The client, for chaining
        :rtype: Client
        """
        if isinstance(tool, type) and issubclass(tool, ToolMixin):
            tool = tool.as_tool()
        self._registry.register_tool(tool)
        return self

    register_tool = tool

    def get_tool(self, name: str) -> Tool | None:
        return self._registry.get_tool(name)

    def data_source(self, source: DataSource) -> "Client":
        self._registry.register_data_source(source)
        return self

    def get_data_source(self, name: str) -> DataSource | None:
        return self._registry.get_data_source(name)

    def create_workflow(self, definition: dict | WorkflowDefinition) -> str:
        """
        Validate and store a workflow.

        :param definition: The workflow definition (dicts use ``toolName``/``inputMapping`` keys)
        :type definition: dict | WorkflowDefinition
        :returns: The new workflow identifier
        :rtype: str
        """
        return self._manager.create_workflow(definition)

    def get_workflow(self, workflow_id: str) -> Workflow | None:
        return self._registry.get_workflow(workflow_id)

    def get_workflow_by_name(self, name: str) -> Workflow | None:
        return self._registry.get_workflow_by_name(name)

    def list_workflows(self) -> list[Workflow]:
        return self._registry.list_workflows()

    def execute_tool(self, name: str, payload: Any) -> Any:
        """
        Run one tool with validated input and output.

        :param name: The tool name
        :type name: str
        :param payload: The tool input
        :type payload: Any
        :returns: The validated output
        :rtype: Any
        """
        return self._executor.execute_tool(name, payload)

    def stream_tool(self, name: str, payload: Any) -> Iterator[str]:
        """Run one tool now and return its output as a single-pass stream of JSON fragments."""
        result = self._executor.execute_tool(name, payload)
        return iter_fragments(result, self._options.stream_chunk_size)

    def execute_workflow(
        self,
        workflow_id: str,
        payload: Any,
        cancel_event: threading.Event | None = None,
    ) -> Any:
        """
        Run a stored workflow.

        :param workflow_id: The workflow identifier
        :type workflow_id: str
        :param payload: The workflow's initial input
        :type payload: Any
        :param cancel_event: Optional token checked before each step
        :type cancel_event: threading.Event | None
        :returns: The final step's output
        :rtype: Any
        """
        return self._manager.execute_workflow(workflow_id, payload, cancel_event)

    def stream_workflow(
        self,
        workflow_id: str,
        payload: Any,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[str]:
        return self._manager.stream_workflow(workflow_id, payload, cancel_event)

    def handle(self, message: dict | bytes | str) -> dict[str, Any] | Iterator[dict[str, Any]]:
        """
        Dispatch a host request message.

        :param message: ``{"type": ..., "data": ...}`` or its JSON encoding
        :type message: dict | bytes | str
        :returns: A success or error response, or stream chunk messages for a streamed tool call
        :rtype: dict[str, Any] | Iterator[dict[str, Any]]
        """
        return self._requests.handle(message)

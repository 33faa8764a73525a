"""Transport-agnostic dispatch of host requests.

A host receives messages shaped ``{"type": ..., "data": {...}}`` over whatever
transport it owns, hands them to :class:`RequestHandler`, and sends back the
returned response. Failures come back with an explicit ``error`` status and
never as a successful response carrying partial data.
"""

import logging
from collections.abc import Iterator
from typing import Any, Callable, Literal

import msgspec

from toolflow.application.adapter import ToolExecutor, iter_fragments
from toolflow.application.service import WorkflowManager


logger = logging.getLogger(__name__)


class Message(msgspec.Struct):
    type: str
    data: Any = None


class ExecuteToolRequest(msgspec.Struct, rename="camel"):
    tool_name: str
    input: Any = None
    stream: bool = False


class ExecuteWorkflowRequest(msgspec.Struct, rename="camel"):
    workflow_id: str
    input: Any = None


class SuccessResponse(msgspec.Struct):
    data: Any
    status: Literal["success"] = "success"


class ErrorResponse(msgspec.Struct):
    message: str
    status: Literal["error"] = "error"


class StreamChunk(msgspec.Struct):
    """One fragment of a streamed result; concatenated ``data`` is the JSON encoding."""

    data: str
    type: Literal["STREAM_CHUNK"] = "STREAM_CHUNK"
    status: Literal["success"] = "success"


class RequestHandler:
    """Routes EXECUTE_TOOL, CREATE_WORKFLOW and EXECUTE_WORKFLOW messages to the engine."""

    def __init__(self, tool_executor: ToolExecutor, workflow_manager: WorkflowManager):
        self.tool_executor = tool_executor
        self.workflow_manager = workflow_manager
        self._handlers: dict[str, Callable[[Any], Any]] = {
            "EXECUTE_TOOL": self._execute_tool,
            "CREATE_WORKFLOW": self._create_workflow,
            "EXECUTE_WORKFLOW": self._execute_workflow,
        }

    def handle(self, message: dict | bytes | str) -> dict[str, Any] | Iterator[dict[str, Any]]:
        """
        Handle one request message.

        An ``EXECUTE_TOOL`` request with ``stream`` set runs the tool first and
        then answers with a single-pass iterator of ``STREAM_CHUNK`` messages.
        Failures are always reported as one error response.

        :param message: A decoded message or its JSON encoding
        :type message: dict | bytes | str
        :returns: ``{"status": "success", "data": ...}``, ``{"status": "error", "message": ...}``
            or an iterator of stream chunk messages
        :rtype: dict[str, Any] | Iterator[dict[str, Any]]
        """
        try:
            if isinstance(message, (bytes, str)):
                envelope = msgspec.json.decode(message, type=Message)
            else:
                envelope = msgspec.convert(message, type=Message)
            handler = self._handlers.get(envelope.type)
            if handler is None:
                return msgspec.to_builtins(ErrorResponse(message="Unsupported message type"))
            result = handler(envelope.data)
            if isinstance(result, Iterator):
                return result
            return msgspec.to_builtins(SuccessResponse(data=result))
        except Exception as e:
            logger.error("Request handling error: %s", e)
            return msgspec.to_builtins(ErrorResponse(message=str(e)))

    def _execute_tool(self, data: Any) -> Any:
        request = msgspec.convert(data, type=ExecuteToolRequest)
        result = self.tool_executor.execute_tool(request.tool_name, request.input)
        if request.stream:
            return self._stream_chunks(result)
        return result

    def _stream_chunks(self, result: Any) -> Iterator[dict[str, Any]]:
        chunk_size = self.tool_executor.execution_options.stream_chunk_size
        for fragment in iter_fragments(result, chunk_size):
            yield msgspec.to_builtins(StreamChunk(data=fragment))

    def _create_workflow(self, data: Any) -> dict[str, str]:
        return {"workflowId": self.workflow_manager.create_workflow(data)}

    def _execute_workflow(self, data: Any) -> Any:
        request = msgspec.convert(data, type=ExecuteWorkflowRequest)
        return self.workflow_manager.execute_workflow(request.workflow_id, request.input)

from typing import Any

from toolflow.domain.value_object import Violation


class ToolflowError(Exception):
    """Base class for every error raised by the engine."""


class ToolNotFound(ToolflowError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool {name} not found")


class InvalidInput(ToolflowError):
    def __init__(self, name: str, violations: list[Violation]):
        self.name = name
        self.violations = violations
        details = "; ".join(str(v) for v in violations)
        super().__init__(f"Invalid input for tool {name}: {details}")


class InvalidOutput(ToolflowError):
    def __init__(self, name: str, violations: list[Violation]):
        self.name = name
        self.violations = violations
        details = "; ".join(str(v) for v in violations)
        super().__init__(f"Invalid output from tool {name}: {details}")


class ToolTimeout(ToolflowError):
    def __init__(self, name: str, timeout: float):
        self.name = name
        self.timeout = timeout
        super().__init__(f"Tool {name} did not finish within {timeout}s")


class InvalidToolDefinition(ToolflowError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid tool definition: {reason}")


class UnknownTool(ToolflowError):
    def __init__(self, tool_name: str, step_index: int | None = None):
        self.tool_name = tool_name
        self.step_index = step_index
        super().__init__(f"Tool {tool_name} not found in registry")


class InvalidMapping(ToolflowError):
    def __init__(self, tool_name: str, field: str):
        self.tool_name = tool_name
        self.field = field
        super().__init__(f"Invalid input mapping: {field} not found in tool {tool_name}")


class PathResolutionFailed(ToolflowError):
    def __init__(self, segment: str):
        self.segment = segment
        super().__init__(f"Path resolution failed at {segment}")


class ExpectedArray(ToolflowError):
    def __init__(self, base_path: str, found: Any = None):
        self.base_path = base_path
        self.found = found
        super().__init__(f"Expected an array at path {base_path}")


class WorkflowNotFound(ToolflowError):
    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow {workflow_id} not found")


class WorkflowCancelled(ToolflowError):
    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Workflow cancelled before step {index}")


class WorkflowStepFailed(ToolflowError):
    """Raised when any step of a running workflow fails.

    :param index: Zero-based position of the failing step
    :param tool_name: The tool the step invoked
    :param cause: The underlying exception
    """

    def __init__(self, index: int, tool_name: str, cause: BaseException):
        self.index = index
        self.tool_name = tool_name
        self.cause = cause
        super().__init__(f"Workflow execution failed at step {index} ({tool_name}): {cause}")

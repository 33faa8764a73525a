from abc import ABC, abstractmethod
from typing import Any, Callable

from toolflow.domain.entity import Step, Tool, ToolContext, Workflow, WorkflowDefinition
from toolflow.domain.port import DataSource
from toolflow.domain.value_object import Violation


class ToolRegistry(ABC):
    """Abstract catalog of tools, workflows and data sources.

    Lookups return None for unknown keys; callers decide whether absence is fatal.
    """

    @abstractmethod
    def register_tool(self, tool: Tool) -> None:
        """
        Store a tool under its name, replacing any tool already registered with that name.

        :param tool: The tool to store
        :type tool: Tool
        """

    @abstractmethod
    def get_tool(self, name: str) -> Tool | None:
        """
        Look up a tool by name.

        :param name: The tool name
        :type name: str
        :returns: The tool, or None if not registered
        :rtype: Tool | None
        """

    @abstractmethod
    def create_workflow(self, definition: WorkflowDefinition) -> str:
        """
        Store an immutable copy of a workflow under a freshly generated identifier.

        :param definition: The workflow to store
        :type definition: WorkflowDefinition
        :returns: The new workflow identifier
        :rtype: str
        """

    @abstractmethod
    def get_workflow(self, workflow_id: str) -> Workflow | None:
        """
        Look up a workflow by identifier.

        :param workflow_id: The workflow identifier
        :type workflow_id: str
        :returns: The workflow, or None if unknown
        :rtype: Workflow | None
        """

    @abstractmethod
    def get_workflow_by_name(self, name: str) -> Workflow | None:
        """
        Look up the first workflow created with the given name.

        :param name: The workflow name
        :type name: str
        :returns: The earliest matching workflow, or None
        :rtype: Workflow | None
        """

    @abstractmethod
    def list_workflows(self) -> list[Workflow]:
        """
        Get all stored workflows in creation order.

        :returns: List of workflows
        :rtype: list[Workflow]
        """

    @abstractmethod
    def register_data_source(self, source: DataSource) -> None:
        """
        Store a data source under its name.

        :param source: The data source to store
        :type source: DataSource
        """

    @abstractmethod
    def get_data_source(self, name: str) -> DataSource | None:
        """
        Look up a data source by name.

        :param name: The data source name
        :type name: str
        :returns: The data source, or None
        :rtype: DataSource | None
        """


class SchemaValidator(ABC):
    """Abstract interface for validating JSON-like values against a declared schema."""

    @abstractmethod
    def validate(self, value: Any, schema: dict[str, Any]) -> list[Violation]:
        """
        Validate a value.

        :param value: The value to check
        :type value: Any
        :param schema: The schema to check against
        :type schema: dict[str, Any]
        :returns: Every violation found; empty when the value is valid
        :rtype: list[Violation]
        """


class TaskRunner(ABC):
    """Abstract interface for running tool handlers."""

    @abstractmethod
    def run(self, handler: Callable[[ToolContext], Any], context: ToolContext) -> Any:
        """
        Run a handler with its invocation context.

        :param handler: The tool handler
        :type handler: Callable[[ToolContext], Any]
        :param context: The invocation context
        :type context: ToolContext
        :returns: Whatever the handler produced, fully materialized
        :rtype: Any
        """


class IdGenerator(ABC):
    @abstractmethod
    def generate(self) -> str: ...


class FanOutStrategy(ABC):
    """Abstract strategy for running one step once per array element."""

    @abstractmethod
    def execute(self, step: Step, size: int, run_element: Callable[[int], Any]) -> list[Any]:
        """
        Run ``run_element`` for every position in ``range(size)``.

        :param step: The fanning-out step
        :type step: Step
        :param size: Number of array elements
        :type size: int
        :param run_element: Runs the step for one element position
        :type run_element: Callable[[int], Any]
        :returns: Per-element results in array order
        :rtype: list[Any]
        :raises Exception: The failure of the lowest failing element position
        """

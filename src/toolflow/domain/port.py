from abc import ABC, abstractmethod
from typing import Any

from toolflow.domain.entity import Tool, ToolContext


class ToolMixin:
    """Base class for class-based tools. Enforces an 'execute' method.

    Subclasses declare ``tool_name``, ``description``, ``input_schema`` and
    ``output_schema`` as class attributes. Unlike a plugin base, subclasses
    are not collected anywhere; register them explicitly with a registry.
    """

    tool_name: str | None = None
    description: str = ""
    input_schema: dict[str, Any] = {"type": "object"}
    output_schema: dict[str, Any] = {}

    def __init_subclass__(cls, **kwargs):
        """
        Ensures the subclass defines an 'execute' method.

        :raises TypeError: If the subclass doesn't define an 'execute' method
        """
        super().__init_subclass__(**kwargs)

        if "execute" not in cls.__dict__:
            raise TypeError(f"{cls.__name__} must define a 'execute' method")

    def execute(self, context: ToolContext) -> Any:
        """
        Run the tool against validated arguments.

        :param context: Invocation context carrying the validated ``tool_args``
        :type context: ToolContext
        :returns: A JSON-like value, a JSON text, or a stream of text fragments
        :raises NotImplementedError: Must be implemented by subclasses
        """
        raise NotImplementedError("Tools must implement the execute method")

    @classmethod
    def as_tool(cls) -> Tool:
        """
        Build a registrable Tool from the class declaration.

        :returns: Tool bound to a fresh instance's ``execute``
        :rtype: Tool
        """
        return Tool(
            name=cls.tool_name or cls.__name__,
            description=cls.description,
            input_schema=cls.input_schema,
            output_schema=cls.output_schema,
            handler=cls().execute,
        )


class DataSource(ABC):
    """An external data source tools may query through the registry."""

    name: str

    @abstractmethod
    def connect(self) -> None: ...

    @abstractmethod
    def disconnect(self) -> None: ...

    @abstractmethod
    def query(self, params: Any) -> Any: ...

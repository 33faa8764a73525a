from typing import Any, Callable

import msgspec

from toolflow.domain.value_object import FanOutMode


class ToolContext(msgspec.Struct, frozen=True, kw_only=True):
    """What a tool handler receives: the validated arguments plus tool metadata.

    A fresh context is built for every invocation, so handlers never observe
    arguments from a previous call. ``get_data_source`` looks up a data source
    registered next to the tool, returning None for unknown names.
    """

    tool_name: str
    description: str = ""
    tool_args: dict[str, Any]
    get_data_source: Callable[[str], Any] | None = None


class Tool(msgspec.Struct, frozen=True, kw_only=True):
    """A named unit of work with declared input and output JSON schemas."""

    name: str
    input_schema: dict[str, Any]
    output_schema: dict[str, Any]
    handler: Callable[[ToolContext], Any]
    description: str = ""

    def input_properties(self) -> dict[str, Any]:
        """Returns the properties declared by the input schema."""
        properties = self.input_schema.get("properties")
        return properties if isinstance(properties, dict) else {}


class Step(msgspec.Struct, frozen=True, kw_only=True, rename="camel", forbid_unknown_fields=True):
    """One workflow stage: a tool reference plus a mapping from its input fields to path expressions.

    Mapping values are either path expressions (``input.``, ``output.`` or
    ``context.`` prefixed strings, optionally containing ``$index``) or
    literal values copied as-is.
    """

    tool_name: str
    input_mapping: dict[str, Any] = {}
    mode: FanOutMode | None = None


class WorkflowDefinition(msgspec.Struct, frozen=True, kw_only=True, forbid_unknown_fields=True):
    """A workflow as supplied by a caller, before an id is assigned."""

    name: str
    description: str = ""
    steps: list[Step] = []


class Workflow(msgspec.Struct, frozen=True, kw_only=True):
    """A stored, immutable workflow."""

    id: str
    name: str
    description: str
    steps: tuple[Step, ...]

    def to_dict(self) -> dict[str, Any]:
        """Convert the workflow to plain builtins (camelCase step keys)."""
        data = msgspec.to_builtins(self)
        data["steps"] = list(data["steps"])
        return data

    def to_json(self) -> str:
        """Convert the workflow to a JSON string."""
        return msgspec.json.encode(self).decode()

    def to_yaml(self) -> str:
        """Convert the workflow to a YAML string."""
        return msgspec.yaml.encode(self).decode()


class ExecutionState(msgspec.Struct, frozen=True):
    """The value threaded through the step loop.

    ``input`` is the accumulated input visible to later steps, ``output`` is
    whatever the most recent step produced.
    """

    input: Any
    output: Any = None


class StepRecord(msgspec.Struct, frozen=True):
    """What one executed step received and produced.

    Records are kept per run under ``step_<n>`` keys and are what
    ``context.`` path expressions walk.
    """

    input: Any
    output: Any = None

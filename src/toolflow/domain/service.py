import logging
import re
from collections.abc import Mapping
from typing import Any, Callable

from toolflow.domain.entity import Step, Tool, WorkflowDefinition
from toolflow.domain.error import InvalidMapping, PathResolutionFailed, UnknownTool
from toolflow.domain.value_object import ContextRef, InputRef, LiteralRef, OutputRef, PathRefTypes

logger = logging.getLogger(__name__)

INDEX_TOKEN = "$index"

_INDEXED_SEGMENT = re.compile(r"([^.\[\]]+)\[(\d+)\]")
_INDEXED_REMAINDER = re.compile(r"\[\$index\].*")
_PREFIXES = (("context.", ContextRef), ("output.", OutputRef), ("input.", InputRef))


def resolve_path(root: Any, path: str) -> Any:
    """Resolves a dotted/indexed path such as ``ideas[0].title`` against a nested value.

    Rules:
    - A plain segment projects a property out of a mapping; a missing property yields ``None``.
    - A plain segment applied to a list broadcasts: it projects the property out of
      every element, producing a list (elements lacking the property give ``None``).
    - An indexed segment ``name[i]`` requires ``name`` to be a list with an element at ``i``.
    - Walking any segment from ``None`` fails.

    :param root: The value to walk
    :param path: Dot-separated segments; an empty path returns ``root``
    :returns: The resolved value
    :raises PathResolutionFailed: With the segment at which the walk broke
    """
    if not path:
        return root
    current = root
    for segment in path.split("."):
        if current is None:
            raise PathResolutionFailed(segment)

        match = _INDEXED_SEGMENT.fullmatch(segment)
        if match:
            name, index = match.group(1), int(match.group(2))
            container = current.get(name) if isinstance(current, Mapping) else None
            if not isinstance(container, list):
                logger.warning("Expected an array at %s, found %r", name, container)
                raise PathResolutionFailed(segment)
            if index >= len(container):
                raise PathResolutionFailed(segment)
            current = container[index]
        elif isinstance(current, list):
            current = [item.get(segment) if isinstance(item, Mapping) else None for item in current]
        elif isinstance(current, Mapping):
            current = current.get(segment)
        else:
            current = None
    return current


def parse_ref(value: Any) -> PathRefTypes:
    """Classifies a mapping value by its prefix; anything unprefixed is a literal."""
    if isinstance(value, str):
        for prefix, ref_type in _PREFIXES:
            if value.startswith(prefix):
                return ref_type(path=value[len(prefix) :])
    return LiteralRef(value=value)


def requires_fan_out(step: Step) -> bool:
    return any(isinstance(v, str) and INDEX_TOKEN in v for v in step.input_mapping.values())


def fan_out_base_path(step: Step) -> str:
    """Returns the path of the array a fan-out step iterates, e.g. ``output.ideas``."""
    for value in step.input_mapping.values():
        if isinstance(value, str) and INDEX_TOKEN in value:
            return _INDEXED_REMAINDER.sub("", value)
    raise ValueError(f"Step for tool {step.tool_name} does not fan out")


def bind_index(mapping: dict[str, Any], index: int | None) -> dict[str, Any]:
    """Substitutes ``$index`` in every string mapping value."""
    if index is None:
        return dict(mapping)
    token = str(index)
    return {k: v.replace(INDEX_TOKEN, token) if isinstance(v, str) else v for k, v in mapping.items()}


def validate_workflow(definition: WorkflowDefinition, get_tool: Callable[[str], Tool | None]) -> bool:
    """
    Validates that every step references a registered tool and maps only declared input fields.

    :param definition: The workflow to validate
    :type definition: WorkflowDefinition
    :param get_tool: Lookup returning the tool for a name, or None
    :returns: True if the workflow is valid
    :rtype: bool
    :raises UnknownTool: If a step names a tool that is not registered
    :raises InvalidMapping: If a mapping key is not a property of the tool's input schema
    """
    for index, step in enumerate(definition.steps):
        tool = get_tool(step.tool_name)
        if tool is None:
            raise UnknownTool(step.tool_name, index)
        properties = tool.input_properties()
        for target in step.input_mapping:
            if target not in properties:
                raise InvalidMapping(step.tool_name, target)
    return True

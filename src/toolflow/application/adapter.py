import concurrent.futures
import logging
from collections.abc import Iterator
from typing import Any, Callable

import json_repair
import msgspec
from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError

from toolflow.application.port import FanOutStrategy, SchemaValidator, TaskRunner, ToolRegistry
from toolflow.domain.entity import ExecutionState, Step, StepRecord, ToolContext
from toolflow.domain.error import InvalidInput, InvalidOutput, ToolNotFound, ToolTimeout
from toolflow.domain.service import bind_index, parse_ref, resolve_path
from toolflow.domain.value_object import (
    ContextRef,
    ExecutionOptions,
    FanOutMode,
    InputRef,
    OutputRef,
    PathRefTypes,
    Violation,
)

logger = logging.getLogger(__name__)


def format_path(parts) -> str:
    """Renders a jsonschema error path in the resolver's grammar, e.g. ``ideas[0].idea``."""
    rendered = ""
    for part in parts:
        if isinstance(part, int):
            rendered += f"[{part}]"
        else:
            rendered += f".{part}" if rendered else str(part)
    return rendered


class JsonSchemaValidator(SchemaValidator):
    """Validates values against JSON Schema (draft 7 by default) and reports structured violations."""

    def __init__(self, validator_class: type = Draft7Validator):
        self.validator_class = validator_class

    def validate(self, value: Any, schema: dict[str, Any]) -> list[Violation]:
        validator = self.validator_class(schema)
        violations = [self._to_violation(error) for error in validator.iter_errors(value)]
        return sorted(violations, key=lambda v: (v.path, v.reason))

    def _to_violation(self, error: ValidationError) -> Violation:
        parts = list(error.absolute_path)
        # "required" errors are reported on the parent object; point at the missing field instead
        if error.validator == "required" and isinstance(error.instance, dict):
            for name in error.validator_value:
                if name not in error.instance and error.message.startswith(repr(name)):
                    parts.append(name)
                    break
        return Violation(path=format_path(parts), reason=error.message)


def _object_spans(text: str) -> Iterator[str]:
    """Yields every ``{...}`` span of ``text``, leftmost start first, widest first."""
    start = text.find("{")
    while start != -1:
        end = text.rfind("}")
        while end > start:
            yield text[start : end + 1]
            end = text.rfind("}", start, end)
        start = text.find("{", start + 1)


def extract_json(text: str) -> Any:
    """Returns the first JSON value found in free text, or None.

    The whole text is tried first, then every ``{...}`` span as strict JSON.
    Failing that, each span is passed through ``json_repair`` so that model
    output with small slips such as trailing commas still yields an object.
    """
    try:
        return msgspec.json.decode(text.strip())
    except msgspec.DecodeError:
        pass
    for span in _object_spans(text):
        try:
            return msgspec.json.decode(span)
        except msgspec.DecodeError:
            continue
    for span in _object_spans(text):
        repaired = json_repair.loads(span)
        if isinstance(repaired, dict):
            return repaired
    return None


def collect_output(result: Any) -> Any:
    """Normalizes a materialized handler result into JSON builtins.

    Text is parsed with :func:`extract_json`; anything else, Structs nested
    at any depth included, goes through ``msgspec.to_builtins``.
    """
    if isinstance(result, bytes):
        result = result.decode()
    if isinstance(result, str):
        return extract_json(result)
    return msgspec.to_builtins(result)


def iter_fragments(value: Any, chunk_size: int | None = None) -> Iterator[str]:
    """Yields the JSON encoding of ``value`` in fragments.

    Single pass: the generator cannot be restarted. Without a chunk size the
    whole encoding is a single fragment.
    """
    text = msgspec.json.encode(value).decode()
    if not chunk_size:
        yield text
        return
    for start in range(0, len(text), chunk_size):
        yield text[start : start + chunk_size]


class ToolExecutor:
    """Runs a registered tool with its input and output validated on either side."""

    def __init__(
        self,
        registry: ToolRegistry,
        validator: SchemaValidator,
        task_runner: TaskRunner,
        execution_options: ExecutionOptions,
    ):
        self.registry = registry
        self.validator = validator
        self.task_runner = task_runner
        self.execution_options = execution_options

    def execute_tool(self, name: str, payload: Any) -> Any:
        """
        Validate input, run the handler, validate output.

        :param name: The tool name
        :type name: str
        :param payload: The tool input
        :type payload: Any
        :returns: The validated tool output
        :rtype: Any
        :raises ToolNotFound: If no tool is registered under ``name``
        :raises InvalidInput: If ``payload`` violates the input schema
        :raises InvalidOutput: If the handler result violates the output schema
        :raises ToolTimeout: If the handler outlives the configured timeout
        """
        tool = self.registry.get_tool(name)
        if tool is None:
            raise ToolNotFound(name)

        violations = self.validator.validate(payload, tool.input_schema)
        if violations:
            raise InvalidInput(name, violations)

        context = ToolContext(
            tool_name=tool.name,
            description=tool.description,
            tool_args=payload,
            get_data_source=self.registry.get_data_source,
        )
        logger.debug("Executing tool %s", name)
        result = collect_output(self._run(tool.handler, context))

        violations = self.validator.validate(result, tool.output_schema)
        if violations:
            raise InvalidOutput(name, violations)
        logger.debug("Tool %s finished", name)
        return result

    def _run(self, handler: Callable[[ToolContext], Any], context: ToolContext) -> Any:
        timeout = self.execution_options.timeout
        if timeout is None:
            return self.task_runner.run(handler, context)

        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(self.task_runner.run, handler, context)
            try:
                return future.result(timeout=timeout)
            except concurrent.futures.TimeoutError:
                raise ToolTimeout(context.tool_name, timeout) from None
        finally:
            executor.shutdown(wait=False)


class MappingResolver:
    """Computes a step's tool input from its input mapping and the running state."""

    def resolve_ref(self, ref: PathRefTypes, state: ExecutionState, context: dict[str, StepRecord]) -> Any:
        if isinstance(ref, ContextRef):
            records = {key: {"input": record.input, "output": record.output} for key, record in context.items()}
            return resolve_path(records, ref.path)
        if isinstance(ref, OutputRef):
            return resolve_path(state.output, ref.path)
        if isinstance(ref, InputRef):
            return resolve_path(state.input, ref.path)
        return ref.value

    def resolve(self, value: Any, state: ExecutionState, context: dict[str, StepRecord]) -> Any:
        return self.resolve_ref(parse_ref(value), state, context)

    def resolve_mapping(
        self,
        mapping: dict[str, Any],
        state: ExecutionState,
        context: dict[str, StepRecord],
        index: int | None = None,
    ) -> dict[str, Any]:
        """Resolves every mapping entry, with ``$index`` bound to ``index`` when given."""
        bound = bind_index(mapping, index)
        return {target: self.resolve(value, state, context) for target, value in bound.items()}


class SequentialFanOutStrategy(FanOutStrategy):
    """Runs elements one after another; the first failure stops the step."""

    def execute(self, step: Step, size: int, run_element: Callable[[int], Any]) -> list[Any]:
        return [run_element(index) for index in range(size)]


class ParallelFanOutStrategy(FanOutStrategy):
    """Runs elements on a bounded thread pool.

    Results keep array order. When several elements fail, the failure of the
    lowest position is raised.
    """

    def __init__(self, max_workers: int | None = None):
        self.max_workers = max_workers

    def execute(self, step: Step, size: int, run_element: Callable[[int], Any]) -> list[Any]:
        if size == 0:
            return []
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(run_element, index) for index in range(size)]
            concurrent.futures.wait(futures)
        return [future.result() for future in futures]


class FanOutStrategyFactory:
    """Factory to return the correct FanOutStrategy for a step."""

    @staticmethod
    def get_strategy(step: Step, execution_options: ExecutionOptions) -> FanOutStrategy:
        mode = step.mode if step.mode is not None else execution_options.fan_out_mode
        if mode == FanOutMode.PARALLEL:
            return ParallelFanOutStrategy(execution_options.max_workers)
        return SequentialFanOutStrategy()

import logging
import threading
from collections.abc import Iterator, Mapping
from typing import Any

import msgspec

from toolflow.application.adapter import FanOutStrategyFactory, MappingResolver, ToolExecutor, iter_fragments
from toolflow.application.port import ToolRegistry
from toolflow.domain.entity import ExecutionState, Step, StepRecord, WorkflowDefinition
from toolflow.domain.error import ExpectedArray, WorkflowCancelled, WorkflowNotFound, WorkflowStepFailed
from toolflow.domain.service import fan_out_base_path, requires_fan_out, validate_workflow
from toolflow.domain.value_object import ExecutionOptions

logger = logging.getLogger(__name__)


def load_workflow(data: dict | WorkflowDefinition) -> WorkflowDefinition:
    """
    Decodes a workflow definition from a Python dictionary.

    Step keys use the wire spelling (``toolName``, ``inputMapping``).

    :param data: The workflow data as a dictionary
    :type data: dict | WorkflowDefinition
    :returns: A WorkflowDefinition instance
    :rtype: WorkflowDefinition
    :raises msgspec.ValidationError: If the data does not describe a workflow
    """
    if isinstance(data, WorkflowDefinition):
        return data
    return msgspec.convert(data, type=WorkflowDefinition)


def merge_inputs(*parts: Any) -> dict[str, Any]:
    """Shallow-merges the mapping parts left to right; later keys win, non-mappings are skipped."""
    merged: dict[str, Any] = {}
    for part in parts:
        if isinstance(part, Mapping):
            merged.update(part)
    return merged


class WorkflowManager:
    """Creates workflows and runs them step by step, threading data between tools."""

    def __init__(
        self,
        registry: ToolRegistry,
        tool_executor: ToolExecutor,
        mapping_resolver: MappingResolver | None = None,
        execution_options: ExecutionOptions | None = None,
    ):
        self.registry = registry
        self.tool_executor = tool_executor
        self.mapping_resolver = mapping_resolver if mapping_resolver is not None else MappingResolver()
        self.execution_options = execution_options if execution_options is not None else ExecutionOptions()

    def create_workflow(self, definition: dict | WorkflowDefinition) -> str:
        """
        Validates a workflow against the registry and stores it.

        :param definition: The workflow definition
        :type definition: dict | WorkflowDefinition
        :returns: The new workflow identifier
        :rtype: str
        :raises UnknownTool: If a step references an unregistered tool
        :raises InvalidMapping: If a mapping targets a field the tool does not declare
        """
        definition = load_workflow(definition)
        validate_workflow(definition, self.registry.get_tool)
        workflow_id = self.registry.create_workflow(definition)
        logger.info("Created workflow %s (%s) with %d steps", workflow_id, definition.name, len(definition.steps))
        return workflow_id

    def execute_workflow(
        self,
        workflow_id: str,
        initial_input: Any,
        cancel_event: threading.Event | None = None,
    ) -> Any:
        """
        Runs every step in order and returns the last step's output.

        :param workflow_id: The workflow identifier
        :type workflow_id: str
        :param initial_input: The caller-supplied input
        :type initial_input: Any
        :param cancel_event: Checked before each step; when set the run stops
        :type cancel_event: threading.Event | None
        :returns: The final step's output (a list for a fanned-out final step)
        :rtype: Any
        :raises WorkflowNotFound: If the identifier is unknown
        :raises WorkflowStepFailed: Wrapping the first failure of any step
        :raises WorkflowCancelled: If ``cancel_event`` is set between steps
        """
        workflow = self.registry.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFound(workflow_id)

        state = ExecutionState(input=initial_input, output=None)
        context: dict[str, StepRecord] = {}

        for index, step in enumerate(workflow.steps):
            if cancel_event is not None and cancel_event.is_set():
                raise WorkflowCancelled(index)
            logger.debug("Workflow %s: running step %d (%s)", workflow_id, index, step.tool_name)
            try:
                state = self._execute_step(index, step, initial_input, state, context)
            except Exception as e:
                logger.error("Error in workflow step %d (%s): %s", index, step.tool_name, e)
                raise WorkflowStepFailed(index, step.tool_name, e) from e

        logger.info("Workflow %s completed %d steps", workflow_id, len(workflow.steps))
        return state.output

    def stream_workflow(
        self,
        workflow_id: str,
        initial_input: Any,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[str]:
        """Runs the workflow now and returns its result as a single-pass stream of JSON fragments."""
        result = self.execute_workflow(workflow_id, initial_input, cancel_event)
        return iter_fragments(result, self.execution_options.stream_chunk_size)

    def _execute_step(
        self,
        index: int,
        step: Step,
        initial_input: Any,
        state: ExecutionState,
        context: dict[str, StepRecord],
    ) -> ExecutionState:
        if requires_fan_out(step):
            results = self._fan_out(step, state, context)
            # fan-out results are reachable through context.step_<n>.output only
            context[f"step_{index}"] = StepRecord(input=state.input, output=results)
            return ExecutionState(input=merge_inputs(initial_input, state.input), output=results)

        mapped_input = self.mapping_resolver.resolve_mapping(step.input_mapping, state, context)
        output = self.tool_executor.execute_tool(step.tool_name, mapped_input)
        context[f"step_{index}"] = StepRecord(input=mapped_input, output=output)
        return ExecutionState(input=merge_inputs(initial_input, state.input, output), output=output)

    def _fan_out(self, step: Step, state: ExecutionState, context: dict[str, StepRecord]) -> list[Any]:
        base_path = fan_out_base_path(step)
        array = self.mapping_resolver.resolve(base_path, state, context)
        if not isinstance(array, list):
            raise ExpectedArray(base_path, array)

        strategy = FanOutStrategyFactory.get_strategy(step, self.execution_options)
        logger.debug("Fanning out %s over %d elements at %s", step.tool_name, len(array), base_path)

        def run_element(position: int) -> Any:
            mapped_input = self.mapping_resolver.resolve_mapping(step.input_mapping, state, context, position)
            return self.tool_executor.execute_tool(step.tool_name, mapped_input)

        return strategy.execute(step, len(array), run_element)

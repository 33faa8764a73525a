"""
Tests for domain value objects and errors.
"""

import msgspec

from toolflow.domain.error import (
    ExpectedArray,
    InvalidInput,
    InvalidOutput,
    PathResolutionFailed,
    ToolflowError,
    ToolNotFound,
    WorkflowStepFailed,
)
from toolflow.domain.value_object import (
    ContextRef,
    ExecutionOptions,
    FanOutMode,
    InputRef,
    LiteralRef,
    PathRefTypes,
    Violation,
)


class TestExecutionOptions:
    """Test cases for ExecutionOptions."""

    def test_defaults(self):
        options = ExecutionOptions()

        assert options.fan_out_mode == FanOutMode.SEQUENTIAL
        assert options.max_workers is None
        assert options.timeout is None
        assert options.stream_chunk_size is None

    def test_custom_values(self):
        options = ExecutionOptions(fan_out_mode=FanOutMode.PARALLEL, max_workers=4, timeout=2.5)

        assert options.fan_out_mode == "parallel"
        assert options.max_workers == 4
        assert options.timeout == 2.5


class TestViolation:
    """Test cases for Violation."""

    def test_str_with_path(self):
        assert str(Violation(path="ideas[0].idea", reason="5 is not of type 'string'")) == (
            "ideas[0].idea: 5 is not of type 'string'"
        )

    def test_str_for_root(self):
        assert str(Violation(path="", reason="bad")) == "<root>: bad"


class TestPathRef:
    """Test cases for the PathRef tagged union."""

    def test_round_trip_through_builtins(self):
        ref = msgspec.convert({"source": "context", "path": "step_0.output"}, type=PathRefTypes)

        assert ref == ContextRef(path="step_0.output")

    def test_literal_keeps_value(self):
        assert LiteralRef(value=[1, 2]).value == [1, 2]

    def test_refs_compare_by_kind(self):
        assert InputRef(path="a") != ContextRef(path="a")


class TestErrors:
    """Test cases for the error taxonomy."""

    def test_all_errors_share_base(self):
        assert issubclass(ToolNotFound, ToolflowError)
        assert issubclass(WorkflowStepFailed, ToolflowError)

    def test_invalid_input_carries_violations(self):
        violations = [Violation(path="topic", reason="5 is not of type 'string'")]

        error = InvalidInput("ideas", violations)

        assert error.name == "ideas"
        assert error.violations == violations
        assert "topic: 5 is not of type 'string'" in str(error)

    def test_invalid_output_message(self):
        error = InvalidOutput("ideas", [Violation(path="ideas", reason="'ideas' is a required property")])

        assert str(error).startswith("Invalid output from tool ideas")

    def test_expected_array(self):
        error = ExpectedArray("output.ideas", {"a": 1})

        assert error.base_path == "output.ideas"
        assert error.found == {"a": 1}
        assert str(error) == "Expected an array at path output.ideas"

    def test_step_failed_carries_location_and_cause(self):
        cause = PathResolutionFailed("idea")

        error = WorkflowStepFailed(1, "write", cause)

        assert error.index == 1
        assert error.tool_name == "write"
        assert error.cause is cause
        assert str(error) == "Workflow execution failed at step 1 (write): Path resolution failed at idea"

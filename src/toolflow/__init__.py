"""
Toolflow - schema-validated tool workflows

Register named tools with JSON-schema input and output contracts, chain them
into fixed, ordered workflows, and run those workflows with data threaded
between steps by path expressions.
"""

from toolflow.client import Client
from toolflow.domain.entity import Step, StepRecord, Tool, ToolContext, Workflow, WorkflowDefinition
from toolflow.domain.error import (
    ExpectedArray,
    InvalidInput,
    InvalidMapping,
    InvalidOutput,
    InvalidToolDefinition,
    PathResolutionFailed,
    ToolflowError,
    ToolNotFound,
    ToolTimeout,
    UnknownTool,
    WorkflowCancelled,
    WorkflowNotFound,
    WorkflowStepFailed,
)
from toolflow.domain.port import DataSource, ToolMixin
from toolflow.domain.service import resolve_path
from toolflow.domain.value_object import ExecutionOptions, FanOutMode, Violation
from toolflow.factory import create

__all__ = [
    "Client",
    "create",
    "ExecutionOptions",
    "FanOutMode",
    "Tool",
    "ToolContext",
    "ToolMixin",
    "DataSource",
    "Step",
    "StepRecord",
    "Workflow",
    "WorkflowDefinition",
    "Violation",
    "resolve_path",
    "ToolflowError",
    "ToolNotFound",
    "InvalidInput",
    "InvalidOutput",
    "UnknownTool",
    "InvalidMapping",
    "PathResolutionFailed",
    "ExpectedArray",
    "WorkflowNotFound",
    "WorkflowStepFailed",
    "WorkflowCancelled",
    "ToolTimeout",
    "InvalidToolDefinition",
]

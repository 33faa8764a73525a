from dataclasses import dataclass
from enum import Enum
from typing import Any

import msgspec


class FanOutMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


@dataclass
class ExecutionOptions:
    """Engine-wide execution settings.

    ``timeout`` bounds how long a caller waits for one tool handler, in
    seconds. A handler that overruns is abandoned, not stopped: Python cannot
    kill a thread, so its worker keeps running in the background until the
    handler returns on its own. Handlers that may hang should enforce their
    own deadlines (for example a client-side request timeout).

    ``stream_chunk_size`` is the fragment length used by streaming delivery;
    ``None`` streams the whole JSON encoding as one fragment.
    """

    fan_out_mode: FanOutMode = FanOutMode.SEQUENTIAL
    max_workers: int | None = None
    timeout: float | None = None
    stream_chunk_size: int | None = None


class Violation(msgspec.Struct, frozen=True):
    """A single schema violation: where it happened and why."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: {self.reason}"


class PathRef(msgspec.Struct, frozen=True, tag_field="source"):
    """Base class for a parsed mapping value."""


class LiteralRef(PathRef, tag="literal"):
    """A constant copied verbatim into the tool input."""

    value: Any


class InputRef(PathRef, tag="input"):
    """Reads from the accumulated workflow input."""

    path: str


class OutputRef(PathRef, tag="output"):
    """Reads from the previous step's output."""

    path: str


class ContextRef(PathRef, tag="context"):
    """Reads from the per-step execution context."""

    path: str


PathRefTypes = LiteralRef | InputRef | OutputRef | ContextRef

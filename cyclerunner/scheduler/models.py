"""Data models and limits for the phase runners."""

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Union

# Requesting this many cycles means "run until stopped"; it is clamped to a safety cap.
UNBOUNDED = math.inf

MAX_CYCLES = 5000
MAX_ITERATIONS = 10000

# A phase callable returns an awaitable; a plain return value counts as done.
PhaseCallable = Callable[[], Union[Awaitable[Any], Any]]


class Phase(str, Enum):
    """Direction of one half of a cycle."""

    FORWARD = "forward"
    BACKWARD = "backward"

    def next(self) -> "Phase":
        return Phase.BACKWARD if self is Phase.FORWARD else Phase.FORWARD


PhaseErrorHook = Callable[[Phase, int, BaseException], None]
IterationErrorHook = Callable[[int, BaseException], None]


@dataclass(frozen=True)
class SchedulerStatus:
    """
    Point-in-time snapshot of a CycleScheduler.

    Attributes:
        current_cycle: Completed forward+backward pairs in the current run
        total_cycles: Effective cycle limit (after safety clamping)
        current_phase: Phase that runs next, or is running now
        stopped: Whether stop() was called (by a caller or the safety guard)
        has_pending_timer: Whether a continuation is waiting out the delay
    """

    current_cycle: int
    total_cycles: int
    current_phase: Phase
    stopped: bool
    has_pending_timer: bool

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["current_phase"] = self.current_phase.value
        return data


@dataclass(frozen=True)
class LoopStatus:
    """Point-in-time snapshot of a LoopRunner."""

    current_iteration: int
    total_iterations: int
    stopped: bool
    has_pending_timer: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

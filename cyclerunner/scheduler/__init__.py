"""Non-blocking phase runners driven by the asyncio event loop."""

from .exceptions import InvalidScheduleError
from .loop import LoopRunner
from .models import (
    MAX_CYCLES,
    MAX_ITERATIONS,
    UNBOUNDED,
    LoopStatus,
    Phase,
    SchedulerStatus,
)
from .registry import RunnerRegistry, normalize_count, normalize_delay
from .service import CycleScheduler

__all__ = [
    # Runners
    "CycleScheduler",
    "LoopRunner",
    "RunnerRegistry",
    # Models and limits
    "Phase",
    "SchedulerStatus",
    "LoopStatus",
    "UNBOUNDED",
    "MAX_CYCLES",
    "MAX_ITERATIONS",
    # Helpers
    "normalize_count",
    "normalize_delay",
    # Exceptions
    "InvalidScheduleError",
]

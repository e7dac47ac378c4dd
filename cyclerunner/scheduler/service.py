"""Forward/backward cycle scheduler."""

import asyncio
from typing import Any, Dict, Optional, Tuple

from cyclerunner.logging import get_logger

from .base import PhaseRunner, resolve_count
from .models import (
    MAX_CYCLES,
    Phase,
    PhaseCallable,
    PhaseErrorHook,
    SchedulerStatus,
)

logger = get_logger(__name__, component="scheduler")


class CycleScheduler(PhaseRunner):
    """
    Alternates two phase callables for a fixed number of cycles.

    One cycle is a forward phase followed by a backward phase. Between any
    two phases the scheduler waits ``delay_ms`` on the event loop. A phase
    that raises is logged, reported to ``on_phase_error`` and then treated
    as completed: the delay still applies and the alternation continues.

    Example:
        >>> scheduler = CycleScheduler(
        ...     cycles=3,
        ...     delay_ms=500,
        ...     play_forward=banner.play_forward,
        ...     play_backward=banner.play_backward,
        ... )
        >>> scheduler.start()
        >>> await scheduler.wait()
    """

    event_prefix = "scheduler"
    unit = "cycles"
    safety_cap = MAX_CYCLES

    def __init__(
        self,
        cycles,
        delay_ms: float,
        play_forward: PhaseCallable,
        play_backward: PhaseCallable,
        *,
        name: Optional[str] = None,
        on_phase_error: Optional[PhaseErrorHook] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            cycles: Forward+backward pairs to run; UNBOUNDED is capped at MAX_CYCLES
            delay_ms: Pause between phases in milliseconds; negatives become 0
            play_forward: Callable for the forward phase
            play_backward: Callable for the backward phase
            name: Label used in log records
            on_phase_error: Called with (phase, cycle, exception) when a phase fails
            loop: Event loop to schedule on; defaults to the running loop at start()

        Raises:
            InvalidScheduleError: If cycles is negative or not a whole number
        """
        super().__init__(delay_ms, name=name, loop=loop)
        self.total_cycles = resolve_count(cycles, MAX_CYCLES, "cycles")
        self.play_forward = play_forward
        self.play_backward = play_backward
        self.on_phase_error = on_phase_error

        self.current_cycle = 0
        self.current_phase = Phase.FORWARD

    def get_status(self) -> SchedulerStatus:
        """Return a snapshot of the scheduler's position and state."""
        return SchedulerStatus(
            current_cycle=self.current_cycle,
            total_cycles=self.total_cycles,
            current_phase=self.current_phase,
            stopped=self.stopped,
            has_pending_timer=self.has_pending_timer,
        )

    def _reset_progress(self) -> None:
        self.current_cycle = 0
        self.current_phase = Phase.FORWARD

    def _current_step(self) -> Tuple[PhaseCallable, Dict[str, Any]]:
        if self.current_phase is Phase.FORWARD:
            play = self.play_forward
        else:
            play = self.play_backward

        logger.debug(
            f"Executing {self.current_phase.value} phase of cycle "
            f"{self.current_cycle + 1}/{self.total_cycles}",
            extra={"event": "scheduler.phase.started", "schedule": self.name},
        )
        return play, {"cycle": self.current_cycle, "phase": self.current_phase.value}

    def _advance(self) -> None:
        if self.current_phase is Phase.BACKWARD:
            self.current_cycle += 1
        self.current_phase = self.current_phase.next()

    def _progress(self) -> int:
        return self.current_cycle

    def _limit(self) -> int:
        return self.total_cycles

    def _on_step_failed(self, fields: Dict[str, Any], exc: BaseException) -> None:
        if self.on_phase_error is None:
            return
        try:
            self.on_phase_error(Phase(fields["phase"]), fields["cycle"], exc)
        except Exception:
            logger.exception(
                "on_phase_error hook raised",
                extra={"event": "scheduler.error_hook.failed", "schedule": self.name},
            )

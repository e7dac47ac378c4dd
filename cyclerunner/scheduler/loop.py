"""Single-phase repeat runner."""

import asyncio
from typing import Any, Dict, Optional, Tuple

from cyclerunner.logging import get_logger

from .base import PhaseRunner, resolve_count
from .models import MAX_ITERATIONS, IterationErrorHook, LoopStatus, PhaseCallable

logger = get_logger(__name__, component="scheduler")


class LoopRunner(PhaseRunner):
    """
    Plays one callable ``iterations`` times with ``delay_ms`` between runs.

    Shares the scheduling model of CycleScheduler: non-blocking, failures
    are logged and counted as finished iterations, stop() is cooperative.
    """

    event_prefix = "loop"
    unit = "iterations"
    safety_cap = MAX_ITERATIONS

    def __init__(
        self,
        iterations,
        delay_ms: float,
        play: PhaseCallable,
        *,
        name: Optional[str] = None,
        on_iteration_error: Optional[IterationErrorHook] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        super().__init__(delay_ms, name=name, loop=loop)
        self.total_iterations = resolve_count(iterations, MAX_ITERATIONS, "iterations")
        self.play = play
        self.on_iteration_error = on_iteration_error
        self.current_iteration = 0

    def get_status(self) -> LoopStatus:
        return LoopStatus(
            current_iteration=self.current_iteration,
            total_iterations=self.total_iterations,
            stopped=self.stopped,
            has_pending_timer=self.has_pending_timer,
        )

    def _reset_progress(self) -> None:
        self.current_iteration = 0

    def _current_step(self) -> Tuple[PhaseCallable, Dict[str, Any]]:
        return self.play, {"iteration": self.current_iteration}

    def _advance(self) -> None:
        self.current_iteration += 1

    def _progress(self) -> int:
        return self.current_iteration

    def _limit(self) -> int:
        return self.total_iterations

    def _on_step_failed(self, fields: Dict[str, Any], exc: BaseException) -> None:
        if self.on_iteration_error is None:
            return
        try:
            self.on_iteration_error(fields["iteration"], exc)
        except Exception:
            logger.exception(
                "on_iteration_error hook raised",
                extra={"event": "loop.error_hook.failed", "schedule": self.name},
            )

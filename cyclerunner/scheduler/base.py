"""Shared scheduling machinery for the phase runners.

A runner never loops in place. Each step runs one phase callable as an
asyncio task, then schedules its own continuation with ``loop.call_later``
after the configured delay; the continuation advances the runner's position
and starts the next step. Control returns to the event loop while a phase
is awaited and while the delay elapses, and nowhere else.
"""

import asyncio
import functools
import inspect
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from cyclerunner.logging import get_logger
from cyclerunner.logging.context import log_context

from .exceptions import InvalidScheduleError
from .models import UNBOUNDED, PhaseCallable

logger = get_logger(__name__, component="scheduler")


def resolve_count(value: Any, cap: int, field: str) -> int:
    """
    Validate a requested repeat count and apply the safety cap.

    Args:
        value: Requested count; a non-negative integer or UNBOUNDED
        cap: Safety cap substituted for UNBOUNDED and for larger counts
        field: Argument name used in error messages and warnings

    Returns:
        The effective count

    Raises:
        InvalidScheduleError: If value is negative, fractional, NaN, -inf,
            a bool, or not a number at all
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidScheduleError(field, value, "must be a non-negative integer or UNBOUNDED")

    if value == UNBOUNDED:
        logger.warning(
            f"Unbounded {field} capped at {cap} for safety",
            extra={"event": "scheduler.count.capped", "field": field, "cap": cap},
        )
        return cap

    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value) or not value.is_integer():
            raise InvalidScheduleError(field, value, "must be a whole number")
        value = int(value)

    if value < 0:
        raise InvalidScheduleError(field, value, "must not be negative")

    if value > cap:
        logger.warning(
            f"Requested {field} {value} exceeds safety cap, using {cap}",
            extra={
                "event": "scheduler.count.capped",
                "field": field,
                "requested": value,
                "cap": cap,
            },
        )
        return cap

    return value


def clamp_delay(delay_ms: Any) -> float:
    """Clamp an inter-phase delay to ``>= 0`` milliseconds; zero stays zero."""
    if isinstance(delay_ms, bool) or not isinstance(delay_ms, (int, float)):
        raise InvalidScheduleError("delay_ms", delay_ms, "must be a number of milliseconds")
    if math.isnan(delay_ms) or math.isinf(delay_ms):
        raise InvalidScheduleError("delay_ms", delay_ms, "must be finite")
    return max(delay_ms, 0)


class PhaseRunner(ABC):
    """Base class for runners that chain phase callables through the event loop.

    Subclasses describe *what* runs at each position (``_current_step``), how
    the position moves (``_advance``) and when the run is finished; this class
    owns the timer, the run generation and the start/stop/wait lifecycle.

    A restart bumps the run generation: callbacks belonging to an earlier
    run see a stale generation and do nothing, so a superseded run can never
    schedule work for the new one.
    """

    event_prefix = "runner"
    unit = "steps"
    safety_cap = 0

    def __init__(
        self,
        delay_ms: float,
        *,
        name: Optional[str] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.delay_ms = clamp_delay(delay_ms)
        self.name = name or type(self).__name__
        self.stopped = False
        self._explicit_loop = loop
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending_timer: Optional[asyncio.TimerHandle] = None
        self._phase_task: Optional[asyncio.Task] = None
        self._generation = 0
        self._done: Optional[asyncio.Event] = None

    # -- hooks for subclasses ---------------------------------------------

    @abstractmethod
    def _reset_progress(self) -> None:
        """Rewind the runner's position to the start of a run."""

    @abstractmethod
    def _current_step(self) -> Tuple[PhaseCallable, Dict[str, Any]]:
        """Return the callable for the current position and its log fields."""

    @abstractmethod
    def _advance(self) -> None:
        """Move to the next position after a step finished (or failed)."""

    @abstractmethod
    def _progress(self) -> int:
        """Completed units (cycles or iterations) in the current run."""

    @abstractmethod
    def _limit(self) -> int:
        """Units requested for a run."""

    def _on_step_failed(self, fields: Dict[str, Any], exc: BaseException) -> None:
        """Called after a failed step has been logged."""

    # -- lifecycle --------------------------------------------------------

    def start(self) -> None:
        """
        Start (or restart) the run from the first position.

        Must be called with an event loop available: either the loop passed
        to the constructor or the currently running one.

        Raises:
            RuntimeError: If no loop was given and none is running
        """
        self._loop = self._explicit_loop or asyncio.get_running_loop()

        self._cancel_pending_timer()
        if self._done is not None:
            self._done.set()

        self._generation += 1
        self.stopped = False
        self._reset_progress()
        self._done = asyncio.Event()

        logger.info(
            f"Starting {self.name}: {self._limit()} {self.unit} with {self.delay_ms}ms delay",
            extra={
                "event": f"{self.event_prefix}.started",
                "schedule": self.name,
                "limit": self._limit(),
                "delay_ms": self.delay_ms,
            },
        )
        self._schedule_next_step(self._generation)

    def stop(self) -> None:
        """
        Stop the run and cancel any pending continuation.

        A phase that is already executing is allowed to finish; only the
        steps after it are suppressed.
        """
        logger.info(
            f"Stopping {self.name} at {self._progress()}/{self._limit()}",
            extra={
                "event": f"{self.event_prefix}.stopping",
                "schedule": self.name,
                "progress": self._progress(),
            },
        )
        self.stopped = True
        self._cancel_pending_timer()

        if not self._phase_in_flight():
            self._finish()

    async def wait(self) -> None:
        """Wait until the current run has halted (completed or stopped)."""
        if self._done is None:
            return
        await self._done.wait()

    def is_running(self) -> bool:
        """True between start() and the run halting."""
        return self._done is not None and not self._done.is_set() and not self.stopped

    def is_complete(self) -> bool:
        return self._progress() >= self._limit()

    @property
    def has_pending_timer(self) -> bool:
        return self._pending_timer is not None

    # -- scheduling chain -------------------------------------------------

    def _schedule_next_step(self, generation: int) -> None:
        if generation != self._generation:
            return

        if self.stopped:
            logger.info(
                f"{self.name} stopped by request at {self._progress()}/{self._limit()}",
                extra={"event": f"{self.event_prefix}.halted", "schedule": self.name},
            )
            self._finish()
            return

        if self._progress() >= self._limit():
            logger.info(
                f"{self.name} completed all {self._limit()} {self.unit}",
                extra={
                    "event": f"{self.event_prefix}.completed",
                    "schedule": self.name,
                    "progress": self._progress(),
                },
            )
            self._finish()
            return

        if self._progress() >= self.safety_cap:
            logger.error(
                f"Safety stop: {self.name} hit the limit of {self.safety_cap}",
                extra={
                    "event": f"{self.event_prefix}.safety_stop",
                    "schedule": self.name,
                    "safety_cap": self.safety_cap,
                },
            )
            self.stop()
            return

        self._phase_task = self._loop.create_task(self._run_step(generation))
        self._phase_task.add_done_callback(functools.partial(self._on_phase_task_done, generation))

    async def _run_step(self, generation: int) -> None:
        if generation != self._generation:
            return
        if self.stopped:
            # stop() landed between dispatch and the task's first turn
            self._finish()
            return

        play, fields = self._current_step()

        with log_context(schedule=self.name, **fields):
            try:
                result = play()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError as exc:
                if asyncio.current_task().cancelling():
                    # The runner's own task is being cancelled; _on_phase_task_done halts the run
                    raise
                # Something the phase awaited was cancelled
                self._report_failure(fields, exc)
            except Exception as exc:
                self._report_failure(fields, exc)
            else:
                logger.debug(
                    "Phase completed",
                    extra={
                        "event": f"{self.event_prefix}.phase.completed",
                        "schedule": self.name,
                        **fields,
                    },
                )

        if generation != self._generation:
            return
        if self.stopped:
            self._finish()
            return

        self._pending_timer = self._loop.call_later(
            self.delay_ms / 1000, self._continue, generation
        )

    def _on_phase_task_done(self, generation: int, task: asyncio.Task) -> None:
        if not task.cancelled() or generation != self._generation:
            return
        logger.warning(
            f"Phase task of {self.name} was cancelled, halting at {self._progress()}/{self._limit()}",
            extra={
                "event": f"{self.event_prefix}.phase.cancelled",
                "schedule": self.name,
                "progress": self._progress(),
            },
        )
        self.stopped = True
        self._cancel_pending_timer()
        self._finish()

    def _report_failure(self, fields: Dict[str, Any], exc: BaseException) -> None:
        logger.error(
            f"Phase failed in {self.name}: {exc!r}",
            extra={
                "event": f"{self.event_prefix}.phase.failed",
                "schedule": self.name,
                **fields,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
            exc_info=exc,
        )
        self._on_step_failed(fields, exc)

    def _continue(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._pending_timer = None
        if self.stopped:
            return
        self._advance()
        self._schedule_next_step(generation)

    def _phase_in_flight(self) -> bool:
        return self._phase_task is not None and not self._phase_task.done()

    def _cancel_pending_timer(self) -> None:
        if self._pending_timer is not None:
            self._pending_timer.cancel()
            self._pending_timer = None

    def _finish(self) -> None:
        if self._done is not None:
            self._done.set()

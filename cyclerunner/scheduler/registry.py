"""Registry keeping one active runner per named slot."""

import asyncio
from typing import Dict, List, Optional, Union

from cyclerunner.logging import get_logger

from .loop import LoopRunner
from .models import UNBOUNDED, IterationErrorHook, PhaseCallable, PhaseErrorHook
from .service import CycleScheduler

logger = get_logger(__name__, component="registry")

Runner = Union[CycleScheduler, LoopRunner]

# Counts at or above this are what users mean by "forever"
USER_UNBOUNDED_THRESHOLD = 999
USER_COUNT_CAP = 1000
DEFAULT_DELAY_MS = 500


def normalize_count(count) -> int:
    """Map a user-entered repeat count onto the registry's range.

    999 or more (and UNBOUNDED) is treated as "forever" and becomes 1000;
    anything else is capped at 1000. Validation of negative or fractional
    values is left to the runner constructors.
    """
    if count == UNBOUNDED or (
        isinstance(count, (int, float)) and not isinstance(count, bool)
        and count >= USER_UNBOUNDED_THRESHOLD
    ):
        return USER_COUNT_CAP
    return count


def normalize_delay(delay_ms: Optional[float]) -> float:
    """Default a missing delay to 500ms; an explicit 0 is kept."""
    if delay_ms is None:
        return DEFAULT_DELAY_MS
    return max(delay_ms, 0)


class RunnerRegistry:
    """
    Tracks the active runner for each slot.

    Starting a runner for a slot first stops whatever runner the slot had,
    so a slot never drives two schedules at once.
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        normalize_counts: bool = True,
    ) -> None:
        """
        Args:
            loop: Event loop handed to every runner; the running loop when omitted
            normalize_counts: Apply normalize_count() to requested counts. When
                False, counts go to the runners unchanged and only their own
                safety caps apply.
        """
        self._runners: Dict[str, Runner] = {}
        self._loop = loop
        self.normalize_counts = normalize_counts

    def _count(self, count):
        return normalize_count(count) if self.normalize_counts else count

    def start_cycle(
        self,
        slot: str,
        play_forward: PhaseCallable,
        play_backward: PhaseCallable,
        cycles=3,
        delay_ms: Optional[float] = None,
        on_phase_error: Optional[PhaseErrorHook] = None,
    ) -> CycleScheduler:
        """
        Start a forward/backward schedule for a slot.

        Args:
            slot: Slot name
            play_forward: Callable for the forward phase
            play_backward: Callable for the backward phase
            cycles: Requested cycles; normalized with normalize_count()
            delay_ms: Delay between phases; None means the 500ms default
            on_phase_error: Optional failure hook passed to the scheduler

        Returns:
            The started CycleScheduler
        """
        self.stop(slot)

        scheduler = CycleScheduler(
            cycles=self._count(cycles),
            delay_ms=normalize_delay(delay_ms),
            play_forward=play_forward,
            play_backward=play_backward,
            name=slot,
            on_phase_error=on_phase_error,
            loop=self._loop,
        )
        self._runners[slot] = scheduler
        scheduler.start()

        logger.info(
            f"Started cycle scheduler for slot {slot}",
            extra={
                "event": "registry.cycle.started",
                "slot": slot,
                "requested_cycles": cycles,
                "total_cycles": scheduler.total_cycles,
            },
        )
        return scheduler

    def start_loop(
        self,
        slot: str,
        play: PhaseCallable,
        iterations=3,
        delay_ms: Optional[float] = None,
        on_iteration_error: Optional[IterationErrorHook] = None,
    ) -> LoopRunner:
        """Start a single-phase loop for a slot (same rules as start_cycle)."""
        self.stop(slot)

        runner = LoopRunner(
            iterations=self._count(iterations),
            delay_ms=normalize_delay(delay_ms),
            play=play,
            name=slot,
            on_iteration_error=on_iteration_error,
            loop=self._loop,
        )
        self._runners[slot] = runner
        runner.start()

        logger.info(
            f"Started loop runner for slot {slot}",
            extra={
                "event": "registry.loop.started",
                "slot": slot,
                "requested_iterations": iterations,
                "total_iterations": runner.total_iterations,
            },
        )
        return runner

    def stop(self, slot: str) -> bool:
        """Stop and forget a slot's runner. Returns False if the slot was empty."""
        runner = self._runners.pop(slot, None)
        if runner is None:
            return False

        runner.stop()
        logger.info(
            f"Stopped runner for slot {slot}",
            extra={"event": "registry.stopped", "slot": slot},
        )
        return True

    def stop_all(self) -> List[Runner]:
        """Stop every runner; returns them so callers can wait for in-flight phases."""
        runners = list(self._runners.values())
        for slot in list(self._runners):
            self.stop(slot)
        return runners

    def get(self, slot: str) -> Optional[Runner]:
        return self._runners.get(slot)

    def statuses(self) -> Dict[str, dict]:
        return {slot: runner.get_status().to_dict() for slot, runner in self._runners.items()}

    async def wait_all(self) -> None:
        """Wait until every registered runner has halted."""
        await asyncio.gather(*(runner.wait() for runner in list(self._runners.values())))

    def __len__(self) -> int:
        return len(self._runners)

    def __contains__(self, slot: str) -> bool:
        return slot in self._runners

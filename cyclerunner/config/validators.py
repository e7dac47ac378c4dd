"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List

from cyclerunner.scheduler.models import MAX_CYCLES, MAX_ITERATIONS

from .duration import DurationParseError, parse_duration_ms
from .models import UNBOUNDED_ALIASES


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check a raw schedules file for values that are legal but likely mistakes.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    schedules = config_dict.get("schedules", [])
    if not isinstance(schedules, list):
        return warning_messages

    for schedule in schedules:
        if not isinstance(schedule, dict):
            continue

        name = schedule.get("name", "Unknown")
        mode = schedule.get("mode", "ping-pong")
        cycles = schedule.get("cycles", 3)

        if not schedule.get("enabled", True):
            warning_messages.append(f"Schedule '{name}' is disabled and will be skipped")

        unbounded = isinstance(cycles, str) and cycles.strip().lower() in UNBOUNDED_ALIASES
        cap = MAX_ITERATIONS if mode == "loop" else MAX_CYCLES

        if unbounded:
            warning_messages.append(
                f"Schedule '{name}' requests unbounded cycles; it will stop after {cap}"
            )
        elif isinstance(cycles, int) and not isinstance(cycles, bool) and cycles > cap:
            warning_messages.append(
                f"Schedule '{name}' requests {cycles} cycles; the safety cap is {cap}"
            )

        # Zero delay with no end keeps the loop busy for the whole run
        try:
            delay_ms = parse_duration_ms(schedule.get("delay", "500ms"))
        except DurationParseError:
            continue
        if unbounded and delay_ms == 0:
            warning_messages.append(
                f"Schedule '{name}' is unbounded with zero delay between phases"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message through the warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)

"""Millisecond duration parsing for schedule delays and phase durations."""

import math
import re
from typing import Union


class DurationParseError(ValueError):
    """Raised when a duration value cannot be parsed."""


_UNIT_MS = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
}

_HUMAN_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h)")
_ISO8601 = re.compile(
    r"^PT(?:(\d+(?:\.\d+)?)H)?(?:(\d+(?:\.\d+)?)M)?(?:(\d+(?:\.\d+)?)S)?$"
)


def parse_duration_ms(value: Union[str, int, float]) -> float:
    """
    Parse a duration into milliseconds.

    Accepted forms:
    - Numbers, read as milliseconds: ``500``, ``0``, ``12.5``
    - Numeric strings, also milliseconds: ``"500"``
    - Human-readable units, combinable: ``"250ms"``, ``"1.5s"``, ``"1m30s"``
    - ISO-8601 time durations: ``"PT0.5S"``, ``"PT1M"``

    Zero is a valid duration. Negative values are rejected.

    Args:
        value: Duration to parse

    Returns:
        Duration in milliseconds

    Raises:
        DurationParseError: If the value is malformed or negative

    Examples:
        >>> parse_duration_ms("250ms")
        250.0
        >>> parse_duration_ms("1.5s")
        1500.0
        >>> parse_duration_ms("PT0.5S")
        500.0
    """
    if isinstance(value, bool):
        raise DurationParseError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise DurationParseError(f"Duration must be finite: {value}")
        if value < 0:
            raise DurationParseError(f"Duration cannot be negative: {value}")
        return float(value)

    if not isinstance(value, str):
        raise DurationParseError(f"Invalid duration type: {type(value).__name__}")

    text = value.strip()
    if not text:
        raise DurationParseError("Duration string cannot be empty")

    if text.startswith("-"):
        raise DurationParseError(f"Duration cannot be negative: '{value}'")

    try:
        number = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(number):
            raise DurationParseError(f"Duration must be finite: '{value}'")
        return number

    if text.upper().startswith("P"):
        return _parse_iso8601(text)

    return _parse_human_readable(text)


def _parse_iso8601(text: str) -> float:
    match = _ISO8601.match(text.upper())
    if not match or text.upper() == "PT":
        raise DurationParseError(
            f"Invalid ISO-8601 duration: '{text}'. "
            "Expected a time duration like 'PT0.5S', 'PT2S' or 'PT1M30S'"
        )

    hours, minutes, seconds = match.groups()
    total = 0.0
    if hours:
        total += float(hours) * _UNIT_MS["h"]
    if minutes:
        total += float(minutes) * _UNIT_MS["m"]
    if seconds:
        total += float(seconds) * _UNIT_MS["s"]
    return total


def _parse_human_readable(text: str) -> float:
    lowered = text.lower()
    matches = _HUMAN_PART.findall(lowered)

    if not matches:
        raise DurationParseError(
            f"Invalid duration format: '{text}'. "
            "Expected milliseconds or units like '250ms', '1.5s', '2m', '1m30s'"
        )

    # Reject leftovers such as "5 parsecs" or "10x"
    rebuilt = "".join(f"{number}{unit}" for number, unit in matches)
    if rebuilt != re.sub(r"\s+", "", lowered):
        raise DurationParseError(
            f"Invalid characters in duration: '{text}'. "
            "Use digits with units ms, s, m or h"
        )

    return sum(float(number) * _UNIT_MS[unit] for number, unit in matches)


def format_duration_ms(duration_ms: float) -> str:
    """Render milliseconds the way people write them: '0ms', '250ms', '1.5s', '2m'."""
    if duration_ms < 1000:
        return f"{duration_ms:g}ms"
    if duration_ms < 60_000:
        return f"{duration_ms / 1000:g}s"
    return f"{duration_ms / 60_000:g}m"

"""Cycle Runner - non-blocking forward/backward phase scheduling on asyncio."""

__version__ = "1.0.0"

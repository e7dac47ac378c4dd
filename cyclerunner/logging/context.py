"""Context propagation for structured logging.

Fields pushed here are injected into every log record emitted within the
scope. The store is a ``ContextVar``, so each asyncio task sees the context
that was active when the task was created. The scheduler relies on that:
phase tasks are spawned inside ``log_context(schedule=..., cycle=...,
phase=...)`` and anything a phase callback logs carries those fields.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional


LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the current logging context."""
    return LogContextVar.get().copy()


def push_log_context(**kwargs) -> Token:
    """Merge new fields into the logging context.

    Args:
        **kwargs: Key-value pairs to add to the logging context

    Returns:
        Token for restoring the previous state with pop_log_context()

    Example:
        >>> token = push_log_context(schedule="hero-banner", cycle=0)
        >>> # ... every log record now includes schedule and cycle ...
        >>> pop_log_context(token)
    """
    current = LogContextVar.get()
    return LogContextVar.set({**current, **kwargs})


def pop_log_context(token: Token) -> None:
    """Restore the logging context to the state captured by ``token``."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Clear all logging context fields (mainly for tests)."""
    LogContextVar.set({})


class log_context:
    """Context manager for scoped logging context.

    Example:
        >>> with log_context(schedule="hero-banner", phase="forward"):
        ...     logger.info("Phase started")  # includes schedule and phase
    """

    def __init__(self, **kwargs):
        """Initialize context manager with fields to add.

        Args:
            **kwargs: Key-value pairs to add to the logging context
        """
        self.kwargs = kwargs
        self.token: Optional[Token] = None

    def __enter__(self):
        """Push the fields onto the logging context."""
        self.token = push_log_context(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Restore the previous context; exceptions are not suppressed."""
        if self.token is not None:
            pop_log_context(self.token)
            self.token = None
        return False

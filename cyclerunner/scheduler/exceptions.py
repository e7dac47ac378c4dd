"""Exceptions raised by the phase runners."""


class InvalidScheduleError(ValueError):
    """Raised when a runner is constructed with an unusable count.

    Attributes:
        field: Name of the offending constructor argument
        value: The rejected value
    """

    def __init__(self, field: str, value, reason: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} {value!r}: {reason}")

"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from cyclerunner.scheduler.models import UNBOUNDED

from .duration import DurationParseError, parse_duration_ms

# Spellings accepted for "run until stopped" in a schedules file
UNBOUNDED_ALIASES = frozenset({"infinite", "unbounded", "inf", "forever"})


class ScheduleMode(str, Enum):
    """How a schedule drives its phases."""

    PING_PONG = "ping-pong"
    LOOP = "loop"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _to_ms(value: Union[str, int, float]) -> float:
    try:
        return parse_duration_ms(value)
    except DurationParseError as e:
        raise ValueError(str(e)) from e


class ScheduleConfig(BaseModel):
    """One named schedule to run."""

    name: str = Field(..., min_length=1, description="Slot name for the schedule")
    mode: ScheduleMode = Field(ScheduleMode.PING_PONG, description="ping-pong or loop")
    cycles: Union[int, str] = Field(
        3, description="Cycles (ping-pong) or iterations (loop); 'infinite' for unbounded"
    )
    delay: Union[str, int, float] = Field(
        "500ms", description="Pause between phases, e.g. '0', '250ms', '1s'"
    )
    phase_duration: Union[str, int, float] = Field(
        "250ms", description="How long each demo phase takes"
    )
    enabled: bool = Field(True, description="Whether to run this schedule")

    # Computed fields
    delay_ms: Optional[float] = None
    phase_duration_ms: Optional[float] = None

    model_config = {"use_enum_values": True}

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Schedule name cannot be empty or whitespace-only")
        return stripped

    @field_validator("cycles")
    @classmethod
    def validate_cycles(cls, v: Union[int, str]) -> Union[int, str]:
        """Accept a non-negative integer or an alias for unbounded."""
        if isinstance(v, str):
            if v.strip().lower() in UNBOUNDED_ALIASES:
                return "infinite"
            raise ValueError(
                f"cycles must be a whole number or 'infinite', got '{v}'"
            )
        if v < 0:
            raise ValueError(f"cycles must not be negative, got {v}")
        return v

    @field_validator("delay", "phase_duration")
    @classmethod
    def validate_duration(cls, v: Union[str, int, float]) -> Union[str, int, float]:
        _to_ms(v)
        return v

    @model_validator(mode="after")
    def compute_durations(self):
        self.delay_ms = _to_ms(self.delay)
        self.phase_duration_ms = _to_ms(self.phase_duration)
        return self

    @property
    def is_unbounded(self) -> bool:
        return self.cycles == "infinite"

    @property
    def requested_cycles(self) -> Union[int, float]:
        """Cycle count to hand to a runner (UNBOUNDED for 'infinite')."""
        return UNBOUNDED if self.is_unbounded else self.cycles


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the cycle runner."""

    schedules: List[ScheduleConfig] = Field(
        ..., min_length=1, description="Schedules to run"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    @model_validator(mode="after")
    def validate_schedules(self):
        if not self.get_enabled_schedules():
            raise ValueError(
                "At least one schedule must be enabled. All schedules have enabled=false."
            )

        seen = set()
        for schedule in self.schedules:
            if schedule.name in seen:
                raise ValueError(
                    f"Duplicate schedule name: '{schedule.name}' appears multiple times"
                )
            seen.add(schedule.name)

        return self

    def get_enabled_schedules(self) -> List[ScheduleConfig]:
        return [schedule for schedule in self.schedules if schedule.enabled]

    def get_schedule(self, name: str) -> Optional[ScheduleConfig]:
        for schedule in self.schedules:
            if schedule.name == name:
                return schedule
        return None

"""Configuration management for the cycle runner."""

from .duration import DurationParseError, format_duration_ms, parse_duration_ms
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, validate_config_file
from .models import (
    AppConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ScheduleConfig,
    ScheduleMode,
)

__all__ = [
    # Loader functions
    "load_config",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "ScheduleConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "ScheduleMode",
    "LogLevel",
    "LogFormat",
    # Durations
    "parse_duration_ms",
    "format_duration_ms",
    # Exceptions
    "ConfigurationError",
    "DurationParseError",
]

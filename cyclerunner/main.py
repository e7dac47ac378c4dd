"""Command-line entry point that runs the configured schedules."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import asyncio
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

from cyclerunner.config.environment import EnvironmentConfig
from cyclerunner.config.duration import format_duration_ms
from cyclerunner.config.exceptions import ConfigurationError
from cyclerunner.config.loader import load_config, validate_config_file
from cyclerunner.config.models import AppConfig, ScheduleConfig, ScheduleMode
from cyclerunner.logging import get_logger
from cyclerunner.logging.config import configure_logging
from cyclerunner.scheduler import Phase, RunnerRegistry

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Path, log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve logging settings.

    Log level priority is CLI > environment > schedules file; log format
    priority is environment > schedules file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    if not env_config.log_format:
        env_config.log_format = app_config.logging.format

    return app_config, env_config


def make_demo_phase(schedule: ScheduleConfig, label: str):
    """Build a phase callable that logs and then takes phase_duration to finish."""
    duration_seconds = (schedule.phase_duration_ms or 0) / 1000

    async def play() -> None:
        logger.info(
            f"{schedule.name}: playing {label}",
            extra={"event": "demo.phase.playing", "direction": label},
        )
        await asyncio.sleep(duration_seconds)

    return play


def start_schedules(registry: RunnerRegistry, app_config: AppConfig) -> List[str]:
    """Start one runner per enabled schedule; returns the started slot names."""
    started = []
    for schedule in app_config.get_enabled_schedules():
        if schedule.mode == ScheduleMode.LOOP.value:
            registry.start_loop(
                schedule.name,
                play=make_demo_phase(schedule, "loop"),
                iterations=schedule.requested_cycles,
                delay_ms=schedule.delay_ms,
            )
        else:
            registry.start_cycle(
                schedule.name,
                play_forward=make_demo_phase(schedule, Phase.FORWARD.value),
                play_backward=make_demo_phase(schedule, Phase.BACKWARD.value),
                cycles=schedule.requested_cycles,
                delay_ms=schedule.delay_ms,
            )
        delay = format_duration_ms(schedule.delay_ms)
        logger.info(
            f"Schedule {schedule.name} ({schedule.mode}): {schedule.cycles} cycles, {delay} between phases",
            extra={
                "event": "service.schedule.configured",
                "slot": schedule.name,
                "mode": schedule.mode,
                "delay": delay,
                "phase_duration": format_duration_ms(schedule.phase_duration_ms),
            },
        )
        started.append(schedule.name)
    return started


async def run_schedules(app_config: AppConfig, duration: Optional[float] = None) -> int:
    """
    Run every enabled schedule until all complete, the duration elapses,
    or SIGINT/SIGTERM arrives.

    Returns:
        Exit code (always 0; phase failures never fail the run)
    """
    loop = asyncio.get_running_loop()
    registry = RunnerRegistry(normalize_counts=False)

    def request_shutdown(signum: int) -> None:
        logger.info(
            f"Received signal {signum}, stopping schedules",
            extra={"event": "service.signal_received", "signal": signum},
        )
        registry.stop_all()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, request_shutdown, signum)
        except (NotImplementedError, RuntimeError):
            # Not available on every platform or outside the main thread
            pass

    slots = start_schedules(registry, app_config)
    runners = [registry.get(slot) for slot in slots]
    logger.info(
        f"Started {len(slots)} schedule(s)",
        extra={"event": "service.schedules.started", "schedules": slots},
    )

    try:
        if duration is not None:
            await asyncio.wait_for(registry.wait_all(), timeout=duration)
        else:
            await registry.wait_all()
    except asyncio.TimeoutError:
        logger.info(
            f"Run duration of {duration}s elapsed, stopping schedules",
            extra={"event": "service.duration_elapsed", "duration_seconds": duration},
        )
        registry.stop_all()

    # Let phases that were mid-flight at stop time finish
    await asyncio.gather(*(runner.wait() for runner in runners))

    for slot, runner in zip(slots, runners):
        logger.info(
            f"Schedule {slot} finished",
            extra={"event": "service.schedule.finished", "slot": slot, **runner.get_status().to_dict()},
        )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    start_time = time.time()
    parser = argparse.ArgumentParser(
        description="Cycle Runner - run forward/backward phase schedules on an asyncio loop"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("schedules.yaml"),
        help="Path to schedules file (default: schedules.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop all schedules after this many seconds",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the schedules file and exit",
    )

    args = parser.parse_args(argv)

    if args.validate:
        return 0 if validate_config_file(args.config) else 1

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
        configure_logging(
            level=env_config.log_level,
            format_type=env_config.log_format,
            environment=env_config.environment,
        )

        logger.info(
            "Cycle Runner starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config),
                "schedule_count": len(app_config.get_enabled_schedules()),
                "log_level": env_config.log_level,
            },
        )

        exit_code = asyncio.run(run_schedules(app_config, args.duration))

        logger.info(
            "Cycle Runner stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return exit_code

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())

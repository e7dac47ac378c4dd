"""Unit tests for the main entry point.

Tests the main() function including:
- Configuration loading with priority (CLI > env > config)
- Validate-only mode
- Running schedules to completion, for a fixed duration, or until a shutdown signal
- Exit code handling
"""

import asyncio
import logging
import signal
from unittest.mock import patch

import pytest

from cyclerunner.config.models import AppConfig, ScheduleConfig
from cyclerunner.main import load_runtime_config, main, run_schedules, start_schedules
from cyclerunner.scheduler import CycleScheduler, LoopRunner, RunnerRegistry

FAST_CONFIG = """
schedules:
  - name: hero
    cycles: 2
    delay: 0
    phase_duration: 0
  - name: ticker
    mode: loop
    cycles: 3
    delay: 0
    phase_duration: 0
  - name: paused
    enabled: false
logging:
  level: WARNING
"""


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    def test_file_values_are_used_by_default(self, write_config, clean_env):
        _, env_config = load_runtime_config(write_config(FAST_CONFIG), None)

        assert env_config.log_level == "WARNING"
        assert env_config.log_format == "key-value"

    def test_environment_overrides_file(self, write_config, monkeypatch, clean_env):
        monkeypatch.setenv("LOG_LEVEL", "error")
        monkeypatch.setenv("LOG_FORMAT", "json")

        _, env_config = load_runtime_config(write_config(FAST_CONFIG), None)

        assert env_config.log_level == "ERROR"
        assert env_config.log_format == "json"

    def test_cli_overrides_environment(self, write_config, monkeypatch, clean_env):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        _, env_config = load_runtime_config(write_config(FAST_CONFIG), "DEBUG")

        assert env_config.log_level == "DEBUG"


class TestStartSchedules:
    """Test that enabled schedules become registry slots."""

    @pytest.mark.asyncio
    async def test_start_schedules_skips_disabled(self):
        app_config = AppConfig(
            schedules=[
                ScheduleConfig(name="hero", cycles=1, delay=0, phase_duration=0),
                ScheduleConfig(name="ticker", mode="loop", cycles=1, delay=0, phase_duration=0),
                ScheduleConfig(name="paused", enabled=False),
            ]
        )
        registry = RunnerRegistry(normalize_counts=False)

        slots = start_schedules(registry, app_config)

        assert slots == ["hero", "ticker"]
        assert isinstance(registry.get("hero"), CycleScheduler)
        assert isinstance(registry.get("ticker"), LoopRunner)
        assert registry.get("paused") is None
        await asyncio.wait_for(registry.wait_all(), timeout=2)

    @pytest.mark.asyncio
    async def test_run_schedules_stops_unbounded_after_duration(self):
        app_config = AppConfig(
            schedules=[ScheduleConfig(name="forever", cycles="infinite", delay="10ms", phase_duration=0)]
        )

        exit_code = await asyncio.wait_for(run_schedules(app_config, duration=0.1), timeout=2)

        assert exit_code == 0

    @pytest.mark.asyncio
    async def test_start_schedules_logs_readable_durations(self, caplog):
        caplog.set_level(logging.INFO, logger="cyclerunner.main")
        app_config = AppConfig(
            schedules=[ScheduleConfig(name="hero", cycles=1, delay="1.5s", phase_duration="250ms")]
        )
        registry = RunnerRegistry(normalize_counts=False)

        start_schedules(registry, app_config)
        registry.stop_all()

        configured = [r for r in caplog.records if getattr(r, "event", None) == "service.schedule.configured"]
        assert len(configured) == 1
        assert configured[0].delay == "1.5s"
        assert configured[0].phase_duration == "250ms"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("signum", [signal.SIGINT, signal.SIGTERM])
    async def test_shutdown_signal_stops_all_schedules(self, monkeypatch, caplog, signum):
        caplog.set_level(logging.INFO, logger="cyclerunner.main")
        loop = asyncio.get_running_loop()
        handlers = {}

        def fake_add_signal_handler(sig, callback, *args):
            handlers[sig] = (callback, args)

        monkeypatch.setattr(loop, "add_signal_handler", fake_add_signal_handler)
        app_config = AppConfig(
            schedules=[
                ScheduleConfig(name="forever", cycles="infinite", delay="10ms", phase_duration=0),
                ScheduleConfig(name="ticker", mode="loop", cycles="infinite", delay="10ms", phase_duration=0),
            ]
        )

        run = asyncio.ensure_future(run_schedules(app_config))
        await asyncio.sleep(0.05)
        assert not run.done()
        assert set(handlers) == {signal.SIGINT, signal.SIGTERM}

        callback, args = handlers[signum]
        callback(*args)
        exit_code = await asyncio.wait_for(run, timeout=1)

        assert exit_code == 0
        events = [getattr(r, "event", None) for r in caplog.records]
        assert "service.signal_received" in events
        finished = [r for r in caplog.records if getattr(r, "event", None) == "service.schedule.finished"]
        assert {r.slot for r in finished} == {"forever", "ticker"}
        assert all(r.stopped is True for r in finished)
        assert all(r.has_pending_timer is False for r in finished)


class TestMain:
    """Test suite for main() function."""

    def test_validate_only_valid(self, write_config, capsys):
        exit_code = main(["--validate", "--config", str(write_config(FAST_CONFIG))])

        assert exit_code == 0
        assert "is valid" in capsys.readouterr().out

    def test_validate_only_invalid(self, write_config, capsys):
        path = write_config("schedules:\n  - name: bad\n    cycles: -1\n")

        assert main(["--validate", "--config", str(path)]) == 1

    def test_runs_schedules_to_completion(self, write_config, clean_env, restore_root_logging):
        exit_code = main(["--config", str(write_config(FAST_CONFIG))])

        assert exit_code == 0

    def test_duration_stops_unbounded_schedule(self, write_config, clean_env, restore_root_logging):
        path = write_config(
            "schedules:\n"
            "  - name: spinner\n"
            "    cycles: infinite\n"
            "    delay: 10ms\n"
            "    phase_duration: 0\n"
        )

        with pytest.warns(UserWarning, match="unbounded"):
            exit_code = main(["--config", str(path), "--duration", "0.1", "--log-level", "ERROR"])

        assert exit_code == 0

    def test_configuration_error_returns_1(self, tmp_path, clean_env, capsys):
        exit_code = main(["--config", str(tmp_path / "missing.yaml")])

        assert exit_code == 1
        assert "Configuration Error" in capsys.readouterr().err

    def test_unexpected_error_returns_1(self, write_config, clean_env, restore_root_logging, capsys):
        with patch("cyclerunner.main.run_schedules", side_effect=RuntimeError("boom")):
            exit_code = main(["--config", str(write_config(FAST_CONFIG))])

        assert exit_code == 1
        assert "Fatal error: boom" in capsys.readouterr().err

    def test_keyboard_interrupt_returns_0(self, write_config, clean_env, restore_root_logging):
        with patch("cyclerunner.main.asyncio.run", side_effect=KeyboardInterrupt):
            exit_code = main(["--config", str(write_config(FAST_CONFIG))])

        assert exit_code == 0

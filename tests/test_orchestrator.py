"""Tests for component wiring and restart behaviour."""

from __future__ import annotations

from zen_focus.core.config import Config
from zen_focus.core.orchestrator import Orchestrator
from zen_focus.focus.schemas import TimerStatus

from conftest import FakeClock


def make_config(tmp_path) -> Config:
    return Config(
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
        config_dir=tmp_path / "cfg",
        timer={"tick_interval_seconds": 60},
        sound={"enabled": False},
    )


async def test_session_survives_process_restart(tmp_path):
    config = make_config(tmp_path)
    clock = FakeClock()

    first = Orchestrator(config, clock)
    engine = await first.start()
    engine.set_focus_duration(30)
    engine.set_label("report")
    engine.start()
    clock.advance(600)
    await first.stop()

    second = Orchestrator(config, clock)
    engine = await second.start()
    try:
        assert engine.status == TimerStatus.RUNNING
        assert engine.remaining_seconds == 1200
        assert engine.label == "report"
        assert second.preferences.focus_minutes == 30
    finally:
        await second.stop()


async def test_session_finished_while_closed_is_credited_once(tmp_path):
    config = make_config(tmp_path)
    clock = FakeClock()

    first = Orchestrator(config, clock)
    engine = await first.start()
    engine.start()
    await first.stop()

    clock.advance(hours=3)

    for _ in range(3):
        orchestrator = Orchestrator(config, clock)
        engine = await orchestrator.start()
        assert engine.total_focus_seconds_today == 1500
        assert engine.completed_pomodoros_today == 1
        assert len(engine.session_history) == 1
        await orchestrator.stop()


async def test_config_limits_reach_ledger(tmp_path):
    config = make_config(tmp_path)
    config.ledger.history_limit = 7

    orchestrator = Orchestrator(config, FakeClock())
    await orchestrator.start()
    try:
        assert orchestrator.ledger.history_limit == 7
        assert orchestrator.engine.tick_interval == 60
    finally:
        await orchestrator.stop()

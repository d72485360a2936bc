"""Shared fixtures: a controllable clock and a temporary store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from zen_focus.focus.chime import ChimePlayer
from zen_focus.focus.ledger import StatisticsLedger
from zen_focus.focus.timer import TimerEngine
from zen_focus.storage.database import KeyValueStore
from zen_focus.storage.preferences import Preferences


LOCAL_TZ = timezone(timedelta(hours=2))


class FakeClock:
    """Clock that only moves when told to. Returns aware local times."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 5, 1, 9, 0, 0, tzinfo=LOCAL_TZ)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0, **kwargs) -> None:
        self.current += timedelta(seconds=seconds, **kwargs)


class RecordingChime(ChimePlayer):
    """Counts play requests instead of making noise."""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.plays = 0
        self.fail = fail

    def play(self) -> None:
        self.plays += 1
        if self.fail:
            raise OSError("no audio device")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def store(tmp_path):
    store = KeyValueStore(tmp_path / "zen_focus.db")
    await store.open()
    yield store
    await store.close()


@pytest.fixture
def preferences(store) -> Preferences:
    return Preferences(store)


@pytest.fixture
def ledger(store, clock) -> StatisticsLedger:
    return StatisticsLedger(store, clock)


@pytest.fixture
def chime() -> RecordingChime:
    return RecordingChime()


@pytest.fixture
def make_engine(store, ledger, preferences, clock, chime):
    """Build engines sharing one store; ticking is effectively disabled."""
    engines: list[TimerEngine] = []

    def factory(tick_interval: float = 3600.0) -> TimerEngine:
        engine = TimerEngine(
            store,
            ledger,
            preferences,
            clock=clock,
            chime=chime,
            tick_interval=tick_interval,
        )
        engines.append(engine)
        return engine

    yield factory

    for engine in engines:
        engine.close()


@pytest.fixture
def engine(make_engine) -> TimerEngine:
    return make_engine()

"""Pomodoro timer state machine anchored to an absolute end time.

Remaining time is never accumulated by subtraction. While running it is
always derived from `end_time - now`, so missed ticks, scheduler jitter,
suspension and even process death cannot introduce drift. The end time is
held in UTC, so UTC offset changes (DST, travel) do not move it. The periodic
tick only refreshes observers and notices completion.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from pydantic import ValidationError

from zen_focus.core.clock import Clock, SystemClock, time_between, to_utc
from zen_focus.focus.chime import ChimePlayer
from zen_focus.focus.ledger import StatisticsLedger
from zen_focus.focus.schemas import SessionRecord, SessionType, TimerSnapshot, TimerStatus
from zen_focus.storage.database import KeyValueStore
from zen_focus.storage.preferences import (
    KEY_TIMER_END_TIME,
    KEY_TIMER_SESSION_LABEL,
    KEY_TIMER_SESSION_TYPE,
    KEY_TIMER_TOTAL_SECONDS,
    Preferences,
)

logger = logging.getLogger(__name__)

_ZERO = timedelta(0)

_SNAPSHOT_KEYS = (
    KEY_TIMER_END_TIME,
    KEY_TIMER_TOTAL_SECONDS,
    KEY_TIMER_SESSION_TYPE,
    KEY_TIMER_SESSION_LABEL,
)


class LifecycleEvent(Enum):
    """Host process visibility changes."""

    BACKGROUNDED = "backgrounded"
    FOREGROUNDED = "foregrounded"


@dataclass(frozen=True)
class TimerView:
    """Read-only picture of the timer handed to observers."""

    status: TimerStatus
    session_type: SessionType
    remaining: timedelta
    total_duration: timedelta
    label: str

    @property
    def remaining_seconds(self) -> int:
        return max(0, math.ceil(self.remaining.total_seconds()))

    @property
    def remaining_display(self) -> str:
        """Format time remaining as MM:SS."""
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    @property
    def progress(self) -> float:
        """Progress through the session (0.0-1.0)."""
        total = self.total_duration.total_seconds()
        if total <= 0:
            return 1.0
        return min(1.0, max(0.0, 1.0 - self.remaining.total_seconds() / total))


Observer = Callable[[TimerView], None]


class TimerEngine:
    """Focus/break timer with crash recovery and lifecycle handling.

    Usage:
        engine = TimerEngine(store, ledger, preferences)
        unsubscribe = engine.subscribe(lambda view: print(view.remaining_display))

        engine.start()
        engine.pause()
        engine.start()          # resume
        engine.reset()          # credits elapsed focus time

        engine.handle_lifecycle(LifecycleEvent.BACKGROUNDED)
        engine.handle_lifecycle(LifecycleEvent.FOREGROUNDED)

    Commands are synchronous and never raise on a bad precondition; they are
    silently ignored. Periodic ticking runs as an asyncio task when an event
    loop is running. Otherwise the host is expected to call `tick()`.
    """

    DEFAULT_TICK_INTERVAL = 1.0  # seconds

    def __init__(
        self,
        store: KeyValueStore,
        ledger: StatisticsLedger,
        preferences: Preferences,
        clock: Clock | None = None,
        chime: ChimePlayer | None = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
    ):
        self._store = store
        self._ledger = ledger
        self._preferences = preferences
        self._clock = clock or SystemClock()
        self._chime = chime
        self.tick_interval = tick_interval

        self._focus_duration = timedelta(minutes=preferences.focus_minutes)
        self._break_duration = timedelta(minutes=preferences.break_minutes)

        self._status = TimerStatus.IDLE
        self._session_type = SessionType.FOCUS
        self._total_duration = self._focus_duration
        self._remaining = self._total_duration
        self._end_time: datetime | None = None
        self._label = ""

        self._ticker: asyncio.Task | None = None
        self._tick_generation = 0
        self._observers: list[Observer] = []

        self.recover()

    # Queries

    @property
    def status(self) -> TimerStatus:
        return self._status

    @property
    def session_type(self) -> SessionType:
        return self._session_type

    @property
    def total_duration(self) -> timedelta:
        return self._total_duration

    @property
    def remaining(self) -> timedelta:
        """Time left; derived from the end time while running."""
        if self._status == TimerStatus.RUNNING and self._end_time is not None:
            return max(_ZERO, time_between(self._clock.now(), self._end_time))
        return self._remaining

    @property
    def remaining_seconds(self) -> int:
        return self.view().remaining_seconds

    @property
    def progress(self) -> float:
        return self.view().progress

    @property
    def label(self) -> str:
        return self._label

    @property
    def end_time(self) -> datetime | None:
        return self._end_time

    @property
    def is_active(self) -> bool:
        """Whether a session is in progress (running or paused)."""
        return self._status in (TimerStatus.RUNNING, TimerStatus.PAUSED)

    @property
    def is_ticking(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def completed_pomodoros_today(self) -> int:
        return self._ledger.get_completed_pomodoros_today()

    @property
    def total_focus_seconds_today(self) -> int:
        return self._ledger.get_today_seconds()

    def stats_for_last_n_days(self, days: int) -> dict[str, int]:
        return self._ledger.get_last_n_days(days)

    @property
    def session_history(self) -> list[SessionRecord]:
        return self._ledger.get_session_history()

    def view(self) -> TimerView:
        return TimerView(
            status=self._status,
            session_type=self._session_type,
            remaining=self.remaining,
            total_duration=self._total_duration,
            label=self._label,
        )

    # Observers

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register a callback for state changes. Returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        if not self._observers:
            return
        view = self.view()
        for observer in list(self._observers):
            try:
                observer(view)
            except Exception as e:
                logger.error(f"Error in timer observer: {e}")

    # Commands

    def set_focus_duration(self, minutes: int) -> None:
        """Change the focus length. Only allowed while idle."""
        if self._status != TimerStatus.IDLE:
            logger.debug("Ignoring focus duration change while session is active")
            return
        if minutes < 1:
            logger.warning(f"Ignoring invalid focus duration: {minutes}")
            return

        self._focus_duration = timedelta(minutes=minutes)
        if self._session_type == SessionType.FOCUS:
            self._total_duration = self._focus_duration
            self._remaining = self._total_duration
        self._preferences.focus_minutes = minutes
        self._notify()

    def set_break_duration(self, minutes: int) -> None:
        """Change the break length; applies immediately to an idle break."""
        if minutes < 1:
            logger.warning(f"Ignoring invalid break duration: {minutes}")
            return

        self._break_duration = timedelta(minutes=minutes)
        if self._session_type == SessionType.BREAK and self._status == TimerStatus.IDLE:
            self._total_duration = self._break_duration
            self._remaining = self._total_duration
        self._preferences.break_minutes = minutes
        self._notify()

    def set_label(self, text: str) -> None:
        self._label = text.strip()
        if self._status == TimerStatus.RUNNING:
            self._save_snapshot()
        self._notify()

    def start(self) -> None:
        """Start from idle or resume from paused."""
        if self._status not in (TimerStatus.IDLE, TimerStatus.PAUSED):
            logger.debug(f"Ignoring start while {self._status.value}")
            return

        self._end_time = to_utc(self._clock.now()) + self._remaining
        self._status = TimerStatus.RUNNING

        self._save_snapshot()
        self._start_ticker()

        logger.info(
            f"Timer started: {self._session_type.value}, "
            f"{self.view().remaining_display} remaining"
        )
        self._notify()

    def pause(self) -> None:
        """Freeze the remaining time."""
        # A session whose end time has already passed completes instead
        self.tick()
        if self._status != TimerStatus.RUNNING or self._end_time is None:
            logger.debug(f"Ignoring pause while {self._status.value}")
            return

        self._cancel_ticker()
        self._remaining = max(_ZERO, time_between(self._clock.now(), self._end_time))
        self._end_time = None
        self._status = TimerStatus.PAUSED
        self._clear_snapshot()

        logger.info(f"Timer paused with {self.view().remaining_display} remaining")
        self._notify()

    def reset(self) -> None:
        """Return to an idle focus session, crediting focus time already spent."""
        self.tick()
        self._cancel_ticker()

        if self.is_active and self._session_type == SessionType.FOCUS:
            elapsed = self._total_duration - self.remaining
            elapsed_seconds = int(elapsed.total_seconds())
            if elapsed_seconds > 0:
                self._ledger.add_focus_seconds(elapsed_seconds)

        self._enter_focus_idle()
        self._clear_snapshot()

        logger.info("Timer reset")
        self._notify()

    def skip_to_next(self) -> None:
        """Abandon the current session and move to the next phase, idle."""
        self._cancel_ticker()
        self._clear_snapshot()

        if self._session_type == SessionType.FOCUS:
            self._enter_break_idle()
        else:
            self._enter_focus_idle()

        logger.info(f"Skipped to {self._session_type.value}")
        self._notify()

    def start_break(self) -> None:
        """Begin the break that follows a completed focus session."""
        if self._status != TimerStatus.COMPLETED or self._session_type != SessionType.FOCUS:
            logger.debug("Ignoring start_break without a completed focus session")
            return

        self._enter_break_idle()
        self.start()

    def tick(self) -> None:
        """Recompute remaining time from the end time; finalize at zero."""
        if self._status != TimerStatus.RUNNING or self._end_time is None:
            return

        diff = time_between(self._clock.now(), self._end_time)
        if diff <= _ZERO:
            self._finalize()
        else:
            self._remaining = diff
            self._notify()

    # Host lifecycle

    def handle_lifecycle(self, event: LifecycleEvent) -> None:
        if event == LifecycleEvent.BACKGROUNDED:
            self.backgrounded()
        elif event == LifecycleEvent.FOREGROUNDED:
            self.foregrounded()

    def backgrounded(self) -> None:
        """Stop ticking; the end time and snapshot stay as they are."""
        if self._status != TimerStatus.RUNNING:
            return
        self._cancel_ticker()
        self._save_snapshot()
        logger.debug("Timer backgrounded")

    def foregrounded(self) -> None:
        """Resync immediately, then resume periodic ticking."""
        if self._status != TimerStatus.RUNNING:
            return
        self.tick()
        if self._status == TimerStatus.RUNNING:
            self._start_ticker()
        logger.debug("Timer foregrounded")

    # Crash recovery

    def recover(self) -> None:
        """Restore a session that was running when the process last exited.

        An end time already in the past completes the session right away.
        The snapshot is cleared before stats are credited, so calling this
        again cannot credit the same session twice.
        """
        snapshot = self._load_snapshot()
        if snapshot is None:
            return

        self._total_duration = timedelta(seconds=snapshot.total_duration_seconds)
        self._session_type = snapshot.session_type
        self._label = snapshot.label

        diff = time_between(self._clock.now(), snapshot.end_time)
        if diff <= _ZERO:
            logger.info("Recovered session already elapsed, completing it")
            self._status = TimerStatus.RUNNING
            self._end_time = snapshot.end_time
            self._finalize()
            return

        self._end_time = snapshot.end_time
        self._remaining = diff
        self._status = TimerStatus.RUNNING
        self._start_ticker()

        logger.info(f"Recovered running {self._session_type.value} session")
        self._notify()

    def close(self) -> None:
        """Stop ticking and drop observers."""
        self._cancel_ticker()
        self._observers.clear()

    # Internals

    def _enter_break_idle(self) -> None:
        self._session_type = SessionType.BREAK
        self._total_duration = self._break_duration
        self._remaining = self._break_duration
        self._status = TimerStatus.IDLE
        self._end_time = None

    def _enter_focus_idle(self) -> None:
        self._session_type = SessionType.FOCUS
        self._total_duration = self._focus_duration
        self._remaining = self._focus_duration
        self._status = TimerStatus.IDLE
        self._end_time = None
        self._label = ""

    def _finalize(self) -> None:
        """Natural completion: bookkeeping, chime, notify."""
        self._cancel_ticker()
        self._remaining = _ZERO
        self._end_time = None
        self._status = TimerStatus.COMPLETED
        self._clear_snapshot()

        total_seconds = int(self._total_duration.total_seconds())
        minutes = total_seconds // 60

        if self._session_type == SessionType.FOCUS:
            self._ledger.add_focus_seconds(total_seconds)
            self._ledger.increment_completed_pomodoros_today()
            self._ledger.record_session(minutes, SessionType.FOCUS, self._label)
            logger.info(f"Focus session complete ({minutes} min)")
        else:
            self._ledger.record_session(minutes, SessionType.BREAK)
            logger.info(f"Break complete ({minutes} min)")

        self._play_chime()
        self._notify()

    def _play_chime(self) -> None:
        if self._chime is None:
            return
        try:
            if self._preferences.sound_enabled:
                self._chime.play()
        except Exception as e:
            logger.warning(f"Chime failed: {e}")

    def _save_snapshot(self) -> None:
        if self._status != TimerStatus.RUNNING or self._end_time is None:
            self._clear_snapshot()
            return

        self._store.set_string(KEY_TIMER_END_TIME, self._end_time.isoformat())
        self._store.set_int(KEY_TIMER_TOTAL_SECONDS, int(self._total_duration.total_seconds()))
        self._store.set_string(KEY_TIMER_SESSION_TYPE, self._session_type.value)
        self._store.set_string(KEY_TIMER_SESSION_LABEL, self._label)

    def _clear_snapshot(self) -> None:
        for key in _SNAPSHOT_KEYS:
            self._store.remove(key)

    def _load_snapshot(self) -> TimerSnapshot | None:
        if not self._store.contains(KEY_TIMER_END_TIME):
            self._clear_snapshot()
            return None

        raw = {
            "end_time": self._store.get_json(KEY_TIMER_END_TIME),
            "total_duration_seconds": self._store.get_json(KEY_TIMER_TOTAL_SECONDS),
            "session_type": self._store.get_json(KEY_TIMER_SESSION_TYPE) or SessionType.FOCUS.value,
            "label": self._store.get_json(KEY_TIMER_SESSION_LABEL) or "",
        }
        try:
            snapshot = TimerSnapshot.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable timer snapshot: {e.error_count()} errors")
            self._clear_snapshot()
            return None

        snapshot.end_time = to_utc(snapshot.end_time)
        return snapshot

    def _start_ticker(self) -> None:
        self._cancel_ticker()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, host drives tick()")
            return
        self._ticker = loop.create_task(self._tick_loop(self._tick_generation))

    def _cancel_ticker(self) -> None:
        # Bumping the generation turns any loop still in flight into a no-op
        self._tick_generation += 1
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _tick_loop(self, generation: int) -> None:
        """Periodic UI refresh."""
        while generation == self._tick_generation:
            try:
                await asyncio.sleep(self.tick_interval)
                if generation != self._tick_generation:
                    break
                self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in timer tick loop: {e}")

"""Daily focus statistics, pomodoro counter and session history."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from pydantic import ValidationError

from zen_focus.core.clock import Clock, SystemClock, date_key
from zen_focus.focus.schemas import (
    DailyStats,
    SessionRecord,
    SessionType,
    daily_stats_adapter,
)
from zen_focus.storage.database import KeyValueStore
from zen_focus.storage.preferences import (
    KEY_COMPLETED_POMODOROS,
    KEY_COMPLETED_POMODOROS_DATE,
    KEY_DAILY_STATS,
    KEY_SESSION_HISTORY,
)

logger = logging.getLogger(__name__)


class StatisticsLedger:
    """Sole writer of the daily stats map, the pomodoro counter and the history log.

    All dates are local calendar dates taken from the injected clock at call
    time. Stored structures that fail to parse are treated as empty.

    Usage:
        ledger = StatisticsLedger(store, clock)
        ledger.add_focus_seconds(1500)
        ledger.increment_completed_pomodoros_today()
        ledger.record_session(25, SessionType.FOCUS, "writing")

        ledger.get_last_n_days(7)  # {"2024-05-01": 0, ..., "2024-05-07": 1500}
    """

    DEFAULT_RETENTION_DAYS = 30
    DEFAULT_HISTORY_LIMIT = 100

    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock | None = None,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self.retention_days = retention_days
        self.history_limit = history_limit

    def _today(self) -> date:
        return self._clock.now().date()

    # Daily focus seconds

    def _load_stats(self) -> DailyStats:
        raw = self._store.get_json(KEY_DAILY_STATS)
        if raw is None:
            return {}
        try:
            return daily_stats_adapter.validate_python(raw)
        except ValidationError as e:
            logger.warning(f"Discarding malformed daily stats: {e.error_count()} errors")
            return {}

    def _prune(self, stats: DailyStats) -> DailyStats:
        cutoff = date_key(self._today() - timedelta(days=self.retention_days))
        kept = {}
        for key, seconds in stats.items():
            try:
                date.fromisoformat(key)
            except ValueError:
                logger.debug(f"Dropping invalid stats key {key!r}")
                continue
            # ISO date strings sort chronologically
            if key >= cutoff:
                kept[key] = seconds
        return kept

    def add_focus_seconds(self, seconds: int) -> None:
        """Credit focused seconds to today and prune old days."""
        if seconds <= 0:
            return

        stats = self._load_stats()
        today = date_key(self._today())
        stats[today] = stats.get(today, 0) + int(seconds)
        self._store.set_json(KEY_DAILY_STATS, self._prune(stats))

        logger.debug(f"Credited {seconds}s of focus to {today}")

    def get_today_seconds(self) -> int:
        return self._load_stats().get(date_key(self._today()), 0)

    def get_last_n_days(self, days: int) -> dict[str, int]:
        """Focus seconds for the last `days` days, oldest first, today last."""
        stats = self._load_stats()
        today = self._today()
        result = {}
        for offset in range(days - 1, -1, -1):
            key = date_key(today - timedelta(days=offset))
            result[key] = stats.get(key, 0)
        return result

    def get_week_total_seconds(self, days: int = 7) -> int:
        return sum(self.get_last_n_days(days).values())

    # Completed pomodoros (date-scoped)

    def _roll_counter(self) -> str:
        """Reset the counter if the stored date marker is not today."""
        today = date_key(self._today())
        if self._store.get_string(KEY_COMPLETED_POMODOROS_DATE) != today:
            self._store.set_int(KEY_COMPLETED_POMODOROS, 0)
            self._store.set_string(KEY_COMPLETED_POMODOROS_DATE, today)
        return today

    def get_completed_pomodoros_today(self) -> int:
        self._roll_counter()
        return self._store.get_int(KEY_COMPLETED_POMODOROS, 0) or 0

    def increment_completed_pomodoros_today(self) -> int:
        count = self.get_completed_pomodoros_today() + 1
        self._store.set_int(KEY_COMPLETED_POMODOROS, count)
        return count

    # Session history

    def get_session_history(self) -> list[SessionRecord]:
        """Recorded sessions, newest first."""
        raw = self._store.get_json(KEY_SESSION_HISTORY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Discarding malformed session history")
            return []

        records = []
        for item in raw:
            try:
                records.append(SessionRecord.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid session record: {e.error_count()} errors")
        return records

    def record_session(
        self,
        duration_minutes: int,
        session_type: SessionType,
        label: str = "",
    ) -> SessionRecord:
        """Prepend a record to the history, dropping the oldest beyond the limit."""
        record = SessionRecord(
            timestamp=self._clock.now(),
            duration_minutes=max(0, duration_minutes),
            type=session_type,
            label=label if session_type == SessionType.FOCUS else "",
        )
        history = [record] + self.get_session_history()
        history = history[: self.history_limit]
        self._store.set_json(KEY_SESSION_HISTORY, [r.to_storage() for r in history])

        logger.info(f"Recorded {session_type.value} session ({record.duration_minutes} min)")
        return record

    def clear(self) -> None:
        """Delete all statistics and history."""
        for key in (
            KEY_DAILY_STATS,
            KEY_COMPLETED_POMODOROS,
            KEY_COMPLETED_POMODOROS_DATE,
            KEY_SESSION_HISTORY,
        ):
            self._store.remove(key)
        logger.info("Statistics cleared")

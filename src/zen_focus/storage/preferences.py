"""Typed preference surface over the key/value store."""

from __future__ import annotations

import logging
from enum import Enum

from zen_focus.storage.database import KeyValueStore

logger = logging.getLogger(__name__)

# Stable storage keys
KEY_TIMER_DURATION = "timer_duration_minutes"
KEY_BREAK_DURATION = "break_duration_minutes"
KEY_THEME_MODE = "theme_mode"
KEY_SOUND_ENABLED = "sound_enabled"
KEY_DAILY_STATS = "daily_focus_stats"
KEY_COMPLETED_POMODOROS = "completed_pomodoros_today"
KEY_COMPLETED_POMODOROS_DATE = "completed_pomodoros_date"
KEY_SESSION_HISTORY = "session_history"
KEY_TIMER_END_TIME = "timer_end_time"
KEY_TIMER_TOTAL_SECONDS = "timer_total_duration_seconds"
KEY_TIMER_SESSION_TYPE = "timer_session_type"
KEY_TIMER_SESSION_LABEL = "timer_session_label"


class ThemeMode(str, Enum):
    """Display theme choice."""

    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"


class Preferences:
    """User settings: durations, theme and sound."""

    def __init__(
        self,
        store: KeyValueStore,
        default_focus_minutes: int = 25,
        default_break_minutes: int = 5,
        default_sound_enabled: bool = True,
    ):
        self._store = store
        self._default_focus_minutes = default_focus_minutes
        self._default_break_minutes = default_break_minutes
        self._default_sound_enabled = default_sound_enabled

    @property
    def focus_minutes(self) -> int:
        value = self._store.get_int(KEY_TIMER_DURATION, self._default_focus_minutes)
        if value is None or value < 1:
            return self._default_focus_minutes
        return value

    @focus_minutes.setter
    def focus_minutes(self, minutes: int) -> None:
        if minutes < 1:
            raise ValueError("Focus duration must be at least one minute")
        self._store.set_int(KEY_TIMER_DURATION, minutes)

    @property
    def break_minutes(self) -> int:
        value = self._store.get_int(KEY_BREAK_DURATION, self._default_break_minutes)
        if value is None or value < 1:
            return self._default_break_minutes
        return value

    @break_minutes.setter
    def break_minutes(self, minutes: int) -> None:
        if minutes < 1:
            raise ValueError("Break duration must be at least one minute")
        self._store.set_int(KEY_BREAK_DURATION, minutes)

    @property
    def theme_mode(self) -> ThemeMode:
        raw = self._store.get_string(KEY_THEME_MODE, ThemeMode.SYSTEM.value)
        try:
            return ThemeMode(raw)
        except ValueError:
            logger.warning(f"Unknown theme mode {raw!r}, using system")
            return ThemeMode.SYSTEM

    @theme_mode.setter
    def theme_mode(self, mode: ThemeMode | str) -> None:
        self._store.set_string(KEY_THEME_MODE, ThemeMode(mode).value)

    @property
    def sound_enabled(self) -> bool:
        value = self._store.get_bool(KEY_SOUND_ENABLED, self._default_sound_enabled)
        return self._default_sound_enabled if value is None else value

    @sound_enabled.setter
    def sound_enabled(self, enabled: bool) -> None:
        self._store.set_bool(KEY_SOUND_ENABLED, enabled)

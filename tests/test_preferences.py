"""Tests for typed preferences."""

from __future__ import annotations

import pytest

from zen_focus.storage.preferences import KEY_THEME_MODE, KEY_TIMER_DURATION, Preferences, ThemeMode


async def test_defaults(preferences):
    assert preferences.focus_minutes == 25
    assert preferences.break_minutes == 5
    assert preferences.theme_mode == ThemeMode.SYSTEM
    assert preferences.sound_enabled is True


async def test_configured_defaults(store):
    prefs = Preferences(store, default_focus_minutes=50, default_break_minutes=10, default_sound_enabled=False)

    assert prefs.focus_minutes == 50
    assert prefs.break_minutes == 10
    assert prefs.sound_enabled is False


async def test_round_trip(preferences):
    preferences.focus_minutes = 45
    preferences.break_minutes = 15
    preferences.theme_mode = "dark"
    preferences.sound_enabled = False

    assert preferences.focus_minutes == 45
    assert preferences.break_minutes == 15
    assert preferences.theme_mode == ThemeMode.DARK
    assert preferences.sound_enabled is False


async def test_unknown_theme_falls_back_to_system(preferences, store):
    store.set_string(KEY_THEME_MODE, "neon")
    assert preferences.theme_mode == ThemeMode.SYSTEM


async def test_stored_zero_duration_uses_default(preferences, store):
    store.set_int(KEY_TIMER_DURATION, 0)
    assert preferences.focus_minutes == 25


async def test_rejects_non_positive_durations(preferences):
    with pytest.raises(ValueError):
        preferences.focus_minutes = 0
    with pytest.raises(ValueError):
        preferences.break_minutes = -1

"""Storage layer for preferences and durable records."""

from zen_focus.storage.database import KeyValueStore, open_store
from zen_focus.storage.preferences import Preferences, ThemeMode

__all__ = ["KeyValueStore", "open_store", "Preferences", "ThemeMode"]

"""Core components: configuration and time source."""

from zen_focus.core.clock import Clock, SystemClock, date_key
from zen_focus.core.config import Config, get_config

__all__ = ["Clock", "SystemClock", "date_key", "Config", "get_config"]

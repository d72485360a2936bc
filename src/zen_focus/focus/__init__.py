"""Focus timer state machine and statistics ledger."""

from zen_focus.focus.chime import ChimePlayer
from zen_focus.focus.ledger import StatisticsLedger
from zen_focus.focus.schemas import SessionRecord, SessionType, TimerSnapshot, TimerStatus
from zen_focus.focus.timer import LifecycleEvent, TimerEngine, TimerView

__all__ = [
    "ChimePlayer",
    "StatisticsLedger",
    "SessionRecord",
    "SessionType",
    "TimerSnapshot",
    "TimerStatus",
    "LifecycleEvent",
    "TimerEngine",
    "TimerView",
]

"""Pydantic schemas for persisted timer and statistics records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class TimerStatus(str, Enum):
    """Lifecycle status of the current session."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class SessionType(str, Enum):
    """Whether the current session is a focus or break period."""

    FOCUS = "focus"
    BREAK = "break"


class SessionRecord(BaseModel):
    """One finished session in the history log.

    Serialized with the short field names (`date`, `duration`) used by the
    stored history array.
    """

    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(alias="date", description="When the session finished")
    duration_minutes: int = Field(alias="duration", ge=0)
    type: SessionType
    label: str = ""

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class TimerSnapshot(BaseModel):
    """Durable mirror of a running session, used for crash recovery."""

    end_time: datetime
    total_duration_seconds: int = Field(gt=0)
    session_type: SessionType = SessionType.FOCUS
    label: str = ""


# Date key (YYYY-MM-DD) -> focused seconds
DailyStats = dict[str, int]

daily_stats_adapter = TypeAdapter(DailyStats)

'''
Schedule event payloads
'''
import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ScheduleEventType(str, Enum):
    SCHEDULE_UPDATED = "schedule-updated"
    WEEK_CHANGED = "week-changed"
    USER_COLOR_CHANGED = "user-color-changed"
    SYNC_REQUIRED = "sync-required"


class ScheduleEvent(BaseModel):
    """
    A change notification. It carries no schedule data: receivers treat it
    as a dirty flag and re-pull. `source` names the emitting view so the
    emitter can ignore its own echo.
    """
    type: ScheduleEventType
    source: Optional[str] = None
    user_id: Optional[int] = None
    week_date: Optional[dt.date] = None
    day_name: Optional[str] = None
    timestamp: Optional[float] = Field(None, description="Epoch seconds, set on emit.")

    model_config = ConfigDict(frozen=True)

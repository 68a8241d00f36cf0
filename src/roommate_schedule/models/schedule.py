'''
Schedule API / domain models
'''
import datetime as dt
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class WeekWindow(BaseModel):
    """
    The Sunday-to-Saturday span containing a reference date.
    Derived on demand, never persisted.
    """
    start: dt.datetime = Field(..., description="Sunday at local midnight.")
    end: dt.datetime = Field(..., description="Following Saturday at 23:59:59.999.")
    start_str: str = Field(..., description="YYYY-MM-DD of start, from local calendar fields.")
    end_str: str = Field(..., description="YYYY-MM-DD of end, from local calendar fields.")

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> str:
        """Canonical week key used for caching and same-week checks."""
        return self.start_str

    def contains(self, date_str: str) -> bool:
        # YYYY-MM-DD strings order the same way as the dates they spell.
        return self.start_str <= date_str <= self.end_str


class TimeBlock(BaseModel):
    """
    One labelled interval of one user's schedule on one calendar day.
    `id` is assigned by the store and absent on unsaved blocks.
    """
    id: Optional[UUID] = None
    start: str = Field(..., pattern=HHMM_PATTERN)
    end: str = Field(..., pattern=HHMM_PATTERN)
    label: str = ""
    all_day: bool = False


# user id -> day name -> blocks
UserSchedule = dict[str, list[TimeBlock]]
ScheduleSnapshot = dict[int, UserSchedule]


class ScheduleRow(BaseModel):
    """
    A flat `schedules` row as stored remotely. `date` disambiguates the week,
    `day` is only a convenience label.
    """
    id: Optional[UUID] = None
    user_id: int
    day: Optional[str] = None
    date: Optional[dt.date] = None
    start_time: str
    end_time: str
    label: str = ""
    all_day: bool = False
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


# --- Store results ---

class GatewayResult(BaseModel):
    """
    Structured outcome of a gateway call. Store errors are reported here
    instead of being raised so callers can retry, fall back or show a banner.
    """
    ok: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None) -> "GatewayResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "GatewayResult":
        return cls(ok=False, error=error)


class WeekSaveStatus(str, Enum):
    SAVED = "saved"
    FAILED = "failed"       # nothing changed in the store
    PARTIAL = "partial"     # the week was deleted but the replacement was not written


class WeekSaveResult(BaseModel):
    status: WeekSaveStatus
    week_key: str
    deleted_count: int = 0
    inserted_ids: list[UUID] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == WeekSaveStatus.SAVED


# --- Editor entries (optimistic ids) ---

class PendingEntry(BaseModel):
    """A block created locally that the store has not confirmed yet."""
    state: Literal["pending"] = "pending"
    temp_id: str
    day: str
    block: TimeBlock

    @property
    def ref(self) -> str:
        return self.temp_id


class ConfirmedEntry(BaseModel):
    """A block the store has acknowledged under `store_id`."""
    state: Literal["confirmed"] = "confirmed"
    store_id: UUID
    day: str
    block: TimeBlock

    @property
    def ref(self) -> str:
        return str(self.store_id)


EditorEntry = Annotated[Union[PendingEntry, ConfirmedEntry], Field(discriminator="state")]


# --- API payloads ---

class TimeBlockWrite(BaseModel):
    """Payload for one block inside a week save."""
    start: str = Field(..., pattern=HHMM_PATTERN)
    end: str = Field(..., pattern=HHMM_PATTERN)
    label: str = Field("", max_length=255)
    all_day: bool = False


class WeekSaveRequest(BaseModel):
    days: dict[str, list[TimeBlockWrite]] = Field(default_factory=dict)


class BlockUpsertRequest(BaseModel):
    user_id: int
    date: dt.date
    block: TimeBlock


class BlockUpsertRead(BaseModel):
    id: UUID
    day: str
    date: dt.date


class WeekRead(BaseModel):
    week_key: str
    window: WeekWindow
    range_label: str
    description: str
    dates: list[dt.date]


class WeekScheduleRead(BaseModel):
    week: WeekRead
    schedules: ScheduleSnapshot
    from_cache: bool = Field(False, description="True when the store was unreachable and the cached week was served.")

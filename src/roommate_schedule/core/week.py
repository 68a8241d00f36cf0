'''
Week math for the multi-week schedules.

Weeks run Sunday to Saturday. Every calculation works on the local calendar
fields (year/month/day) of the value it is given; nothing is converted to UTC,
because doing so shifts week boundaries by a day in negative-offset timezones.
'''
from datetime import date, datetime, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from ..common.config import settings
from ..common.exceptions import InvalidDayNameError, InvalidWeekParamError
from ..models.schedule import WeekWindow

DateLike = Union[date, datetime]

DAYS_OF_WEEK: tuple[str, ...] = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"
)
MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                       "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


# --- Helpers ---

def local_now() -> datetime:
    """Current wall-clock time, in LOCAL_TIMEZONE when configured."""
    if settings.LOCAL_TIMEZONE:
        return datetime.now(ZoneInfo(settings.LOCAL_TIMEZONE))
    return datetime.now()

def format_local_date(value: DateLike) -> str:
    """YYYY-MM-DD from the value's own calendar fields."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"

def day_index(value: DateLike) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (value.weekday() + 1) % 7

def day_name_for_date(value: DateLike) -> str:
    return DAYS_OF_WEEK[day_index(value)]

def is_valid_day_name(day_name: Optional[str]) -> bool:
    return day_name in DAYS_OF_WEEK

def _as_local_midnight(value: DateLike) -> datetime:
    tzinfo = value.tzinfo if isinstance(value, datetime) else None
    return datetime(value.year, value.month, value.day, tzinfo=tzinfo)


# --- Week windows ---

def get_week_window(value: DateLike) -> WeekWindow:
    """
    Returns the Sunday-to-Saturday window containing `value`.
    start is Sunday 00:00:00, end is Saturday 23:59:59.999 (same tzinfo as the input).
    The input is never modified.
    """
    midnight = _as_local_midnight(value)
    start = midnight - timedelta(days=day_index(midnight))
    end = start + timedelta(days=6, hours=23, minutes=59, seconds=59, microseconds=999000)
    return WeekWindow(
        start=start,
        end=end,
        start_str=format_local_date(start),
        end_str=format_local_date(end),
    )

def format_week_key(value: DateLike) -> str:
    return get_week_window(value).start_str

def is_same_week(first: DateLike, second: DateLike) -> bool:
    return format_week_key(first) == format_week_key(second)

def get_week_dates(value: DateLike) -> list[date]:
    """The seven calendar dates of the week, Sunday first."""
    start = get_week_window(value).start.date()
    return [start + timedelta(days=offset) for offset in range(7)]

def get_date_for_day_in_week(value: DateLike, day_name: str) -> str:
    """
    Returns YYYY-MM-DD for `day_name` inside the week containing `value`.
    Raises InvalidDayNameError for anything but the seven day names.
    """
    if not is_valid_day_name(day_name):
        raise InvalidDayNameError(f"Invalid day name: {day_name!r}")
    start = get_week_window(value).start
    return format_local_date(start + timedelta(days=DAYS_OF_WEEK.index(day_name)))


# --- Parsing ---

def parse_local_date(value: str) -> date:
    """
    Parses YYYY-MM-DD by explicit component splitting.
    Raises InvalidWeekParamError on anything else.
    """
    parts = value.strip().split("-")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise InvalidWeekParamError(f"Week parameter must look like YYYY-MM-DD, got {value!r}")
    year, month, day = (int(part) for part in parts)
    try:
        return date(year, month, day)
    except ValueError as e:
        raise InvalidWeekParamError(f"Week parameter {value!r} is not a calendar date: {e}") from e

def parse_week_param(week_param: Optional[str], today: Optional[date] = None) -> date:
    """
    Turns a week identifier back into a date anchoring that week.
    A missing/empty parameter means the current week.
    """
    if not week_param:
        return today or local_now().date()
    return parse_local_date(week_param)


# --- Display helpers ---

def format_week_range(value: DateLike) -> str:
    """'Jan 14 - 20' inside one month, 'Jan 28 - Feb 3' across months."""
    window = get_week_window(value)
    start, end = window.start, window.end

    def _short(d: datetime) -> str:
        return f"{MONTH_ABBREVIATIONS[d.month - 1]} {d.day}"

    if start.month == end.month:
        return f"{_short(start)} - {end.day}"
    return f"{_short(start)} - {_short(end)}"

def get_current_day_name(now: Optional[datetime] = None) -> str:
    """
    Day name for `now`, where hours before DAY_ROLLOVER_HOUR still belong
    to the previous calendar day (late-night schedules roll forward).
    """
    now = now or local_now()
    if now.hour < settings.DAY_ROLLOVER_HOUR:
        now = now - timedelta(days=1)
    return day_name_for_date(now)

def is_today(date_str: str, today: Optional[date] = None) -> bool:
    today = today or local_now().date()
    return parse_local_date(date_str) == today

def get_week_offset(value: DateLike, today: Optional[DateLike] = None) -> int:
    """0 for this week, -1 for last week, 1 for next week and so on."""
    current_start = get_week_window(today or local_now()).start.date()
    target_start = get_week_window(value).start.date()
    return (target_start - current_start).days // 7

def get_week_description(value: DateLike, today: Optional[DateLike] = None) -> str:
    offset = get_week_offset(value, today)
    if offset == 0:
        return "This Week"
    if offset == -1:
        return "Last Week"
    if offset == 1:
        return "Next Week"
    if offset < 0:
        return f"{abs(offset)} weeks ago"
    return f"In {offset} weeks"

def shift_week(value: DateLike, weeks: int) -> date:
    """Reference date moved by whole weeks, as a plain calendar date."""
    return date(value.year, value.month, value.day) + timedelta(weeks=weeks)

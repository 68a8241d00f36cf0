'''
Turns flat `schedules` rows into per-user, per-day schedule snapshots.
'''
import re
from typing import Iterable, Optional

from ..common.config import settings
from ..common.logger import log
from ..models.schedule import ScheduleRow, ScheduleSnapshot, TimeBlock, UserSchedule, WeekWindow
from .week import DAYS_OF_WEEK, day_name_for_date, format_local_date, is_valid_day_name


def empty_user_schedule() -> UserSchedule:
    return {day: [] for day in DAYS_OF_WEEK}


TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


def normalize_time(value: Optional[str]) -> Optional[str]:
    """
    '09:00:00' -> '09:00', '9:00' -> '09:00'. The store column is free text and
    TIME columns add seconds. Returns None when the value is not a clock time.
    """
    match = TIME_RE.match((value or "").strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def row_to_block(row: ScheduleRow) -> Optional[TimeBlock]:
    """None when a time can't be repaired; the caller drops the row."""
    start = normalize_time(row.start_time)
    end = normalize_time(row.end_time)
    if start is None or end is None:
        log.warning(
            f"Schedule row {row.id} for user {row.user_id} has unreadable times "
            f"{row.start_time!r}-{row.end_time!r}. Skipping it."
        )
        return None
    if start != row.start_time[:5] or end != row.end_time[:5]:
        log.warning(f"Schedule row {row.id} times {row.start_time!r}-{row.end_time!r} read as {start}-{end}.")
    return TimeBlock(
        id=row.id,
        start=start,
        end=end,
        label=row.label or "",
        all_day=bool(row.all_day),
    )


def resolve_day_name(row: ScheduleRow) -> str:
    """
    Picks the day bucket for a row.
    The explicit date wins; the day label is only trusted when there is no date.
    Rows with neither land on FALLBACK_DAY_NAME with a warning.
    """
    if row.date is not None:
        derived = day_name_for_date(row.date)
        if row.day != derived:
            log.warning(
                f"Schedule row {row.id} has day {row.day!r} but date {row.date} is a {derived}. "
                f"Using {derived}."
            )
        return derived

    if is_valid_day_name(row.day):
        return row.day

    fallback = settings.FALLBACK_DAY_NAME
    log.warning(
        f"Schedule row {row.id} for user {row.user_id} has no date and an invalid day {row.day!r}. "
        f"Defaulting to {fallback}."
    )
    return fallback


def normalize_rows(
    rows: Iterable[ScheduleRow],
    window: WeekWindow,
    user_ids: Optional[Iterable[int]] = None,
) -> ScheduleSnapshot:
    """
    Groups rows by user id and day name for one week.

    - Every user in `user_ids` (and every user seen in `rows`) gets all seven days.
    - Rows dated outside the window are dropped, whatever their day label says.
    - Store order is preserved inside a day; use `sort_blocks` to display.

    A fresh snapshot is built on every call, nothing is shared with the input.
    """
    snapshot: ScheduleSnapshot = {}
    for user_id in user_ids or ():
        snapshot[user_id] = empty_user_schedule()

    skipped = 0
    for row in rows:
        if row.date is not None and not window.contains(format_local_date(row.date)):
            skipped += 1
            continue

        block = row_to_block(row)
        if block is None:
            continue
        day = resolve_day_name(row)
        user_schedule = snapshot.setdefault(row.user_id, empty_user_schedule())
        user_schedule[day].append(block)

    if skipped:
        log.info(f"Dropped {skipped} rows outside week {window.start_str}..{window.end_str}.")
    return snapshot


def sort_blocks(blocks: Iterable[TimeBlock]) -> list[TimeBlock]:
    """Stable display order: all-day blocks first, then by start time."""
    return sorted(blocks, key=lambda block: (not block.all_day, block.start))


def copy_snapshot(snapshot: ScheduleSnapshot) -> ScheduleSnapshot:
    """Deep copy, so two holders never alias the same lists or blocks."""
    return {
        user_id: {day: [block.model_copy() for block in blocks] for day, blocks in days.items()}
        for user_id, days in snapshot.items()
    }

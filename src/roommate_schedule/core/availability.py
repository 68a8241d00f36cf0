'''
Weekly availability summaries for the roommates view.
'''
from typing import Iterable

from ..models.schedule import ScheduleSnapshot, UserSchedule
from ..models.user import RoommateAvailability, UserRead
from .week import DAYS_OF_WEEK

# Monday-first order used to detect runs like "Mon-Fri".
WORK_WEEK_ORDER = DAYS_OF_WEEK[1:] + DAYS_OF_WEEK[:1]


def format_days_list(days: list[str]) -> str:
    """'Mon', 'Mon, Wed', 'Mon-Fri' or 'Mon, Wed, Fri'."""
    if not days:
        return "None"
    ordered = sorted(days, key=WORK_WEEK_ORDER.index)
    short = [day[:3] for day in ordered]
    if len(short) <= 2:
        return ", ".join(short)

    indexes = [WORK_WEEK_ORDER.index(day) for day in ordered]
    consecutive = all(b == a + 1 for a, b in zip(indexes, indexes[1:]))
    if consecutive:
        return f"{short[0]}-{short[-1]}"
    return ", ".join(short)


def describe_week(user_schedule: UserSchedule) -> str:
    working, all_day_off, no_schedule = [], [], []
    for day in DAYS_OF_WEEK:
        blocks = user_schedule.get(day, [])
        if any(block.all_day for block in blocks):
            all_day_off.append(day)
        elif blocks:
            working.append(day)
        else:
            no_schedule.append(day)

    if not working and not all_day_off:
        return "No schedule set"

    parts = []
    if working:
        parts.append(f"Working: {format_days_list(working)}")
    if all_day_off:
        parts.append(f"Day off: {format_days_list(all_day_off)}")
    if no_schedule:
        parts.append(f"No schedule: {format_days_list(no_schedule)}")
    return " • ".join(parts)


def summarize_availability(users: Iterable[UserRead], snapshot: ScheduleSnapshot) -> list[RoommateAvailability]:
    """
    A day is 'available' when it has blocks and none of them is all-day;
    any all-day block marks the day as a day off.
    """
    summaries = []
    for user in users:
        user_schedule = snapshot.get(user.id, {})
        available_days, all_day_off_days = [], []
        for index, day in enumerate(DAYS_OF_WEEK):
            blocks = user_schedule.get(day, [])
            if any(block.all_day for block in blocks):
                all_day_off_days.append(index)
            elif blocks:
                available_days.append(index)
        summaries.append(RoommateAvailability(
            user=user,
            available_days=available_days,
            all_day_off_days=all_day_off_days,
            description=describe_week(user_schedule),
        ))
    return summaries

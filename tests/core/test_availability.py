import pytest

from roommate_schedule.core.availability import describe_week, format_days_list, summarize_availability
from roommate_schedule.core.normalizer import empty_user_schedule, normalize_rows
from roommate_schedule.core.week import get_week_window
from roommate_schedule.models.schedule import TimeBlock

from tests.constants import TEST_USER_JOHN_ID, TEST_USER_NARUMI_ID, TEST_USER_RIKO_ID, TEST_WEEK_WEDNESDAY


@pytest.mark.parametrize("days, expected", [
    ([], "None"),
    (["Wednesday"], "Wed"),
    (["Wednesday", "Monday"], "Mon, Wed"),
    (["Friday", "Monday", "Tuesday", "Wednesday", "Thursday"], "Mon-Fri"),
    (["Monday", "Wednesday", "Friday"], "Mon, Wed, Fri"),
    (["Saturday", "Sunday", "Friday"], "Fri-Sun"),
])
def test_format_days_list(days, expected):
    assert format_days_list(days) == expected


class TestDescribeWeek:

    def test_empty_week(self):
        assert describe_week(empty_user_schedule()) == "No schedule set"

    def test_mixed_week(self):
        schedule = empty_user_schedule()
        for day in ("Monday", "Tuesday", "Wednesday"):
            schedule[day].append(TimeBlock(start="09:00", end="17:00"))
        schedule["Saturday"].append(TimeBlock(start="00:00", end="23:59", all_day=True))

        assert describe_week(schedule) == (
            "Working: Mon-Wed • Day off: Sat • No schedule: Thu, Fri, Sun"
        )


def test_summarize_availability(test_users, test_rows):
    snapshot = normalize_rows(test_rows, get_week_window(TEST_WEEK_WEDNESDAY),
                              user_ids=[u.id for u in test_users])

    summaries = {s.user.id: s for s in summarize_availability(test_users, snapshot)}

    # Day indexes are 0 = Sunday
    assert summaries[TEST_USER_RIKO_ID].available_days == [2, 4]
    assert summaries[TEST_USER_RIKO_ID].all_day_off_days == []
    assert summaries[TEST_USER_NARUMI_ID].available_days == []
    assert summaries[TEST_USER_NARUMI_ID].all_day_off_days == [5]
    assert summaries[TEST_USER_JOHN_ID].description == "No schedule set"

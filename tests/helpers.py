'''
Test doubles shared across the suite.
'''
import asyncio
import uuid
from datetime import date
from typing import Iterable, Optional

from roommate_schedule.core.week import get_date_for_day_in_week, parse_local_date
from roommate_schedule.models.schedule import (
    GatewayResult,
    ScheduleRow,
    TimeBlock,
    WeekSaveResult,
    WeekSaveStatus,
    WeekWindow,
)
from roommate_schedule.models.user import UserRead


class InMemoryGateway:
    """
    Same interface as RemoteScheduleGateway, backed by plain lists.

    - `fail_fetch` / `fail_writes` make every read / write report a store failure.
    - `fail_insert` makes replace_week fail after its delete, like a dropped
      connection between the two statements.
    - `gates[week_key]` (an asyncio.Event) holds fetch_week until it is set.
    """
    def __init__(self, users: Iterable[UserRead] = (), rows: Iterable[ScheduleRow] = (), atomic: bool = True):
        self.users = list(users)
        self.rows = list(rows)
        self.atomic = atomic
        self.fail_fetch = False
        self.fail_writes = False
        self.fail_insert = False
        self.gates: dict[str, asyncio.Event] = {}
        self.fetch_calls: list[str] = []

    async def fetch_users(self) -> GatewayResult:
        if self.fail_fetch:
            return GatewayResult.failure("connection refused")
        return GatewayResult.success([user.model_copy() for user in self.users])

    async def fetch_user_by_name(self, name: str) -> GatewayResult:
        if self.fail_fetch:
            return GatewayResult.failure("connection refused")
        return GatewayResult.success(next((u for u in self.users if u.name == name), None))

    async def update_user_color(self, user_id: int, color: str) -> GatewayResult:
        if self.fail_writes:
            return GatewayResult.failure("connection refused")
        for index, user in enumerate(self.users):
            if user.id == user_id:
                self.users[index] = user.model_copy(update={"color": color})
                return GatewayResult.success(True)
        return GatewayResult.success(False)

    async def fetch_week(self, user_ids: Optional[Iterable[int]], window: WeekWindow) -> GatewayResult:
        self.fetch_calls.append(window.key)
        gate = self.gates.get(window.key)
        if gate is not None:
            await gate.wait()
        if self.fail_fetch:
            return GatewayResult.failure("connection refused")
        wanted = None if user_ids is None else set(user_ids)
        return GatewayResult.success([
            row.model_copy() for row in self.rows
            if row.date is not None and window.contains(row.date.isoformat())
            and (wanted is None or row.user_id in wanted)
        ])

    async def upsert_block(self, user_id: int, day: str, block_date: date, block: TimeBlock) -> GatewayResult:
        if self.fail_writes:
            return GatewayResult.failure("connection refused")
        row = ScheduleRow(
            id=block.id or uuid.uuid4(), user_id=user_id, day=day, date=block_date,
            start_time=block.start, end_time=block.end, label=block.label, all_day=block.all_day,
        )
        if block.id is not None:
            for index, existing in enumerate(self.rows):
                if existing.id == block.id:
                    self.rows[index] = row
                    return GatewayResult.success(block.id)
            return GatewayResult.failure(f"Schedule block {block.id} not found.")
        self.rows.append(row)
        return GatewayResult.success(row.id)

    async def delete_block(self, block_id) -> GatewayResult:
        if self.fail_writes:
            return GatewayResult.failure("connection refused")
        before = len(self.rows)
        self.rows = [row for row in self.rows if row.id != block_id]
        return GatewayResult.success(before - len(self.rows))

    async def replace_week(self, user_id: int, window: WeekWindow, per_day_blocks) -> WeekSaveResult:
        if self.fail_writes:
            return WeekSaveResult(status=WeekSaveStatus.FAILED, week_key=window.key, error="connection refused")

        def in_week(row: ScheduleRow) -> bool:
            return row.user_id == user_id and row.date is not None and window.contains(row.date.isoformat())

        deleted = [row for row in self.rows if in_week(row)]
        if self.fail_insert:
            if self.atomic or not deleted:
                return WeekSaveResult(status=WeekSaveStatus.FAILED, week_key=window.key, error="insert failed")
            self.rows = [row for row in self.rows if not in_week(row)]
            return WeekSaveResult(status=WeekSaveStatus.PARTIAL, week_key=window.key,
                                  deleted_count=len(deleted), error="insert failed")

        self.rows = [row for row in self.rows if not in_week(row)]
        inserted = []
        for day, blocks in per_day_blocks.items():
            block_date = parse_local_date(get_date_for_day_in_week(window.start, day))
            for block in blocks:
                row = ScheduleRow(
                    id=uuid.uuid4(), user_id=user_id, day=day, date=block_date,
                    start_time=block.start, end_time=block.end, label=block.label, all_day=block.all_day,
                )
                self.rows.append(row)
                inserted.append(row.id)
        return WeekSaveResult(status=WeekSaveStatus.SAVED, week_key=window.key,
                              deleted_count=len(deleted), inserted_ids=inserted)


def make_row(user_id: int, day: Optional[str], row_date: Optional[date], start: str = "09:00",
             end: str = "17:00", label: str = "Work", all_day: bool = False,
             row_id: Optional[uuid.UUID] = None) -> ScheduleRow:
    return ScheduleRow(
        id=row_id or uuid.uuid4(), user_id=user_id, day=day, date=row_date,
        start_time=start, end_time=end, label=label, all_day=all_day,
    )

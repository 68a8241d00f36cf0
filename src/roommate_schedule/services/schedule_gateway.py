'''
Remote Schedule Gateway

Row-level access to the `users` and `schedules` tables. Every method returns a
structured result; store/network errors are logged and reported, never raised.
'''
from datetime import date
from typing import Annotated, Iterable, Optional, Union
from uuid import UUID

from fastapi import Depends
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..common.config import settings
from ..common.logger import log
from ..core.week import DAYS_OF_WEEK, get_date_for_day_in_week, parse_local_date
from ..database import models as db_models
from ..database.engine import get_db_session
from ..models.schedule import (
    GatewayResult,
    ScheduleRow,
    TimeBlock,
    TimeBlockWrite,
    WeekSaveResult,
    WeekSaveStatus,
    WeekWindow,
)
from ..models.user import UserRead

# Errors that mean "the store could not do it", as opposed to programming errors.
STORE_ERRORS = (SQLAlchemyError, OSError)

BlockLike = Union[TimeBlock, TimeBlockWrite]


class RemoteScheduleGateway:
    """
    Fetch / upsert / delete against the schedule store.
    Each write commits on its own; last writer wins at the row level.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except STORE_ERRORS as e:
            log.error(f"Rollback failed after store error: {e}")

    # --- Users ---

    async def fetch_users(self) -> GatewayResult:
        try:
            result = await self.db.execute(select(db_models.Users).order_by(db_models.Users.id))
            users = [UserRead.model_validate(user) for user in result.scalars().all()]
            return GatewayResult.success(users)
        except STORE_ERRORS as e:
            log.error(f"Failed to fetch users: {e}")
            return GatewayResult.failure(str(e))

    async def fetch_user_by_name(self, name: str) -> GatewayResult:
        """Success with a UserRead, or success with None when no user has that name."""
        try:
            result = await self.db.execute(
                select(db_models.Users).filter(db_models.Users.name == name)
            )
            user = result.scalars().first()
            return GatewayResult.success(UserRead.model_validate(user) if user else None)
        except STORE_ERRORS as e:
            log.error(f"Failed to fetch user {name!r}: {e}")
            return GatewayResult.failure(str(e))

    async def update_user_color(self, user_id: int, color: str) -> GatewayResult:
        """Success with True when the user row was updated, False when it does not exist."""
        try:
            result = await self.db.execute(
                update(db_models.Users).where(db_models.Users.id == user_id).values(color=color)
            )
            await self.db.commit()
            return GatewayResult.success(result.rowcount > 0)
        except STORE_ERRORS as e:
            await self._rollback()
            log.error(f"Failed to update color for user {user_id}: {e}")
            return GatewayResult.failure(str(e))

    # --- Schedules ---

    async def fetch_week(self, user_ids: Optional[Iterable[int]], window: WeekWindow) -> GatewayResult:
        """
        Rows dated inside the window, for `user_ids` (None = every user).
        Filters on the explicit date column, never on the day label.
        """
        stmt = select(db_models.Schedules).filter(
            db_models.Schedules.date >= parse_local_date(window.start_str),
            db_models.Schedules.date <= parse_local_date(window.end_str),
        )
        if user_ids is not None:
            user_ids = list(user_ids)
            if not user_ids:
                return GatewayResult.success([])
            stmt = stmt.filter(db_models.Schedules.user_id.in_(user_ids))
        stmt = stmt.order_by(db_models.Schedules.created_at)

        try:
            result = await self.db.execute(stmt)
            rows = [ScheduleRow.model_validate(row) for row in result.scalars().all()]
            log.info(f"Fetched {len(rows)} schedule rows for week {window.key} (users={user_ids}).")
            return GatewayResult.success(rows)
        except STORE_ERRORS as e:
            log.error(f"Failed to fetch schedules for week {window.key}: {e}")
            return GatewayResult.failure(str(e))

    async def upsert_block(self, user_id: int, day: str, block_date: date, block: TimeBlock) -> GatewayResult:
        """
        Updates the row `block.id` when set, otherwise inserts a new row.
        Success data is the row id. Inserting is not idempotent: callers must
        keep the returned id and pass it back on the next save.
        """
        values = {
            "user_id": user_id,
            "day": day,
            "date": block_date,
            "start_time": block.start,
            "end_time": block.end,
            "label": block.label,
            "all_day": block.all_day,
        }
        try:
            if block.id is not None:
                result = await self.db.execute(
                    update(db_models.Schedules)
                    .where(db_models.Schedules.id == block.id)
                    .values(**values)
                )
                if result.rowcount == 0:
                    await self._rollback()
                    log.warning(f"Tried to update non-existing schedule block {block.id}.")
                    return GatewayResult.failure(f"Schedule block {block.id} not found.")
                block_id = block.id
            else:
                result = await self.db.execute(
                    insert(db_models.Schedules).values(**values).returning(db_models.Schedules.id)
                )
                block_id = result.scalar_one()
            await self.db.commit()
            return GatewayResult.success(block_id)
        except STORE_ERRORS as e:
            await self._rollback()
            log.error(f"Failed to save block for user {user_id} on {block_date}: {e}")
            return GatewayResult.failure(str(e))

    async def delete_block(self, block_id: UUID) -> GatewayResult:
        """Deletes by id. A missing id is a successful no-op (data = rows removed)."""
        try:
            result = await self.db.execute(
                delete(db_models.Schedules).where(db_models.Schedules.id == block_id)
            )
            await self.db.commit()
            return GatewayResult.success(result.rowcount)
        except STORE_ERRORS as e:
            await self._rollback()
            log.error(f"Failed to delete schedule block {block_id}: {e}")
            return GatewayResult.failure(str(e))

    async def replace_week(
        self,
        user_id: int,
        window: WeekWindow,
        per_day_blocks: dict[str, list[BlockLike]],
    ) -> WeekSaveResult:
        """
        Deletes every row of the user inside the window, then inserts the given blocks.

        With ATOMIC_WEEK_REPLACE both halves share one transaction, so an insert
        failure rolls the delete back (FAILED). Without it the delete is committed
        first and an insert failure leaves the week empty (PARTIAL).
        """
        new_rows = []
        for day, blocks in per_day_blocks.items():
            block_date = parse_local_date(get_date_for_day_in_week(window.start, day))
            for block in blocks:
                new_rows.append({
                    "user_id": user_id,
                    "day": day,
                    "date": block_date,
                    "start_time": block.start,
                    "end_time": block.end,
                    "label": block.label,
                    "all_day": block.all_day,
                })
        new_rows.sort(key=lambda row: DAYS_OF_WEEK.index(row["day"]))

        atomic = settings.ATOMIC_WEEK_REPLACE
        week_key = window.key

        # 1. Delete
        try:
            result = await self.db.execute(
                delete(db_models.Schedules).where(
                    db_models.Schedules.user_id == user_id,
                    db_models.Schedules.date >= parse_local_date(window.start_str),
                    db_models.Schedules.date <= parse_local_date(window.end_str),
                )
            )
            deleted_count = result.rowcount
            if not atomic:
                await self.db.commit()
        except STORE_ERRORS as e:
            await self._rollback()
            log.error(f"Week save for user {user_id} ({week_key}) failed while deleting: {e}")
            return WeekSaveResult(status=WeekSaveStatus.FAILED, week_key=week_key, error=str(e))

        # 2. Insert
        try:
            inserted_ids: list[UUID] = []
            if new_rows:
                result = await self.db.execute(
                    insert(db_models.Schedules).returning(db_models.Schedules.id, sort_by_parameter_order=True),
                    new_rows,
                )
                inserted_ids = list(result.scalars().all())
            await self.db.commit()
        except STORE_ERRORS as e:
            await self._rollback()
            if not atomic and deleted_count > 0:
                log.critical(
                    f"Week save for user {user_id} ({week_key}) deleted {deleted_count} rows "
                    f"but failed to insert the replacement: {e}"
                )
                return WeekSaveResult(
                    status=WeekSaveStatus.PARTIAL, week_key=week_key,
                    deleted_count=deleted_count, error=str(e),
                )
            log.error(f"Week save for user {user_id} ({week_key}) failed while inserting: {e}")
            return WeekSaveResult(status=WeekSaveStatus.FAILED, week_key=week_key, error=str(e))

        log.info(f"Replaced week {week_key} for user {user_id}: "
                 f"-{deleted_count} +{len(inserted_ids)} rows.")
        return WeekSaveResult(
            status=WeekSaveStatus.SAVED, week_key=week_key,
            deleted_count=deleted_count, inserted_ids=inserted_ids,
        )

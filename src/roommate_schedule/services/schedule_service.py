'''
Schedule Service

The surface the views (and the HTTP API) use: fetch a normalized week,
save a whole week or a single block, and broadcast what changed.
'''
from datetime import date
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends

from ..common.exceptions import InvalidDayNameError, ScheduleStoreUnavailableError
from ..common.logger import log
from ..core.cache import WeekCache, get_week_cache
from ..core.events import ScheduleEventBus, get_event_bus
from ..core.normalizer import normalize_rows
from ..core.week import DateLike, day_name_for_date, get_week_window, is_valid_day_name
from ..models.schedule import (
    GatewayResult,
    ScheduleSnapshot,
    TimeBlock,
    WeekSaveResult,
    WeekSaveStatus,
)
from .schedule_gateway import BlockLike, RemoteScheduleGateway

SERVICE_SOURCE = "schedule-service"


class ScheduleService:
    """
    Fetch-normalize-cache for reads, write-invalidate-emit for mutations.
    """
    def __init__(
        self,
        gateway: Annotated[RemoteScheduleGateway, Depends(RemoteScheduleGateway)],
        cache: Annotated[WeekCache, Depends(get_week_cache)],
        event_bus: Annotated[ScheduleEventBus, Depends(get_event_bus)],
    ):
        self.gateway = gateway
        self.cache = cache
        self.event_bus = event_bus

    # --- Reads ---

    async def fetch_week_schedules(self, week_date: DateLike, user_id: Optional[int] = None) -> ScheduleSnapshot:
        """
        Fetches and normalizes the week containing `week_date`, for one user
        or (user_id=None) for every user. The result is written to the cache.
        Raises ScheduleStoreUnavailableError when the store cannot be reached.
        """
        window = get_week_window(week_date)

        if user_id is None:
            users_result = await self.gateway.fetch_users()
            if not users_result.ok:
                raise ScheduleStoreUnavailableError(users_result.error, operation="fetch")
            user_ids = [user.id for user in users_result.data]
            rows_result = await self.gateway.fetch_week(None, window)
        else:
            user_ids = [user_id]
            rows_result = await self.gateway.fetch_week(user_ids, window)

        if not rows_result.ok:
            raise ScheduleStoreUnavailableError(rows_result.error, operation="fetch")

        snapshot = normalize_rows(rows_result.data, window, user_ids)
        self.cache.put(window.key, snapshot, WeekCache.scope_for(user_id))
        return snapshot

    def read_cached_week(self, week_date: DateLike, user_id: Optional[int] = None) -> Optional[ScheduleSnapshot]:
        return self.cache.get(get_week_window(week_date).key, WeekCache.scope_for(user_id))

    async def fetch_week_or_cached(
        self, week_date: DateLike, user_id: Optional[int] = None
    ) -> tuple[ScheduleSnapshot, bool]:
        """
        Like fetch_week_schedules, but falls back to the cached snapshot when
        the store is unreachable. Returns (snapshot, served_from_cache).
        """
        try:
            return await self.fetch_week_schedules(week_date, user_id), False
        except ScheduleStoreUnavailableError:
            cached = self.read_cached_week(week_date, user_id)
            if cached is None:
                raise
            log.warning(f"Store unavailable, serving cached week {get_week_window(week_date).key}.")
            return cached, True

    # --- Writes ---

    async def save_week_for_user(
        self,
        user_id: int,
        week_date: DateLike,
        per_day_blocks: dict[str, list[BlockLike]],
        source: Optional[str] = None,
    ) -> WeekSaveResult:
        """
        Replaces the user's whole week. On success the week's cache entries
        are dropped and a schedule-updated event is emitted. A PARTIAL result
        also drops the cache and asks every view to re-sync, so nothing keeps
        presenting the old week as saved.
        """
        invalid = [day for day in per_day_blocks if not is_valid_day_name(day)]
        if invalid:
            raise InvalidDayNameError(f"Invalid day name(s) in week save: {invalid}")

        window = get_week_window(week_date)
        result = await self.gateway.replace_week(user_id, window, per_day_blocks)

        if result.status == WeekSaveStatus.SAVED:
            self.cache.invalidate_week(window.key)
            self.event_bus.emit_schedule_update(user_id, window.start.date(), source=source)
        elif result.status == WeekSaveStatus.PARTIAL:
            self.cache.invalidate_week(window.key)
            self.event_bus.request_sync(source or SERVICE_SOURCE)
        return result

    async def save_block(
        self, user_id: int, block_date: date, block: TimeBlock, source: Optional[str] = None
    ) -> GatewayResult:
        """Creates or updates one block. Success data is the store id."""
        day = day_name_for_date(block_date)
        result = await self.gateway.upsert_block(user_id, day, block_date, block)
        if result.ok:
            self.cache.invalidate_week(get_week_window(block_date).key)
            self.event_bus.emit_schedule_update(user_id, block_date, day_name=day, source=source)
        return result

    async def delete_block(
        self, block_id: UUID, user_id: int, block_date: date, source: Optional[str] = None
    ) -> GatewayResult:
        result = await self.gateway.delete_block(block_id)
        if result.ok:
            self.cache.invalidate_week(get_week_window(block_date).key)
            self.event_bus.emit_schedule_update(
                user_id, block_date, day_name=day_name_for_date(block_date), source=source
            )
        return result

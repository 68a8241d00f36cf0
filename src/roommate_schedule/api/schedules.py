'''
API endpoints for reading and saving weekly schedules.
'''
from datetime import date
from typing import Annotated, Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..common.exceptions import ScheduleStoreUnavailableError
from ..core.week import day_name_for_date, parse_week_param
from ..models.schedule import (
    BlockUpsertRead,
    BlockUpsertRequest,
    WeekSaveRequest,
    WeekSaveResult,
    WeekSaveStatus,
    WeekScheduleRead,
)
from ..services.schedule_service import ScheduleService
from .weeks import build_week_read

WeekQuery = Annotated[Optional[str], Query(description="Any YYYY-MM-DD date inside the week. Defaults to this week.")]
SourceQuery = Annotated[Optional[str], Query(description="Name of the view making the change.")]


class SchedulesAPI:
    """
    A class to encapsulate the schedule endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/schedules",
            tags=["Schedules"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/week",
                self.get_week_schedules,
                methods=["GET"],
                response_model=WeekScheduleRead)

        self.router.add_api_route(
                "/week/{user_id}",
                self.save_week,
                methods=["PUT"],
                response_model=WeekSaveResult)

        self.router.add_api_route(
                "/blocks",
                self.upsert_block,
                methods=["PUT"],
                response_model=BlockUpsertRead)

        self.router.add_api_route(
                "/blocks/{block_id}",
                self.delete_block,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def get_week_schedules(
        self,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)],
        week: WeekQuery = None,
        user_id: Annotated[Optional[int], Query(description="Only this user's schedule.")] = None,
    ) -> Any:
        """
        Retrieves the normalized schedule of one week, for every user or one.
        Serves the cached week when the store is unreachable.
        """
        week_date = parse_week_param(week)
        snapshot, from_cache = await schedule_service.fetch_week_or_cached(week_date, user_id)
        return WeekScheduleRead(week=build_week_read(week_date), schedules=snapshot, from_cache=from_cache)

    async def save_week(
        self,
        user_id: int,
        payload: WeekSaveRequest,
        response: Response,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)],
        week: WeekQuery = None,
        source: SourceQuery = None,
    ) -> Any:
        """
        Replaces the user's whole week with the given blocks.
        503 means nothing changed; 500 means the old week was deleted but
        the new one was not written and the save must be retried.
        """
        result = await schedule_service.save_week_for_user(
            user_id, parse_week_param(week), payload.days, source=source
        )
        if result.status == WeekSaveStatus.FAILED:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        elif result.status == WeekSaveStatus.PARTIAL:
            response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return result

    async def upsert_block(
        self,
        payload: BlockUpsertRequest,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)],
        source: SourceQuery = None,
    ) -> Any:
        """
        Creates a block (no id) or updates it by id. Returns the store id,
        which must be sent back on later saves of the same block.
        """
        result = await schedule_service.save_block(payload.user_id, payload.date, payload.block, source=source)
        if not result.ok:
            raise ScheduleStoreUnavailableError(result.error, operation="write")
        return BlockUpsertRead(id=result.data, day=day_name_for_date(payload.date), date=payload.date)

    async def delete_block(
        self,
        block_id: UUID,
        user_id: int,
        block_date: Annotated[date, Query(alias="date")],
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)],
        source: SourceQuery = None,
    ) -> None:
        """
        Deletes a block by id. Deleting an id that does not exist is not an error.
        """
        result = await schedule_service.delete_block(block_id, user_id, block_date, source=source)
        if not result.ok:
            raise ScheduleStoreUnavailableError(result.error, operation="write")
        return None

# Instantiate the class and export its router
schedules_api = SchedulesAPI()
router = schedules_api.router

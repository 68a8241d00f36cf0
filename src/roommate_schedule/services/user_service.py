'''

'''
from typing import Annotated, Optional

from fastapi import Depends

from ..common.exceptions import ScheduleStoreUnavailableError, UserNotFoundError
from ..common.logger import log
from ..core.events import ScheduleEventBus, get_event_bus
from ..models.user import UserRead
from .schedule_gateway import RemoteScheduleGateway


class UserService:
    """
    Roommate lookups and color changes. A user is identified by name.
    """
    def __init__(
        self,
        gateway: Annotated[RemoteScheduleGateway, Depends(RemoteScheduleGateway)],
        event_bus: Annotated[ScheduleEventBus, Depends(get_event_bus)],
    ):
        self.gateway = gateway
        self.event_bus = event_bus

    async def list_users(self) -> list[UserRead]:
        result = await self.gateway.fetch_users()
        if not result.ok:
            raise ScheduleStoreUnavailableError(result.error, operation="fetch")
        return result.data

    async def get_user_by_name(self, name: str) -> UserRead:
        result = await self.gateway.fetch_user_by_name(name)
        if not result.ok:
            raise ScheduleStoreUnavailableError(result.error, operation="fetch")
        if result.data is None:
            log.warning(f"Tried to fetch non-existing user: {name!r}")
            raise UserNotFoundError(f"User {name!r} not found.")
        return result.data

    async def update_user_color(self, user_id: int, color: str, source: Optional[str] = None) -> None:
        """Stores the new color and emits user-color-changed."""
        log.info(f"Updating color for user {user_id} to {color}")
        result = await self.gateway.update_user_color(user_id, color)
        if not result.ok:
            raise ScheduleStoreUnavailableError(result.error, operation="write")
        if not result.data:
            raise UserNotFoundError(f"User {user_id} not found.")
        self.event_bus.emit_user_color_change(user_id, source=source)

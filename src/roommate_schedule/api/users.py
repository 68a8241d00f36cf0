'''
API endpoints for roommates.
'''
from typing import Annotated, Any, List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..models.user import UserColorUpdate, UserRead
from ..services.user_service import UserService


class UsersAPI:
    """
    A class to encapsulate the user endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/users",
            tags=["Users"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
            "/",
            self.list_users,
            methods=["GET"],
            response_model=List[UserRead])

        self.router.add_api_route(
            "/by-name/{name}",
            self.get_user_by_name,
            methods=["GET"],
            response_model=UserRead)

        self.router.add_api_route(
            "/{user_id}/color",
            self.update_color,
            methods=["PATCH"],
            status_code=status.HTTP_204_NO_CONTENT)

    async def list_users(
        self,
        user_service: Annotated[UserService, Depends(UserService)]
    ) -> List[Any]:
        return await user_service.list_users()

    async def get_user_by_name(
        self,
        name: str,
        user_service: Annotated[UserService, Depends(UserService)]
    ) -> Any:
        return await user_service.get_user_by_name(name)

    async def update_color(
        self,
        user_id: int,
        payload: UserColorUpdate,
        user_service: Annotated[UserService, Depends(UserService)],
        source: Annotated[Optional[str], Query(description="Name of the view making the change.")] = None,
    ) -> None:
        """
        Changes a roommate's display color and notifies the other views.
        """
        await user_service.update_user_color(user_id, payload.color, source=source)
        return None

# Instantiate the class and export its router
users_api = UsersAPI()
router = users_api.router

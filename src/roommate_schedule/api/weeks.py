'''
API endpoints for week navigation metadata.
'''
from typing import Any

from fastapi import APIRouter

from ..core.week import (
    DateLike,
    format_week_range,
    get_week_dates,
    get_week_description,
    get_week_window,
    parse_week_param,
)
from ..models.schedule import WeekRead


def build_week_read(value: DateLike) -> WeekRead:
    window = get_week_window(value)
    return WeekRead(
        week_key=window.key,
        window=window,
        range_label=format_week_range(value),
        description=get_week_description(value),
        dates=get_week_dates(value),
    )


class WeeksAPI:
    """
    A class to encapsulate the week lookup endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/weeks",
            tags=["Weeks"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
            "/current",
            self.get_current_week,
            methods=["GET"],
            response_model=WeekRead)

        self.router.add_api_route(
            "/{week}",
            self.get_week,
            methods=["GET"],
            response_model=WeekRead)

    async def get_current_week(self) -> Any:
        """The week containing today (server local time)."""
        return build_week_read(parse_week_param(None))

    async def get_week(self, week: str) -> Any:
        """The week containing the YYYY-MM-DD date `week`."""
        return build_week_read(parse_week_param(week))

# Instantiate the class and export its router
weeks_api = WeeksAPI()
router = weeks_api.router

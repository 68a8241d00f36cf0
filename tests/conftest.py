'''
Pytest configuration.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any code is imported.
2. An in-memory stand-in for the remote schedule gateway, seeded with a known week.
3. Isolated event bus / cache / service instances for every test.
4. A FastAPI TestClient wired to those same instances.
'''

import os
os.environ["TEST_MODE"] = "True"

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from roommate_schedule.core.cache import WeekCache, get_week_cache
from roommate_schedule.core.events import ScheduleEventBus, get_event_bus
from roommate_schedule.main import app
from roommate_schedule.models.schedule import ScheduleRow
from roommate_schedule.models.user import UserRead
from roommate_schedule.services.schedule_gateway import RemoteScheduleGateway
from roommate_schedule.services.schedule_service import ScheduleService
from roommate_schedule.services.user_service import UserService

from tests.constants import (
    TEST_BLOCK_ID_DAY_OFF,
    TEST_BLOCK_ID_GYM,
    TEST_BLOCK_ID_OLD_WEEK,
    TEST_BLOCK_ID_WORK,
    TEST_USER_JOHN_ID,
    TEST_USER_NARUMI_ID,
    TEST_USER_RIKO_ID,
)
from tests.helpers import InMemoryGateway, make_row


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (solves 'trio' error).
    2. Promotes the scope to 'session' (solves 'ScopeMismatch').
    """
    return "asyncio"


@pytest.fixture(scope="function")
def test_users() -> list[UserRead]:
    return [
        UserRead(id=TEST_USER_RIKO_ID, name="Riko", color="#BB86FC"),
        UserRead(id=TEST_USER_NARUMI_ID, name="Narumi", color="#03DAC6"),
        UserRead(id=TEST_USER_JOHN_ID, name="John", color="#CF6679"),
    ]


@pytest.fixture(scope="function")
def test_rows() -> list[ScheduleRow]:
    """
    Week 2024-01-14: Riko works Tuesday and goes to the gym Thursday,
    Narumi has Friday off. One Riko row belongs to the previous week.
    """
    return [
        make_row(TEST_USER_RIKO_ID, "Tuesday", date(2024, 1, 16), row_id=TEST_BLOCK_ID_WORK),
        make_row(TEST_USER_RIKO_ID, "Thursday", date(2024, 1, 18), "18:00", "19:30", "Gym",
                 row_id=TEST_BLOCK_ID_GYM),
        make_row(TEST_USER_NARUMI_ID, "Friday", date(2024, 1, 19), "00:00", "23:59", "Day off",
                 all_day=True, row_id=TEST_BLOCK_ID_DAY_OFF),
        make_row(TEST_USER_RIKO_ID, "Monday", date(2024, 1, 8), "08:00", "12:00", "Old shift",
                 row_id=TEST_BLOCK_ID_OLD_WEEK),
    ]


@pytest.fixture(scope="function")
def gateway(test_users, test_rows) -> InMemoryGateway:
    return InMemoryGateway(users=test_users, rows=test_rows)


@pytest.fixture(scope="function")
def event_bus() -> ScheduleEventBus:
    bus = ScheduleEventBus()
    yield bus
    bus.close()


@pytest.fixture(scope="function")
def week_cache() -> WeekCache:
    return WeekCache()


@pytest.fixture(scope="function")
def schedule_service(gateway, week_cache, event_bus) -> ScheduleService:
    return ScheduleService(gateway=gateway, cache=week_cache, event_bus=event_bus)


@pytest.fixture(scope="function")
def user_service(gateway, event_bus) -> UserService:
    return UserService(gateway=gateway, event_bus=event_bus)


@pytest.fixture(scope="function")
def recorded_events(event_bus) -> list:
    """Every event emitted on the test bus, in order."""
    events = []
    for event_type in ("schedule-updated", "week-changed", "user-color-changed", "sync-required"):
        event_bus.on(event_type, events.append)
    return events


@pytest.fixture(scope="function")
def mock_session() -> MagicMock:
    """An AsyncSession stand-in for gateway tests."""
    session = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture(scope="function")
def client(gateway, week_cache, event_bus) -> TestClient:
    """
    Runs the app lifespan and points every service at the in-memory gateway
    and the test's own cache and bus.
    """
    app.dependency_overrides[RemoteScheduleGateway] = lambda: gateway
    app.dependency_overrides[get_week_cache] = lambda: week_cache
    app.dependency_overrides[get_event_bus] = lambda: event_bus

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()

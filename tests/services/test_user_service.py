import pytest

from roommate_schedule.common.exceptions import ScheduleStoreUnavailableError, UserNotFoundError
from roommate_schedule.models.events import ScheduleEventType
from roommate_schedule.services.user_service import UserService

from tests.constants import TEST_USER_NARUMI_ID


@pytest.mark.anyio
class TestUserService:

    async def test_list_users(self, user_service: UserService):
        users = await user_service.list_users()
        assert [user.name for user in users] == ["Riko", "Narumi", "John"]
        assert users[0].initial == "R"

    async def test_get_user_by_name(self, user_service):
        user = await user_service.get_user_by_name("Narumi")
        assert user.id == TEST_USER_NARUMI_ID

    async def test_get_unknown_user(self, user_service):
        print("\n--- Testing lookup of a non-existing user ---")
        with pytest.raises(UserNotFoundError):
            await user_service.get_user_by_name("Nobody")

    async def test_update_color_emits(self, user_service, gateway, recorded_events):
        await user_service.update_user_color(TEST_USER_NARUMI_ID, "#123456", source="settings")

        assert next(u for u in gateway.users if u.id == TEST_USER_NARUMI_ID).color == "#123456"
        assert recorded_events[-1].type == ScheduleEventType.USER_COLOR_CHANGED
        assert recorded_events[-1].user_id == TEST_USER_NARUMI_ID

    async def test_update_color_unknown_user(self, user_service, recorded_events):
        with pytest.raises(UserNotFoundError):
            await user_service.update_user_color(99, "#123456")
        assert recorded_events == []

    async def test_update_color_store_down(self, user_service, gateway):
        gateway.fail_writes = True
        with pytest.raises(ScheduleStoreUnavailableError) as e:
            await user_service.update_user_color(TEST_USER_NARUMI_ID, "#123456")
        assert e.value.operation == "write"

import logging
import pytest
from datetime import date

from roommate_schedule.core.events import ScheduleEventBus
from roommate_schedule.models.events import ScheduleEvent, ScheduleEventType

from tests.constants import TEST_USER_RIKO_ID, TEST_WEEK_WEDNESDAY


class TestScheduleEventBus:

    def test_delivers_in_subscription_order(self, event_bus: ScheduleEventBus):
        print("\n--- Testing delivery order ---")
        calls = []
        event_bus.on("schedule-updated", lambda e: calls.append("first"))
        event_bus.on(ScheduleEventType.SCHEDULE_UPDATED, lambda e: calls.append("second"))
        event_bus.on("week-changed", lambda e: calls.append("other type"))

        delivered = event_bus.emit_schedule_update(TEST_USER_RIKO_ID, TEST_WEEK_WEDNESDAY, source="editor")

        assert delivered == 2
        assert calls == ["first", "second"]

    def test_event_carries_payload_and_timestamp(self, event_bus, recorded_events):
        event_bus.emit_schedule_update(TEST_USER_RIKO_ID, TEST_WEEK_WEDNESDAY, day_name="Tuesday", source="editor")

        event = recorded_events[0]
        assert event.type == ScheduleEventType.SCHEDULE_UPDATED
        assert event.user_id == TEST_USER_RIKO_ID
        assert event.week_date == TEST_WEEK_WEDNESDAY
        assert event.day_name == "Tuesday"
        assert event.source == "editor"
        assert event.timestamp is not None

    def test_helpers_emit_their_types(self, event_bus, recorded_events):
        event_bus.emit_week_change(date(2024, 1, 22), source="overview")
        event_bus.emit_user_color_change(TEST_USER_RIKO_ID, source="settings")
        event_bus.request_sync("schedule-service")

        assert [e.type for e in recorded_events] == [
            ScheduleEventType.WEEK_CHANGED,
            ScheduleEventType.USER_COLOR_CHANGED,
            ScheduleEventType.SYNC_REQUIRED,
        ]
        assert recorded_events[0].week_date == date(2024, 1, 22)

    def test_failing_listener_does_not_block_others(self, event_bus, caplog):
        print("\n--- Testing listener isolation ---")
        received = []

        def broken(event):
            raise RuntimeError("boom")

        event_bus.on("week-changed", broken)
        event_bus.on("week-changed", received.append)

        with caplog.at_level(logging.ERROR, logger="RS-backend"):
            delivered = event_bus.emit_week_change(TEST_WEEK_WEDNESDAY, source="roommates")

        assert delivered == 1
        assert len(received) == 1
        assert "boom" in caplog.text

    def test_unsubscribe_stops_delivery_and_is_idempotent(self, event_bus):
        received = []
        unsubscribe = event_bus.on("sync-required", received.append)

        event_bus.request_sync("a")
        unsubscribe()
        unsubscribe()
        event_bus.request_sync("b")

        assert [e.source for e in received] == ["a"]
        assert event_bus.listener_count("sync-required") == 0

    def test_same_listener_subscribed_twice_unsubscribes_once_per_handle(self, event_bus):
        received = []
        first = event_bus.on("sync-required", received.append)
        event_bus.on("sync-required", received.append)

        first()
        first()
        event_bus.request_sync("x")

        assert len(received) == 1

    def test_duplicate_listener_handle_removes_its_own_subscription(self, event_bus):
        calls = []

        def record_a(event):
            calls.append("a")

        event_bus.on("sync-required", record_a)
        event_bus.on("sync-required", lambda e: calls.append("b"))
        second_a = event_bus.on("sync-required", record_a)

        second_a()
        event_bus.request_sync("x")

        assert calls == ["a", "b"]

    def test_listener_removed_mid_emit_is_not_called(self, event_bus):
        calls = []
        handles = {}

        def remove_later(event):
            calls.append("first")
            handles["later"]()

        event_bus.on("sync-required", remove_later)
        handles["later"] = event_bus.on("sync-required", lambda e: calls.append("later"))

        event_bus.request_sync("x")

        assert calls == ["first"]

    def test_unsubscribe_during_delivery(self, event_bus):
        """A listener removing itself mid-emit does not skip its neighbours."""
        calls = []
        handles = {}

        def once(event):
            calls.append("once")
            handles["once"]()

        handles["once"] = event_bus.on("schedule-updated", once)
        event_bus.on("schedule-updated", lambda e: calls.append("always"))

        event_bus.emit_schedule_update(TEST_USER_RIKO_ID, TEST_WEEK_WEDNESDAY)
        event_bus.emit_schedule_update(TEST_USER_RIKO_ID, TEST_WEEK_WEDNESDAY)

        assert calls == ["once", "always", "always"]

    def test_non_callable_listener_rejected(self, event_bus):
        with pytest.raises(TypeError):
            event_bus.on("schedule-updated", "not a function")

    def test_unknown_event_type_rejected(self, event_bus):
        with pytest.raises(ValueError):
            event_bus.on("schedule-deleted", lambda e: None)

    def test_closed_bus_drops_listeners_and_refuses_new_ones(self):
        bus = ScheduleEventBus()
        received = []
        unsubscribe = bus.on("week-changed", received.append)

        bus.close()
        assert bus.emit(ScheduleEvent(type=ScheduleEventType.WEEK_CHANGED)) == 0
        unsubscribe()
        with pytest.raises(RuntimeError):
            bus.on("week-changed", received.append)
        assert received == []

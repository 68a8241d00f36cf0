'''
In-process publish/subscribe for schedule change notifications.

One bus is created by the app lifespan and handed to every view and service
that needs it. Tests build their own isolated instances.
'''
import time
from datetime import date
from typing import Callable, Optional, Union

from ..common.logger import log
from ..models.events import ScheduleEvent, ScheduleEventType

Listener = Callable[[ScheduleEvent], None]
Unsubscribe = Callable[[], None]


class _Subscription:
    """One `on` call. Removed by identity, so the same callable may be subscribed twice."""
    __slots__ = ("listener", "active")

    def __init__(self, listener: Listener):
        self.listener = listener
        self.active = True


class ScheduleEventBus:
    """
    Synchronous fan-out of ScheduleEvents.

    - `emit` calls the listeners of that event type in subscription order and
      returns after the last one. A failing listener is logged and skipped.
    - `on` returns an unsubscribe function that may be called any number of
      times, including from inside a listener during delivery.
    """
    def __init__(self):
        self._listeners: dict[ScheduleEventType, list[_Subscription]] = {
            event_type: [] for event_type in ScheduleEventType
        }
        self._closed = False

    def on(self, event_type: Union[ScheduleEventType, str], listener: Listener) -> Unsubscribe:
        if not callable(listener):
            raise TypeError(f"Listener for {event_type} must be callable, got {type(listener).__name__}.")
        event_type = ScheduleEventType(event_type)
        if self._closed:
            raise RuntimeError("Cannot subscribe to a closed event bus.")

        listeners = self._listeners[event_type]
        subscription = _Subscription(listener)
        listeners.append(subscription)

        def unsubscribe() -> None:
            # No-op when already removed, or when close() cleared the list
            subscription.active = False
            for index, current in enumerate(listeners):
                if current is subscription:
                    del listeners[index]
                    return

        return unsubscribe

    def emit(self, event: ScheduleEvent) -> int:
        """Delivers `event` and returns how many listeners ran without raising."""
        if event.timestamp is None:
            event = event.model_copy(update={"timestamp": time.time()})

        log.info(f"Emitting {event.type.value} from {event.source or 'unknown'}: "
                 f"user={event.user_id} week={event.week_date} day={event.day_name}")

        delivered = 0
        # Iterate over a copy so listeners may (un)subscribe during delivery.
        for subscription in list(self._listeners[event.type]):
            if not subscription.active:
                continue
            listener = subscription.listener
            try:
                listener(event)
                delivered += 1
            except Exception as e:
                log.error(f"Listener {getattr(listener, '__qualname__', listener)!r} failed "
                          f"on {event.type.value}: {e}", exc_info=True)
        return delivered

    def listener_count(self, event_type: Union[ScheduleEventType, str]) -> int:
        return len(self._listeners[ScheduleEventType(event_type)])

    def close(self) -> None:
        """Drops every subscription. Called on application shutdown."""
        for listeners in self._listeners.values():
            for subscription in listeners:
                subscription.active = False
            listeners.clear()
        self._closed = True

    # --- Helpers ---

    def emit_schedule_update(self, user_id: int, week_date: date,
                             day_name: Optional[str] = None, source: Optional[str] = None) -> int:
        return self.emit(ScheduleEvent(
            type=ScheduleEventType.SCHEDULE_UPDATED,
            user_id=user_id, week_date=week_date, day_name=day_name, source=source,
        ))

    def emit_week_change(self, week_date: date, source: Optional[str] = None) -> int:
        return self.emit(ScheduleEvent(
            type=ScheduleEventType.WEEK_CHANGED, week_date=week_date, source=source,
        ))

    def emit_user_color_change(self, user_id: int, source: Optional[str] = None) -> int:
        return self.emit(ScheduleEvent(
            type=ScheduleEventType.USER_COLOR_CHANGED, user_id=user_id, source=source,
        ))

    def request_sync(self, source: str) -> int:
        return self.emit(ScheduleEvent(type=ScheduleEventType.SYNC_REQUIRED, source=source))


# --- App-level instance (created / disposed by the lifespan) ---

event_bus: ScheduleEventBus | None = None

def create_event_bus() -> ScheduleEventBus:
    global event_bus
    event_bus = ScheduleEventBus()
    log.info("Schedule event bus created.")
    return event_bus

def dispose_event_bus() -> None:
    global event_bus
    if event_bus:
        event_bus.close()
        log.info("Schedule event bus disposed.")
    event_bus = None

def get_event_bus() -> ScheduleEventBus:
    """FastAPI dependency returning the app's bus."""
    if event_bus is None:
        log.error("Event bus is not initialized. App lifespan may not have run.")
        raise RuntimeError("Schedule event bus is not available.")
    return event_bus

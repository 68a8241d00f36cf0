'''
View controllers.

Each open view (dashboard, overview, roommates, editor) owns its reference
date, the derived week window, the snapshot it shows and a loading flag.
Views never share snapshot objects; they converge by re-fetching whenever
another view announces a change on the event bus.
'''
import asyncio
from datetime import date, datetime
from enum import Enum
from typing import Coroutine, Optional

from ..common.exceptions import ScheduleStoreUnavailableError
from ..common.logger import log
from ..models.events import ScheduleEvent, ScheduleEventType
from ..models.schedule import ScheduleSnapshot, TimeBlock
from ..models.user import RoommateAvailability, UserRead
from ..services.schedule_service import ScheduleService
from ..services.user_service import UserService
from .availability import summarize_availability
from .events import ScheduleEventBus, Unsubscribe
from .normalizer import sort_blocks
from .week import (
    DateLike,
    format_week_range,
    get_current_day_name,
    get_week_description,
    get_week_window,
    is_same_week,
    local_now,
    shift_week,
)


class ViewState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"


class ScheduleView:
    """
    Base controller: mount/unmount, fetch-normalize cycles and event handling.

    Fetch results are keyed by the requested week and a request sequence
    number; a result that comes back after the view moved to another week,
    was superseded by a newer request, or was unmounted is discarded.
    """
    source: str = "view"
    emits_week_changes: bool = False
    follows_week_changes: bool = False

    def __init__(
        self,
        schedule_service: ScheduleService,
        event_bus: ScheduleEventBus,
        reference_date: Optional[DateLike] = None,
        user_id: Optional[int] = None,
    ):
        self.schedule_service = schedule_service
        self.event_bus = event_bus
        self.user_id = user_id
        self.reference_date = _as_date(reference_date or local_now())
        self.window = get_week_window(self.reference_date)
        self.snapshot: Optional[ScheduleSnapshot] = None
        self.state = ViewState.IDLE
        self.from_cache = False
        self.error: Optional[str] = None
        self.mounted = False

        self._request_seq = 0
        self._unsubscribers: list[Unsubscribe] = []
        self._tasks: set[asyncio.Task] = set()
        self._event_refresh_running = False
        self._event_refresh_queued = False

    # --- Derived state ---

    @property
    def loading(self) -> bool:
        return self.state == ViewState.FETCHING

    @property
    def week_key(self) -> str:
        return self.window.key

    @property
    def week_label(self) -> str:
        return format_week_range(self.reference_date)

    @property
    def week_description(self) -> str:
        return get_week_description(self.reference_date)

    def blocks_for(self, user_id: int, day: str) -> list[TimeBlock]:
        """Display-ordered blocks of one user/day (empty while loading)."""
        if self.snapshot is None:
            return []
        return sort_blocks(self.snapshot.get(user_id, {}).get(day, []))

    # --- Lifecycle ---

    async def mount(self) -> None:
        """Subscribe, paint from cache if possible, then always fetch."""
        self.mounted = True
        for event_type in ScheduleEventType:
            self._unsubscribers.append(self.event_bus.on(event_type, self.handle_event))

        cached = self.schedule_service.read_cached_week(self.reference_date, self.user_id)
        if cached is not None:
            self.snapshot = cached
            self.from_cache = True
        await self.refresh()

    async def unmount(self) -> None:
        self.mounted = False
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        await self.settle()
        self.snapshot = None

    async def settle(self) -> None:
        """Waits for every refresh scheduled by bus events to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # --- Fetch cycle ---

    def _is_current(self, seq: int, week_key: str) -> bool:
        return self.mounted and seq == self._request_seq and week_key == self.window.key

    async def refresh(self) -> bool:
        """
        Runs one fetch-normalize cycle for the current window.
        Returns True when the result was applied to the view.
        """
        self._request_seq += 1
        seq = self._request_seq
        week_key = self.window.key
        reference_date = self.reference_date
        self.state = ViewState.FETCHING

        try:
            snapshot = await self.schedule_service.fetch_week_schedules(reference_date, self.user_id)
        except ScheduleStoreUnavailableError as e:
            if not self._is_current(seq, week_key):
                return False
            self.state = ViewState.IDLE
            self.error = str(e)
            cached = self.schedule_service.read_cached_week(reference_date, self.user_id)
            if cached is not None:
                self.snapshot = cached
                self.from_cache = True
            log.warning(f"[{self.source}] fetch for week {week_key} failed, "
                        f"{'showing cached data' if cached is not None else 'nothing cached'}: {e}")
            return False

        if not self._is_current(seq, week_key):
            log.info(f"[{self.source}] discarding stale result for week {week_key} (request {seq}).")
            return False

        self.snapshot = snapshot
        self.from_cache = False
        self.error = None
        self.state = ViewState.IDLE
        self.on_snapshot(snapshot)
        return True

    def on_snapshot(self, snapshot: ScheduleSnapshot) -> None:
        """Hook for subclasses, called after a fresh snapshot is applied."""
        pass

    # --- Navigation ---

    async def set_reference_date(self, new_date: DateLike, emit: bool = False) -> bool:
        """
        Moves the view to the week of `new_date`. Changing week clears the
        snapshot before fetching, so old-week data is never shown as the new week.
        """
        new_date = _as_date(new_date)
        same_week = is_same_week(new_date, self.reference_date)
        self.reference_date = new_date
        if same_week:
            return False

        self.window = get_week_window(new_date)
        self.snapshot = None
        self.from_cache = False
        if emit:
            self.event_bus.emit_week_change(self.window.start.date(), source=self.source)
        return await self.refresh()

    async def shift_week(self, weeks: int) -> bool:
        """Previous (-1) / next (+1) week navigation."""
        return await self.set_reference_date(
            shift_week(self.reference_date, weeks), emit=self.emits_week_changes
        )

    # --- Events ---

    def handle_event(self, event: ScheduleEvent) -> None:
        if event.source == self.source:
            return
        if not self.mounted:
            return

        if (event.type == ScheduleEventType.WEEK_CHANGED and self.follows_week_changes
                and event.week_date is not None and not is_same_week(event.week_date, self.reference_date)):
            log.info(f"[{self.source}] following week change from {event.source} to {event.week_date}.")
            self._schedule(self.set_reference_date(event.week_date))
            return

        log.info(f"[{self.source}] {event.type.value} from {event.source}, re-fetching week {self.window.key}.")
        self._request_event_refresh()

    def _request_event_refresh(self) -> None:
        # Coalesce: one running refresh plus at most one queued follow-up.
        if self._event_refresh_running:
            self._event_refresh_queued = True
            return
        self._event_refresh_running = True
        if not self._schedule(self._run_event_refreshes()):
            self._event_refresh_running = False

    async def _run_event_refreshes(self) -> None:
        try:
            while True:
                self._event_refresh_queued = False
                await self.refresh()
                if not (self._event_refresh_queued and self.mounted):
                    break
        finally:
            self._event_refresh_running = False

    def _schedule(self, coro: Coroutine) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            log.warning(f"[{self.source}] no running event loop, refresh skipped.")
            return False
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return True

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error(f"[{self.source}] background refresh failed: {task.exception()!r}")


class DashboardView(ScheduleView):
    """Everyone's week, with today's column highlighted."""
    source = "dashboard"

    @property
    def current_day_name(self) -> str:
        return get_current_day_name()


class OverviewView(ScheduleView):
    """Week grid of all roommates. Navigation is mirrored by the roommates view."""
    source = "overview"
    emits_week_changes = True
    follows_week_changes = True


class RoommatesView(ScheduleView):
    """
    Roommate list with per-week availability. Users are reloaded on every
    cycle so color changes show up.
    """
    source = "roommates"
    emits_week_changes = True
    follows_week_changes = True

    def __init__(self, schedule_service: ScheduleService, event_bus: ScheduleEventBus,
                 user_service: UserService, reference_date: Optional[DateLike] = None):
        super().__init__(schedule_service, event_bus, reference_date=reference_date)
        self.user_service = user_service
        self.users: list[UserRead] = []
        self.availability: list[RoommateAvailability] = []

    async def refresh(self) -> bool:
        try:
            self.users = await self.user_service.list_users()
        except ScheduleStoreUnavailableError as e:
            log.warning(f"[{self.source}] could not reload users, keeping {len(self.users)} known: {e}")
        return await super().refresh()

    def on_snapshot(self, snapshot: ScheduleSnapshot) -> None:
        self.availability = summarize_availability(self.users, snapshot)


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value

'''
Schedule editor controller.

New blocks start as PendingEntry (temporary local id). Once the store accepts
them they are swapped for a ConfirmedEntry carrying the store id, everywhere
the temporary id was referenced (entry list and selection).
'''
import uuid
from typing import Optional

from ..common.exceptions import InvalidDayNameError
from ..common.logger import log
from ..models.schedule import (
    ConfirmedEntry,
    EditorEntry,
    GatewayResult,
    PendingEntry,
    ScheduleSnapshot,
    TimeBlock,
    WeekSaveResult,
    WeekSaveStatus,
)
from ..services.schedule_service import ScheduleService
from .events import ScheduleEventBus
from .normalizer import sort_blocks
from .views import ScheduleView
from .week import (
    DAYS_OF_WEEK,
    DateLike,
    get_date_for_day_in_week,
    is_same_week,
    is_valid_day_name,
    parse_local_date,
    shift_week,
)


def new_temp_id() -> str:
    return f"temp-{uuid.uuid4().hex[:9]}"


class ScheduleEditor(ScheduleView):
    """
    Edits one user's week. Holds the entries being edited and the selected one.
    Unsaved work (pending entries and edited confirmed ones) belongs to the
    week it was made in and is dropped when the editor moves to another week.
    """
    source = "editor"

    def __init__(self, schedule_service: ScheduleService, event_bus: ScheduleEventBus,
                 user_id: int, reference_date: Optional[DateLike] = None):
        super().__init__(schedule_service, event_bus, reference_date=reference_date, user_id=user_id)
        self.entries: list[EditorEntry] = []
        self.selected_ref: Optional[str] = None
        # refs of confirmed entries changed locally and not yet written
        self._edited: set[str] = set()

    # --- Entries ---

    def on_snapshot(self, snapshot: ScheduleSnapshot) -> None:
        """
        Rebuilds confirmed entries from the store. Pending entries are kept:
        they only exist here until they are saved. Locally edited confirmed
        entries win over the store's copy; if their row is gone they become
        pending again.
        """
        pending = [entry for entry in self.entries if isinstance(entry, PendingEntry)]
        edited = {entry.ref: entry for entry in self.entries if entry.ref in self._edited}
        confirmed: list[EditorEntry] = []
        for day, blocks in snapshot.get(self.user_id, {}).items():
            for block in blocks:
                if block.id is None:
                    pending.append(PendingEntry(temp_id=new_temp_id(), day=day, block=block))
                else:
                    entry = ConfirmedEntry(store_id=block.id, day=day, block=block)
                    confirmed.append(edited.pop(entry.ref, entry))
        for ref, entry in edited.items():
            log.info(f"[{self.source}] edited block {ref} is gone from the store, keeping it as pending.")
            self._edited.discard(ref)
            orphan = PendingEntry(temp_id=new_temp_id(), day=entry.day, block=entry.block.model_copy(update={"id": None}))
            pending.append(orphan)
            if self.selected_ref == ref:
                self.selected_ref = orphan.ref
        self.entries = confirmed + pending

        refs = {entry.ref for entry in self.entries}
        if self.selected_ref not in refs:
            self.selected_ref = None

    def find(self, ref: str) -> Optional[EditorEntry]:
        return next((entry for entry in self.entries if entry.ref == ref), None)

    def day_blocks(self, day: str) -> list[TimeBlock]:
        return sort_blocks(entry.block for entry in self.entries if entry.day == day)

    @property
    def pending_count(self) -> int:
        return sum(1 for entry in self.entries if isinstance(entry, PendingEntry))

    @property
    def edited_count(self) -> int:
        return len(self._edited)

    def add_block(self, day: str, block: TimeBlock) -> PendingEntry:
        if not is_valid_day_name(day):
            raise InvalidDayNameError(f"Invalid day name: {day!r}")
        entry = PendingEntry(temp_id=new_temp_id(), day=day, block=block.model_copy(update={"id": None}))
        self.entries.append(entry)
        self.selected_ref = entry.ref
        return entry

    def update_entry(self, ref: str, **changes) -> EditorEntry:
        """Local edit of start/end/label/all_day. Saved by commit_entry or save_week."""
        entry = self._require(ref)
        changes.pop("id", None)
        updated = entry.model_copy(update={"block": entry.block.model_copy(update=changes)})
        self._replace(ref, updated)
        if isinstance(updated, ConfirmedEntry):
            self._edited.add(ref)
        return updated

    def _require(self, ref: str) -> EditorEntry:
        entry = self.find(ref)
        if entry is None:
            raise KeyError(f"No editor entry {ref!r}")
        return entry

    def _replace(self, ref: str, new_entry: EditorEntry) -> None:
        self.entries = [new_entry if entry.ref == ref else entry for entry in self.entries]
        if self.selected_ref == ref:
            self.selected_ref = new_entry.ref

    def _date_for(self, day: str):
        return parse_local_date(get_date_for_day_in_week(self.window.start, day))

    def _clear_entries(self) -> None:
        self.entries = []
        self.selected_ref = None
        self._edited.clear()

    async def set_reference_date(self, new_date: DateLike, emit: bool = False) -> bool:
        if not is_same_week(new_date, self.reference_date):
            unsaved = self.pending_count + self.edited_count
            if unsaved:
                log.warning(f"[{self.source}] leaving week {self.window.key} with {unsaved} unsaved blocks, dropping them.")
            self._clear_entries()
        return await super().set_reference_date(new_date, emit)

    # --- Store round-trips ---

    async def commit_entry(self, ref: str) -> GatewayResult:
        """
        Saves one entry. A pending entry is inserted and swapped for its
        confirmed form; a confirmed entry is updated in place by id.
        """
        entry = self._require(ref)
        if isinstance(entry, PendingEntry):
            block = entry.block.model_copy(update={"id": None})
        else:
            block = entry.block.model_copy(update={"id": entry.store_id})

        result = await self.schedule_service.save_block(
            self.user_id, self._date_for(entry.day), block, source=self.source
        )
        if not result.ok:
            self.error = result.error
            return result

        if isinstance(entry, PendingEntry):
            store_id = result.data
            confirmed = ConfirmedEntry(
                store_id=store_id, day=entry.day, block=entry.block.model_copy(update={"id": store_id})
            )
            self._replace(ref, confirmed)
            log.info(f"[{self.source}] block {entry.temp_id} confirmed as {store_id}.")
        self._edited.discard(ref)
        self.error = None
        return result

    async def remove_entry(self, ref: str) -> GatewayResult:
        entry = self._require(ref)
        if isinstance(entry, PendingEntry):
            self.entries = [e for e in self.entries if e.ref != ref]
            result = GatewayResult.success(0)
        else:
            result = await self.schedule_service.delete_block(
                entry.store_id, self.user_id, self._date_for(entry.day), source=self.source
            )
            if not result.ok:
                self.error = result.error
                return result
            self.entries = [e for e in self.entries if e.ref != ref]
            self._edited.discard(ref)
        if self.selected_ref == ref:
            self.selected_ref = None
        return result

    async def save_week(self) -> WeekSaveResult:
        """
        Replaces the whole week in the store with the current entries.
        SAVED confirms every entry with the ids the store returned (in day order).
        On PARTIAL every entry becomes pending again (their rows are gone) and
        the error stays set until a retry works.
        """
        ordered = [entry for day in DAYS_OF_WEEK for entry in self.entries if entry.day == day]
        per_day = {day: [] for day in DAYS_OF_WEEK}
        for entry in ordered:
            per_day[entry.day].append(entry.block.model_copy(update={"id": None}))

        result = await self.schedule_service.save_week_for_user(
            self.user_id, self.reference_date, per_day, source=self.source
        )
        if result.status == WeekSaveStatus.SAVED:
            self.error = None
            if len(result.inserted_ids) == len(ordered):
                confirmed = [
                    ConfirmedEntry(store_id=store_id, day=entry.day,
                                   block=entry.block.model_copy(update={"id": store_id}))
                    for entry, store_id in zip(ordered, result.inserted_ids)
                ]
                renamed = {old.ref: new.ref for old, new in zip(ordered, confirmed)}
                self.entries = confirmed
                self.selected_ref = renamed.get(self.selected_ref)
                self._edited.clear()
            else:
                self._clear_entries()
                await self.refresh()
        elif result.status == WeekSaveStatus.PARTIAL:
            self.error = f"Week was cleared but not re-saved, please retry: {result.error}"
            self.entries = [
                PendingEntry(temp_id=new_temp_id(), day=entry.day, block=entry.block.model_copy(update={"id": None}))
                if isinstance(entry, ConfirmedEntry) else entry
                for entry in self.entries
            ]
            self.selected_ref = None
            self._edited.clear()
        else:
            self.error = f"Week was not saved: {result.error}"
        return result

    async def repeat_previous_week(self) -> int:
        """
        Replaces the entries with last week's blocks, as pending entries.
        Nothing is written until save_week. Returns the number of blocks copied.
        """
        previous = await self.schedule_service.fetch_week_schedules(
            shift_week(self.reference_date, -1), self.user_id
        )
        copied: list[EditorEntry] = []
        for day, blocks in previous.get(self.user_id, {}).items():
            for block in blocks:
                copied.append(PendingEntry(
                    temp_id=new_temp_id(), day=day, block=block.model_copy(update={"id": None})
                ))
        self._clear_entries()
        self.entries = copied
        log.info(f"[{self.source}] copied {len(copied)} blocks from the previous week.")
        return len(copied)

'''
Per-week snapshot cache.

Entries are keyed by (week key, scope) where scope is a user id or ALL_USERS.
Writes always replace the whole entry and reads hand out copies, so cached
and fresh block ids are never mixed.
'''
from typing import Optional, Union

from ..common.logger import log
from ..models.schedule import ScheduleSnapshot
from .normalizer import copy_snapshot

ALL_USERS = "all"

CacheScope = Union[int, str]


class WeekCache:
    """
    Last successfully normalized snapshot per week and scope.
    Reads are advisory: callers paint them and then overwrite with a fresh fetch.
    """
    def __init__(self):
        self._entries: dict[tuple[str, CacheScope], ScheduleSnapshot] = {}

    @staticmethod
    def scope_for(user_id: Optional[int]) -> CacheScope:
        return ALL_USERS if user_id is None else user_id

    def get(self, week_key: str, scope: CacheScope = ALL_USERS) -> Optional[ScheduleSnapshot]:
        entry = self._entries.get((week_key, scope))
        if entry is None:
            return None
        return copy_snapshot(entry)

    def put(self, week_key: str, snapshot: ScheduleSnapshot, scope: CacheScope = ALL_USERS) -> None:
        self._entries[(week_key, scope)] = copy_snapshot(snapshot)

    def invalidate_week(self, week_key: str) -> int:
        """Drops every scope cached for a week. Returns the number of entries removed."""
        stale = [key for key in self._entries if key[0] == week_key]
        for key in stale:
            del self._entries[key]
        if stale:
            log.info(f"Invalidated {len(stale)} cache entries for week {week_key}.")
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple[str, CacheScope]) -> bool:
        return key in self._entries


# --- App-level instance (created / disposed by the lifespan) ---

week_cache: WeekCache | None = None

def create_week_cache() -> WeekCache:
    global week_cache
    week_cache = WeekCache()
    return week_cache

def dispose_week_cache() -> None:
    global week_cache
    if week_cache is not None:
        week_cache.clear()
    week_cache = None

def get_week_cache() -> WeekCache:
    """FastAPI dependency returning the app's cache."""
    if week_cache is None:
        log.error("Week cache is not initialized. App lifespan may not have run.")
        raise RuntimeError("Week cache is not available.")
    return week_cache

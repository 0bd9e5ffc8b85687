"""
Balance Projection Cache

Holds the latest GroupBalance per group until the next write to that group.

Invalidation bumps a per-group generation counter; clear() bumps an epoch
shared by all groups. A reader takes the generation BEFORE reading the
store and hands it back with its result; the result is dropped if any
write or clear happened in between. This keeps a projection computed from
a stale + new event mix out of the cache.
"""

from threading import Lock
from typing import Optional
from uuid import UUID

from household_ledger.models.expense import GroupBalance


class BalanceCache:
    """Thread-safe GroupBalance cache keyed by group id."""

    def __init__(self):
        self._lock = Lock()
        self._entries: dict[UUID, GroupBalance] = {}
        self._generations: dict[UUID, int] = {}
        self._epoch = 0

    def _current(self, group_id: UUID) -> int:
        # Both counters only grow, so their sum changes on every bump
        return self._epoch + self._generations.get(group_id, 0)

    def generation(self, group_id: UUID) -> int:
        with self._lock:
            return self._current(group_id)

    def get(self, group_id: UUID) -> Optional[GroupBalance]:
        with self._lock:
            return self._entries.get(group_id)

    def put(self, group_id: UUID, balance: GroupBalance, generation: int) -> bool:
        """
        Store a projection computed at the given generation.

        Returns False (and stores nothing) if the group was invalidated, or
        the cache cleared, since that generation was read.
        """
        with self._lock:
            if self._current(group_id) != generation:
                return False
            self._entries[group_id] = balance
            return True

    def invalidate(self, group_id: UUID) -> None:
        with self._lock:
            self._generations[group_id] = self._generations.get(group_id, 0) + 1
            self._entries.pop(group_id, None)

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

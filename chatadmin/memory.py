"""In-memory keyed store whose entries expire on their own.

Entries are grouped into namespaces, each with a fixed time-to-live. Every
insert arms exactly one removal on the :class:`~chatadmin.scheduler.ExpiryScheduler`;
removals carry the generation of the entry they were armed for, so a late
removal can never delete a newer entry that reuses the same key.

One re-entrant lock guards all namespaces. ``insert`` checks and writes
inside that lock, ``list`` copies the keys inside it, and expiry callbacks
take it too, so a listing never sees a half-removed entry. An entry whose
deadline has passed reads as absent even if its removal has not run yet.
"""
from __future__ import annotations

import enum
import functools
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Set

from .scheduler import ExpiryScheduler, ScheduledRemoval

logger = logging.getLogger(__name__)


class Namespace(str, enum.Enum):
    SEALED_USERS = "sealUserList"
    SEALED_IPS = "sealIpList"


@dataclass
class Entry:
    inserted_at: float
    deadline: float
    generation: int
    removal: ScheduledRemoval | None = None


def store_key(key: str) -> str:
    """Map an identifier to the key it is stored under."""
    return key


class TTLStore:
    def __init__(
        self,
        ttls: Mapping[Namespace, float],
        scheduler: ExpiryScheduler | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.scheduler = scheduler or ExpiryScheduler()
        self.clock = clock or self.scheduler.clock
        self._ttls = dict(ttls)
        self._data: Dict[Namespace, Dict[str, Entry]] = {ns: {} for ns in Namespace}
        self._generations = itertools.count(1)
        self._lock = threading.RLock()

    def ttl(self, namespace: Namespace) -> float:
        return self._ttls[namespace]

    def _live(self, namespace: Namespace, key: str) -> Entry | None:
        entry = self._data[namespace].get(key)
        if entry is None or self.clock() >= entry.deadline:
            return None
        return entry

    def exists(self, namespace: Namespace, key: str) -> bool:
        with self._lock:
            return self._live(namespace, store_key(key)) is not None

    def insert(self, namespace: Namespace, key: str) -> bool:
        """Add ``key`` unless a live entry exists.

        Returns ``True`` when the entry was created and ``False`` when it was
        already present. An existing entry is never refreshed.
        """
        key = store_key(key)
        with self._lock:
            if self._live(namespace, key) is not None:
                return False
            stale = self._data[namespace].get(key)
            if stale is not None and stale.removal is not None:
                self.scheduler.cancel(stale.removal)
            now = self.clock()
            ttl = self.ttl(namespace)
            entry = Entry(now, now + ttl, next(self._generations))
            entry.removal = self.scheduler.schedule(
                ttl, functools.partial(self._expire, namespace, key, entry.generation)
            )
            self._data[namespace][key] = entry
            return True

    def remove(self, namespace: Namespace, key: str) -> bool:
        """Drop ``key`` and cancel its pending removal. Absent keys are a no-op."""
        key = store_key(key)
        with self._lock:
            entry = self._data[namespace].pop(key, None)
            if entry is None:
                return False
            if entry.removal is not None:
                self.scheduler.cancel(entry.removal)
            return self.clock() < entry.deadline

    def _expire(self, namespace: Namespace, key: str, generation: int) -> None:
        with self._lock:
            entry = self._data[namespace].get(key)
            if entry is None or entry.generation != generation:
                return
            del self._data[namespace][key]
        logger.info("Expired %s entry %s", namespace.value, key)

    def list(self, namespace: Namespace) -> Set[str]:
        """Snapshot of the live keys in ``namespace``."""
        with self._lock:
            now = self.clock()
            return {k for k, e in self._data[namespace].items() if now < e.deadline}

    def size(self, namespace: Namespace) -> int:
        return len(self.list(namespace))

    def clear(self) -> None:
        with self._lock:
            for entries in self._data.values():
                for entry in entries.values():
                    if entry.removal is not None:
                        self.scheduler.cancel(entry.removal)
                entries.clear()

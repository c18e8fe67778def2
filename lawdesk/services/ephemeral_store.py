"""In-process keyed record store.

Contract: non-durable. Everything is lost when the process exits; there is
no write-ahead log and no replay. Suitable for records whose lifetime is the
process (mediations, reminders).

Read-modify-write on one key goes through ``update`` and is serialized by a
per-key lock. Records handed out are deep copies, so a caller never sees
another caller's half-applied change.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, Hashable, Iterator, TypeVar

from pydantic import BaseModel

from lawdesk.core.exceptions import NotFoundError

K = TypeVar("K", bound=Hashable)
R = TypeVar("R", bound=BaseModel)


class EphemeralStore(Generic[K, R]):
    """Thread-safe in-memory map of pydantic records."""

    def __init__(self, entity: str = "Record") -> None:
        self.entity = entity
        self._records: dict[K, R] = {}
        self._map_lock = threading.Lock()
        self._key_locks: dict[K, threading.Lock] = {}

    def _key_lock(self, key: K) -> threading.Lock:
        with self._map_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def get(self, key: K) -> R | None:
        with self._map_lock:
            record = self._records.get(key)
        return record.model_copy(deep=True) if record is not None else None

    def find(
        self,
        predicate: Callable[[R], bool] | None = None,
        order_by: Callable[[R], object] | None = None,
        limit: int | None = None,
    ) -> list[R]:
        with self._map_lock:
            records = list(self._records.values())
        matches = [r for r in records if predicate is None or predicate(r)]
        if order_by is not None:
            matches.sort(key=order_by)
        if limit is not None:
            matches = matches[:limit]
        return [r.model_copy(deep=True) for r in matches]

    def save(self, key: K, record: R) -> R:
        with self._key_lock(key):
            with self._map_lock:
                self._records[key] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    def update(self, key: K, fn: Callable[[R], R | None]) -> R:
        """
        Apply ``fn`` to a private copy of the record and store the result.

        ``fn`` may mutate its argument and return None, or return a new
        record. If it raises, nothing is stored.

        Raises:
            NotFoundError: key is unknown.
        """
        with self._key_lock(key):
            with self._map_lock:
                current = self._records.get(key)
            if current is None:
                raise NotFoundError(self.entity, key)
            working = current.model_copy(deep=True)
            result = fn(working)
            updated = working if result is None else result
            with self._map_lock:
                self._records[key] = updated.model_copy(deep=True)
        return updated.model_copy(deep=True)

    def remove(self, key: K) -> bool:
        with self._key_lock(key):
            with self._map_lock:
                removed = self._records.pop(key, None) is not None
                self._key_locks.pop(key, None)
        return removed

    def __contains__(self, key: object) -> bool:
        with self._map_lock:
            return key in self._records

    def __len__(self) -> int:
        with self._map_lock:
            return len(self._records)

    def __iter__(self) -> Iterator[R]:
        return iter(self.find())

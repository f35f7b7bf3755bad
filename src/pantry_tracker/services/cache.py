"""Result cache for resolved searches."""

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Cache(Protocol):
    """Key-value store for derived lookup results."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a value with a TTL in seconds, overwriting any previous entry."""

    def delete(self, key: str) -> None:
        """Drop a cached value."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class _Slot:
    value: object
    stale_at: datetime


@dataclass
class InMemoryCache(Cache):
    """Process-local TTL cache; last write wins, oldest entries evicted first."""

    max_entries: int = 1024
    clock: Callable[[], datetime] = _utcnow
    _slots: OrderedDict[str, _Slot] = field(default_factory=OrderedDict, repr=False)

    def get(self, key: str) -> object | None:
        slot = self._slots.get(key)
        if slot is None:
            return None
        if self.clock() >= slot.stale_at:
            del self._slots[key]
            return None
        return slot.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        self._slots.pop(key, None)
        self._slots[key] = _Slot(value, self.clock() + timedelta(seconds=ttl_seconds))
        while len(self._slots) > self.max_entries:
            self._slots.popitem(last=False)

    def delete(self, key: str) -> None:
        self._slots.pop(key, None)

    def __len__(self) -> int:
        return len(self._slots)

import copy
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable


DEFAULT_CACHE_TTL_SECONDS = 300


@dataclass(frozen=True)
class CacheEntry:
    payload: tuple
    stored_at: float
    ttl_seconds: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_expired(self, now: float) -> bool:
        return self.age(now) > self.ttl_seconds


class TtlContentCache:
    """In-memory snapshot cache keyed by collection name.

    Entries are stored as frozen envelopes and handed out as deep copies, so a
    caller editing a returned list never changes what the next reader sees.
    Expired entries stay readable with ``allow_stale=True`` until a sweep
    removes them. Every access to the entry map holds one lock, so request
    threads and a sweep may share an instance.
    """

    def __init__(
        self,
        *,
        default_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl_seconds = max(0.0, float(default_ttl_seconds))
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def set(self, cache_key: str, payload: list[dict[str, Any]], *, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else max(0.0, float(ttl_seconds))
        entry = CacheEntry(
            payload=tuple(copy.deepcopy(row) for row in payload),
            stored_at=self._clock(),
            ttl_seconds=ttl,
        )
        with self._lock:
            self._entries[cache_key] = entry

    def get(self, cache_key: str, *, allow_stale: bool = False) -> list[dict[str, Any]] | None:
        with self._lock:
            entry = self._entries.get(cache_key)
        if entry is None:
            return None
        if not allow_stale and entry.is_expired(self._clock()):
            return None
        return copy.deepcopy(list(entry.payload))

    def stored_at(self, cache_key: str) -> float | None:
        with self._lock:
            entry = self._entries.get(cache_key)
        return entry.stored_at if entry is not None else None

    def delete(self, cache_key: str) -> bool:
        with self._lock:
            return self._entries.pop(cache_key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def sweep_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

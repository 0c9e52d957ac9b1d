from __future__ import annotations

import logging
from typing import Any, Protocol

from fisch.application.services.merge import merge_by_key
from fisch.domain.errors import FetchFailure


MERGE_KEYS = {
    "codes": "code",
    "fish": "id",
    "rods": "id",
}


class RemoteRowSource(Protocol):
    async def fetch_rows(self, kind: str) -> list[dict[str, Any]]: ...


class BaselineSource(Protocol):
    def rows(self, kind: str) -> list[dict]: ...


class SnapshotCache(Protocol):
    def set(self, cache_key: str, payload: list[dict[str, Any]], *, ttl_seconds: float | None = None) -> None: ...

    def get(self, cache_key: str, *, allow_stale: bool = False) -> list[dict[str, Any]] | None: ...

    def clear(self) -> None: ...

    def keys(self) -> list[str]: ...


class DataService:
    """Serves the latest codes, fish and rods with bounded staleness.

    Fresh snapshots are returned without I/O. Otherwise the remote list is
    fetched and merged into the bundled baseline. A failed fetch falls back to
    the last snapshot, however old, and then to the baseline itself.
    """

    def __init__(
        self,
        client: RemoteRowSource,
        baseline: BaselineSource,
        cache: SnapshotCache,
        ttl_seconds: float = 300,
    ) -> None:
        self.client = client
        self.baseline = baseline
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self._logger = logging.getLogger(__name__)

    @staticmethod
    def _cache_key(kind: str) -> str:
        if kind not in MERGE_KEYS:
            raise ValueError(f"Unsupported entity kind '{kind}'. Allowed values: {', '.join(MERGE_KEYS)}")
        return f"latest_{kind}"

    async def refresh(self, kind: str) -> list[dict[str, Any]]:
        cache_key = self._cache_key(kind)
        remote_rows = await self.client.fetch_rows(kind)
        merged = merge_by_key(self.baseline.rows(kind), remote_rows, MERGE_KEYS[kind])
        self.cache.set(cache_key, merged, ttl_seconds=self.ttl_seconds)
        self._logger.debug(
            "Refreshed %s snapshot",
            kind,
            extra={"kind": kind, "remote_rows": len(remote_rows), "merged_rows": len(merged)},
        )
        return merged

    async def get_latest(self, kind: str) -> list[dict[str, Any]]:
        cache_key = self._cache_key(kind)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            return await self.refresh(kind)
        except FetchFailure as exc:
            stale = self.cache.get(cache_key, allow_stale=True)
            self._logger.warning(
                "Serving %s fallback after fetch failure",
                kind,
                extra={"kind": kind, "error": str(exc), "fallback": "stale" if stale is not None else "baseline"},
            )
            if stale is not None:
                return stale
            return self.baseline.rows(kind)

    async def get_latest_codes(self) -> list[dict[str, Any]]:
        return await self.get_latest("codes")

    async def get_latest_fish(self) -> list[dict[str, Any]]:
        return await self.get_latest("fish")

    async def get_latest_rods(self) -> list[dict[str, Any]]:
        return await self.get_latest("rods")

    def snapshot(self, kind: str) -> list[dict[str, Any]]:
        """Last known rows for ``kind`` without any I/O, falling back to the baseline."""
        cached = self.cache.get(self._cache_key(kind), allow_stale=True)
        return cached if cached is not None else self.baseline.rows(kind)

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> dict[str, Any]:
        keys = self.cache.keys()
        return {"size": len(keys), "keys": keys}

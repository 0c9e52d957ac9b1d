import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from fisch.infrastructure.content_cache import TtlContentCache
from fisch.infrastructure.resilient_http import get_json_with_retry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamSource:
    path: str
    fallback: list[dict[str, Any]] = field(default_factory=list)


UPSTREAM_SOURCES = {
    "codes": UpstreamSource(
        path="/v1/codes",
        fallback=[
            {"code": "FISCH2024", "reward": "10,000 C$", "status": "active", "expires": "2024-12-31"},
            {"code": "FISHINGPRO", "reward": "5,000 C$", "status": "active", "expires": "2024-12-25"},
        ],
    ),
    "fish": UpstreamSource(path="/v1/fish"),
    "rods": UpstreamSource(path="/v1/rods"),
}


@dataclass(frozen=True)
class GatewayResponse:
    status_code: int
    body: dict[str, Any]


def _extract_rows(payload: Any) -> list[dict[str, Any]] | None:
    if isinstance(payload, dict):
        payload = payload.get("data", payload.get("results"))
    if not isinstance(payload, list):
        return None
    return [row for row in payload if isinstance(row, dict)]


class UpstreamDataGateway:
    """Server side of ``/api/data``: one cached list per entity kind."""

    BASE_URL = "https://api.fischgame.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        retries: int = 0,
        backoff_seconds: float = 0.2,
        cache_ttl_seconds: float = 300,
        http_client: httpx.Client | None = None,
        cache: TtlContentCache | None = None,
        sources: dict[str, UpstreamSource] | None = None,
    ) -> None:
        self._retries = retries
        self._backoff_seconds = backoff_seconds
        self.client = http_client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"User-Agent": "Fisch-Values-Tool/1.0"},
        )
        self.cache = cache if cache is not None else TtlContentCache(default_ttl_seconds=cache_ttl_seconds, clock=time.time)
        self.sources = dict(sources or UPSTREAM_SOURCES)
        self.sweep_interval_seconds = self.cache.default_ttl_seconds
        self._last_sweep = self.cache.now()

    def _fetch_upstream(self, kind: str) -> list[dict[str, Any]]:
        payload = get_json_with_retry(
            self.client,
            self.sources[kind].path,
            headers={"Accept": "application/json"},
            retries=self._retries,
            backoff_seconds=self._backoff_seconds,
        )
        rows = _extract_rows(payload)
        if rows is None:
            raise ValueError(f"Upstream {kind} payload is not a list")
        return rows

    def rows_for(self, kind: str) -> tuple[list[dict[str, Any]], float]:
        cached = self.cache.get(kind)
        if cached is not None:
            return cached, self.cache.stored_at(kind)

        try:
            rows = self._fetch_upstream(kind)
        except (httpx.HTTPError, ValueError) as exc:
            stale = self.cache.get(kind, allow_stale=True)
            logger.warning(
                "Upstream %s unavailable",
                kind,
                extra={"kind": kind, "error": str(exc), "fallback": "stale" if stale is not None else "sample"},
            )
            if stale is not None:
                return stale, self.cache.stored_at(kind)
            return [dict(row) for row in self.sources[kind].fallback], self.cache.now()

        self.cache.set(kind, rows)
        return rows, self.cache.stored_at(kind)

    def handle(self, kind: str | None) -> GatewayResponse:
        normalized = str(kind or "").strip().lower()
        if normalized not in self.sources:
            return GatewayResponse(400, {"error": "Invalid data type"})

        rows, stored_at = self.rows_for(normalized)
        return GatewayResponse(
            200,
            {
                "data": rows,
                "lastUpdated": int(stored_at * 1000),
                "source": "api",
            },
        )

    def sweep(self) -> int:
        self._last_sweep = self.cache.now()
        return self.cache.sweep_expired()

    def maybe_sweep(self) -> int:
        if self.cache.now() - self._last_sweep < self.sweep_interval_seconds:
            return 0
        return self.sweep()

    def close(self) -> None:
        self.client.close()

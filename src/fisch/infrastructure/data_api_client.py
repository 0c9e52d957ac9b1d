import logging
from typing import Any

import httpx

from fisch.domain.errors import FetchFailure


ENTITY_KINDS = ("codes", "fish", "rods")

logger = logging.getLogger(__name__)


class DataApiClient:
    """Async client for the site's ``GET /api/data?type=`` endpoint."""

    DATA_PATH = "/api/data"

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @staticmethod
    def _normalize_kind(kind: str) -> str:
        value = str(kind or "").strip().lower()
        if value not in ENTITY_KINDS:
            raise ValueError(f"Unsupported entity kind '{kind}'. Allowed values: {', '.join(ENTITY_KINDS)}")
        return value

    async def fetch_payload(self, kind: str) -> dict[str, Any]:
        normalized = self._normalize_kind(kind)
        try:
            response = await self.client.get(
                self.DATA_PATH,
                params={"type": normalized},
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise FetchFailure(normalized, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400:
            detail = ""
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = str(body.get("error") or "")
            except ValueError:
                pass
            raise FetchFailure(normalized, f"HTTP {response.status_code}{': ' + detail if detail else ''}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchFailure(normalized, "response body is not JSON") from exc
        if not isinstance(payload, dict):
            raise FetchFailure(normalized, "response body is not a JSON object")
        return payload

    async def fetch_rows(self, kind: str) -> list[dict[str, Any]]:
        payload = await self.fetch_payload(kind)
        rows = payload.get("data")
        if not isinstance(rows, list):
            logger.debug("Payload for %s carried no data list", kind, extra={"kind": kind})
            return []
        return [row for row in rows if isinstance(row, dict)]

    async def close(self) -> None:
        await self.client.aclose()

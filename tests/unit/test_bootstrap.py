import os
import sys
from pathlib import Path
import unittest
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from fisch.bootstrap import create_application, create_upstream_gateway
from fisch.domain.errors import FetchFailure
from fisch.domain.events import DataSynced


class _FakeClient:
    def __init__(self, rows=None, failing=()) -> None:
        self.rows = rows or {}
        self.failing = set(failing)
        self.closed = False

    async def fetch_rows(self, kind: str) -> list[dict]:
        if kind in self.failing:
            raise FetchFailure(kind, "HTTP 503")
        return [dict(row) for row in self.rows.get(kind, [])]

    async def close(self) -> None:
        self.closed = True


KRAKEN = {
    "id": "kraken",
    "name": "Kraken",
    "rarity": "mythic",
    "baseValue": 50000,
    "fishStats": {"minWeight": 500, "maxWeight": 5000},
    "mutations": {"shiny": 1.85},
}


class CreateApplicationTests(unittest.IsolatedAsyncioTestCase):
    async def test_successful_sync_refreshes_catalog_and_prices(self) -> None:
        client = _FakeClient(rows={"fish": [KRAKEN], "rods": [{"id": "heaven-rod", "baseValue": 90000}]})
        app = create_application(client=client)
        seen: list[DataSynced] = []
        app.event_bus.subscribe(DataSynced, seen.append)

        report = await app.sync.sync()

        self.assertTrue(report.all_ok)
        self.assertEqual(1, len(seen))
        self.assertIsNotNone(app.catalog.get_fish("kraken"))
        self.assertIsNotNone(app.catalog.get_fish("megalodon"))
        self.assertEqual(90000, app.catalog.get_rod("heaven-rod").base_value)
        self.assertIn("kraken", app.price_monitor.quote(["kraken"]))

        await app.close()
        self.assertTrue(client.closed)

    async def test_failed_kind_keeps_previous_catalog_rows(self) -> None:
        with mock.patch.dict(os.environ, {"FISCH_SYNC_ATTEMPTS": "1"}, clear=False):
            app = create_application(client=_FakeClient(rows={"rods": []}, failing={"fish"}))

        report = await app.sync.sync()

        self.assertFalse(report.all_ok)
        self.assertEqual(["fish"], [kind for kind, outcome in report.results.items() if not outcome.ok])
        self.assertEqual(
            ["inferno-hide", "trident-fish", "megalodon"],
            [fish.id for fish in app.catalog.list_fish()],
        )
        await app.close()

    def test_environment_overrides_timers_and_cache(self) -> None:
        overrides = {"FISCH_CACHE_TTL_S": "60", "FISCH_SYNC_INTERVAL_S": "30", "FISCH_SYNC_BACKOFF_S": "0.5"}
        with mock.patch.dict(os.environ, overrides, clear=False):
            app = create_application(client=_FakeClient())

        self.assertEqual(60.0, app.data_service.ttl_seconds)
        self.assertEqual(60.0, app.cache.default_ttl_seconds)
        self.assertEqual(0.5, app.sync.retry_delay_seconds)
        self.assertFalse(app.sync.status().is_running)

    def test_upstream_gateway_reads_environment(self) -> None:
        overrides = {"FISCH_UPSTREAM_URL": "https://mirror.test", "FISCH_UPSTREAM_CACHE_TTL_S": "120"}
        with mock.patch.dict(os.environ, overrides, clear=False):
            gateway = create_upstream_gateway()
        try:
            self.assertEqual("https://mirror.test", str(gateway.client.base_url).rstrip("/"))
            self.assertEqual(120.0, gateway.cache.default_ttl_seconds)
        finally:
            gateway.close()


if __name__ == "__main__":
    unittest.main()

import asyncio
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from fisch.application.services.background_sync import BackgroundSync, CacheSweeper
from fisch.application.services.data_service import DataService
from fisch.application.services.event_bus import EventBus
from fisch.application.services.scheduling import PeriodicTask
from fisch.domain.errors import FetchFailure
from fisch.domain.events import DataSynced
from fisch.infrastructure.content_cache import TtlContentCache


class _FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FakeBaseline:
    def rows(self, kind: str) -> list[dict]:
        if kind == "codes":
            return [{"code": "BASE"}]
        return [{"id": f"base-{kind}"}]


class _ScriptedRemote:
    """Fails each kind a configured number of times before answering."""

    def __init__(self, failures: dict[str, int] | None = None) -> None:
        self.failures = dict(failures or {})
        self.calls: dict[str, int] = {}

    async def fetch_rows(self, kind: str) -> list[dict]:
        self.calls[kind] = self.calls.get(kind, 0) + 1
        if self.failures.get(kind, 0) > 0:
            self.failures[kind] -= 1
            raise FetchFailure(kind, "connection reset")
        if kind == "codes":
            return [{"code": f"REMOTE-{kind.upper()}"}]
        return [{"id": f"remote-{kind}"}]


async def _no_sleep(_seconds: float) -> None:
    return None


class BackgroundSyncTests(unittest.IsolatedAsyncioTestCase):
    def _build(self, remote: _ScriptedRemote, clock: _FakeClock | None = None):
        cache = TtlContentCache(default_ttl_seconds=300)
        service = DataService(remote, _FakeBaseline(), cache, ttl_seconds=300)
        bus = EventBus()
        sync = BackgroundSync(
            service,
            bus,
            interval_seconds=300,
            attempts=3,
            retry_delay_seconds=1.0,
            clock=clock or _FakeClock(),
            sleep=_no_sleep,
        )
        return sync, service, bus, cache

    async def test_sync_refreshes_every_kind_and_publishes_event(self) -> None:
        remote = _ScriptedRemote()
        sync, _, bus, cache = self._build(remote)
        events: list[DataSynced] = []
        bus.subscribe(DataSynced, events.append)

        report = await sync.sync()

        self.assertTrue(report.all_ok)
        self.assertEqual({"codes": 1, "fish": 1, "rods": 1}, remote.calls)
        self.assertEqual({"latest_codes", "latest_fish", "latest_rods"}, set(cache.keys()))
        self.assertEqual(1, len(events))
        self.assertEqual(1_000.0, events[0].timestamp)
        self.assertEqual(2, events[0].results["fish"].item_count)

    async def test_each_kind_retries_independently(self) -> None:
        remote = _ScriptedRemote(failures={"fish": 2})
        sync, _, _, _ = self._build(remote)

        report = await sync.sync()

        self.assertTrue(report.all_ok)
        self.assertEqual(3, remote.calls["fish"])
        self.assertEqual(1, remote.calls["codes"])

    async def test_one_kind_failing_does_not_abort_the_others(self) -> None:
        remote = _ScriptedRemote(failures={"rods": 5})
        sync, service, bus, _ = self._build(remote)
        events: list[DataSynced] = []
        bus.subscribe(DataSynced, events.append)

        report = await sync.sync()

        self.assertFalse(report.all_ok)
        self.assertTrue(report.results["codes"].ok)
        self.assertTrue(report.results["fish"].ok)
        self.assertFalse(report.results["rods"].ok)
        self.assertIn("connection reset", report.results["rods"].error)
        self.assertEqual(3, remote.calls["rods"])
        self.assertEqual(["rods"], events[0].failed_kinds)
        self.assertEqual([{"id": "base-rods"}], service.snapshot("rods"))

    async def test_offline_skips_sync(self) -> None:
        remote = _ScriptedRemote()
        sync, _, _, _ = self._build(remote)
        sync.set_online(False)

        self.assertIsNone(await sync.sync())
        self.assertEqual({}, remote.calls)
        self.assertTrue(sync.needs_sync())

    async def test_coming_back_online_triggers_sync(self) -> None:
        remote = _ScriptedRemote()
        sync, _, _, _ = self._build(remote)
        sync.set_online(False)
        sync.set_online(True)
        await sync.wait_idle()

        self.assertEqual({"codes": 1, "fish": 1, "rods": 1}, remote.calls)

    async def test_force_sync_bypasses_fresh_cache(self) -> None:
        remote = _ScriptedRemote()
        sync, service, _, _ = self._build(remote)
        await service.get_latest_codes()

        await sync.force_sync()

        self.assertEqual(2, remote.calls["codes"])

    async def test_status_tracks_last_sync_age(self) -> None:
        clock = _FakeClock(now=5_000.0)
        sync, _, _, _ = self._build(_ScriptedRemote(), clock=clock)

        status = sync.status()
        self.assertFalse(status.is_running)
        self.assertIsNone(status.last_sync)
        self.assertTrue(status.needs_sync)
        self.assertTrue(status.is_online)

        await sync.sync()
        self.assertFalse(sync.needs_sync())
        clock.now += 601
        self.assertTrue(sync.needs_sync())
        self.assertFalse(sync.needs_sync(max_age_seconds=3_600))

    async def test_start_runs_a_cycle_immediately_and_stop_halts_the_ticker(self) -> None:
        remote = _ScriptedRemote()
        sync, _, _, _ = self._build(remote)

        sync.start()
        self.assertTrue(sync.status().is_running)
        await asyncio.sleep(0)
        await sync.wait_idle()
        sync.stop()

        self.assertFalse(sync.status().is_running)
        self.assertEqual(1, remote.calls["codes"])


class CacheSweeperTests(unittest.IsolatedAsyncioTestCase):
    async def test_sweep_evicts_expired_entries_without_reads(self) -> None:
        clock = _FakeClock(now=0.0)
        cache = TtlContentCache(default_ttl_seconds=10, clock=clock)
        cache.set("latest_fish", [{"id": "a"}])
        cache.set("latest_codes", [{"code": "A"}], ttl_seconds=100)
        clock.now = 11.0

        removed = await CacheSweeper(cache, interval_seconds=60).sweep()

        self.assertEqual(1, removed)
        self.assertEqual(["latest_codes"], cache.keys())

    async def test_sweeper_lifecycle(self) -> None:
        sweeper = CacheSweeper(TtlContentCache(), interval_seconds=60)
        self.assertFalse(sweeper.is_running)
        sweeper.start()
        self.assertTrue(sweeper.is_running)
        sweeper.stop()
        self.assertFalse(sweeper.is_running)


class PeriodicTaskTests(unittest.IsolatedAsyncioTestCase):
    async def test_ticks_repeatedly_until_stopped(self) -> None:
        runs: list[int] = []

        async def _action() -> None:
            runs.append(len(runs))

        task = PeriodicTask("ticker", _action, interval_seconds=0.01)
        task.start()
        await asyncio.sleep(0.05)
        task.stop()
        await task.wait_idle()
        seen = len(runs)
        await asyncio.sleep(0.03)

        self.assertGreaterEqual(seen, 2)
        self.assertEqual(seen, len(runs))

    async def test_failing_action_does_not_kill_the_ticker(self) -> None:
        async def _boom() -> None:
            raise RuntimeError("boom")

        task = PeriodicTask("boom", _boom, interval_seconds=60)
        with self.assertLogs("fisch.application.services.scheduling", level="ERROR"):
            await task.fire()
        await asyncio.sleep(0)
        self.assertEqual(0, task.in_flight)

    def test_rejects_non_positive_interval(self) -> None:
        with self.assertRaises(ValueError):
            PeriodicTask("bad", lambda: None, interval_seconds=0)


if __name__ == "__main__":
    unittest.main()

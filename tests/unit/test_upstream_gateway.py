import sys
from pathlib import Path
import unittest

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from fisch.infrastructure.content_cache import TtlContentCache
from fisch.infrastructure.upstream_gateway import UpstreamDataGateway
from fisch.presentation.web import create_web_app


class _FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _Upstream:
    def __init__(self) -> None:
        self.fail = False
        self.calls: list[str] = []
        self.payloads = {
            "/v1/codes": {"data": [{"code": "LIVE1", "reward": "1 C$", "status": "active"}]},
            "/v1/fish": [{"id": "megalodon", "baseValue": 13000}],
            "/v1/rods": {"results": [{"id": "aurora-rod"}]},
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path)
        if self.fail:
            return httpx.Response(503, json={"error": "down"})
        return httpx.Response(200, json=self.payloads[request.url.path])


def _gateway(upstream: _Upstream, clock: _FakeClock) -> UpstreamDataGateway:
    http_client = httpx.Client(base_url="https://upstream.test", transport=httpx.MockTransport(upstream))
    return UpstreamDataGateway(
        http_client=http_client,
        cache=TtlContentCache(default_ttl_seconds=300, clock=clock),
        retries=0,
    )


class UpstreamDataGatewayTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _FakeClock()
        self.upstream = _Upstream()
        self.gateway = _gateway(self.upstream, self.clock)

    def tearDown(self) -> None:
        self.gateway.close()

    def test_unknown_type_is_a_bad_request(self) -> None:
        for kind in (None, "", "bait"):
            with self.subTest(kind=kind):
                response = self.gateway.handle(kind)
                self.assertEqual(400, response.status_code)
                self.assertEqual({"error": "Invalid data type"}, response.body)

    def test_accepts_list_and_wrapped_payloads(self) -> None:
        self.assertEqual("LIVE1", self.gateway.handle("codes").body["data"][0]["code"])
        self.assertEqual("megalodon", self.gateway.handle("fish").body["data"][0]["id"])
        self.assertEqual("aurora-rod", self.gateway.handle("rods").body["data"][0]["id"])

    def test_serves_from_cache_within_ttl(self) -> None:
        first = self.gateway.handle("fish")
        self.clock.now += 120
        second = self.gateway.handle("fish")

        self.assertEqual(["/v1/fish"], self.upstream.calls)
        self.assertEqual(first.body, second.body)
        self.assertEqual(int(1_700_000_000.0 * 1000), second.body["lastUpdated"])
        self.assertEqual("api", second.body["source"])

    def test_upstream_failure_serves_stale_copy(self) -> None:
        self.gateway.handle("fish")
        self.clock.now += 301
        self.upstream.fail = True

        response = self.gateway.handle("fish")

        self.assertEqual(200, response.status_code)
        self.assertEqual("megalodon", response.body["data"][0]["id"])
        self.assertEqual(2, len(self.upstream.calls))

    def test_upstream_failure_without_cache_uses_sample_fallback(self) -> None:
        self.upstream.fail = True

        codes = self.gateway.handle("codes")
        fish = self.gateway.handle("fish")

        self.assertEqual(["FISCH2024", "FISHINGPRO"], [row["code"] for row in codes.body["data"]])
        self.assertEqual([], fish.body["data"])
        self.assertEqual([], self.gateway.cache.keys())

    def test_sweep_drops_expired_lists(self) -> None:
        self.gateway.handle("codes")
        self.clock.now += 301
        self.assertEqual(1, self.gateway.sweep())
        self.assertEqual([], self.gateway.cache.keys())

    def test_injected_cache_and_its_clock_are_kept(self) -> None:
        cache = TtlContentCache(default_ttl_seconds=60, clock=self.clock)
        gateway = UpstreamDataGateway(http_client=self.gateway.client, cache=cache)

        self.assertIs(cache, gateway.cache)
        self.assertEqual(60, gateway.sweep_interval_seconds)

    def test_request_sweeps_run_at_most_once_per_ttl(self) -> None:
        self.gateway.cache.set("fish", [{"id": "megalodon"}], ttl_seconds=10)
        self.clock.now += 20

        self.assertEqual(0, self.gateway.maybe_sweep())
        self.assertEqual(["fish"], self.gateway.cache.keys())

        self.clock.now += 300
        self.assertEqual(1, self.gateway.maybe_sweep())
        self.assertEqual([], self.gateway.cache.keys())


class DataEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        self.upstream = _Upstream()
        self.gateway = _gateway(self.upstream, _FakeClock())
        self.client = create_web_app(self.gateway).test_client()

    def tearDown(self) -> None:
        self.gateway.close()

    def test_get_data_returns_envelope(self) -> None:
        response = self.client.get("/api/data?type=codes")
        self.assertEqual(200, response.status_code)
        body = response.get_json()
        self.assertEqual("api", body["source"])
        self.assertEqual("LIVE1", body["data"][0]["code"])
        self.assertIn("lastUpdated", body)

    def test_invalid_type_returns_400(self) -> None:
        response = self.client.get("/api/data?type=locations")
        self.assertEqual(400, response.status_code)
        self.assertEqual({"error": "Invalid data type"}, response.get_json())

    def test_missing_type_returns_400(self) -> None:
        self.assertEqual(400, self.client.get("/api/data").status_code)


if __name__ == "__main__":
    unittest.main()

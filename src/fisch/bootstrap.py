import logging
import os
from dataclasses import dataclass

from fisch.application.services.background_sync import BackgroundSync, CacheSweeper
from fisch.application.services.data_service import DataService
from fisch.application.services.estimator import ProfitEstimator
from fisch.application.services.event_bus import EventBus
from fisch.application.services.price_monitor import PriceMonitor
from fisch.domain.events import DataSynced
from fisch.infrastructure.baseline_provider import BaselineProvider
from fisch.infrastructure.content_cache import TtlContentCache
from fisch.infrastructure.data_api_client import DataApiClient
from fisch.infrastructure.reference_catalog import InMemoryReferenceCatalog
from fisch.infrastructure.upstream_gateway import UpstreamDataGateway


logger = logging.getLogger(__name__)

CATALOG_KINDS = ("fish", "rods")


@dataclass
class FischApplication:
    """Every long-lived service, built once and handed to whoever needs it."""

    baseline: BaselineProvider
    catalog: InMemoryReferenceCatalog
    estimator: ProfitEstimator
    cache: TtlContentCache
    client: DataApiClient
    data_service: DataService
    event_bus: EventBus
    sync: BackgroundSync
    sweeper: CacheSweeper
    price_monitor: PriceMonitor

    def start(self) -> None:
        self.sync.start()
        self.sweeper.start()

    def stop(self) -> None:
        self.sync.stop()
        self.sweeper.stop()

    async def close(self) -> None:
        self.stop()
        await self.client.close()


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


def _refresh_catalog_on_sync(app: FischApplication):
    def _handler(event: DataSynced) -> None:
        for kind in CATALOG_KINDS:
            outcome = event.results.get(kind)
            if outcome is None or not outcome.ok:
                continue
            rows = app.data_service.snapshot(kind)
            app.catalog.replace_rows(kind, rows)
            if kind == "fish":
                app.price_monitor.load(rows)
        logger.debug("Reference catalog refreshed", extra={"failed_kinds": event.failed_kinds})

    return _handler


def create_application(client: DataApiClient | None = None) -> FischApplication:
    cache_ttl_seconds = _env_float("FISCH_CACHE_TTL_S", "300")
    baseline = BaselineProvider(os.getenv("FISCH_BASELINE_DIR") or None)
    cache = TtlContentCache(default_ttl_seconds=cache_ttl_seconds)
    client = client or DataApiClient(
        base_url=os.getenv("FISCH_DATA_API_URL", "http://127.0.0.1:8000"),
        timeout=_env_float("FISCH_DATA_TIMEOUT_S", "10"),
    )
    data_service = DataService(client, baseline, cache, ttl_seconds=cache_ttl_seconds)
    event_bus = EventBus()
    sync = BackgroundSync(
        data_service,
        event_bus,
        interval_seconds=_env_float("FISCH_SYNC_INTERVAL_S", "300"),
        attempts=int(os.getenv("FISCH_SYNC_ATTEMPTS", "3")),
        retry_delay_seconds=_env_float("FISCH_SYNC_BACKOFF_S", "1.0"),
    )
    sweeper = CacheSweeper(cache, interval_seconds=_env_float("FISCH_CACHE_SWEEP_INTERVAL_S", "300"))
    catalog = InMemoryReferenceCatalog.from_baseline(baseline)

    app = FischApplication(
        baseline=baseline,
        catalog=catalog,
        estimator=ProfitEstimator(catalog),
        cache=cache,
        client=client,
        data_service=data_service,
        event_bus=event_bus,
        sync=sync,
        sweeper=sweeper,
        price_monitor=PriceMonitor(baseline.fish()),
    )
    event_bus.subscribe(DataSynced, _refresh_catalog_on_sync(app))
    return app


def create_upstream_gateway() -> UpstreamDataGateway:
    return UpstreamDataGateway(
        base_url=os.getenv("FISCH_UPSTREAM_URL", UpstreamDataGateway.BASE_URL),
        timeout=_env_float("FISCH_UPSTREAM_TIMEOUT_S", "10"),
        retries=int(os.getenv("FISCH_UPSTREAM_RETRIES", "0")),
        backoff_seconds=_env_float("FISCH_UPSTREAM_BACKOFF_S", "0.2"),
        cache_ttl_seconds=_env_float("FISCH_UPSTREAM_CACHE_TTL_S", "300"),
    )

from __future__ import annotations

# =============================================================================
# ScanMonitor (FastAPI)
#
# Responsibilities:
# - Wire settings, reading cache, Datadog source, freshness engine,
#   connectivity probe and state coordinator (lifespan)
# - Render the dashboard (/), text output (/txt), API output (/api/state)
# - Manual refresh (/api/refresh) and cache reset (/api/cache)
# =============================================================================

# ---- stdlib ----
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import Optional

# ---- web ----
from fastapi import FastAPI
from starlette.templating import Jinja2Templates

# ---- local ----
from core.cache import CacheStore, ReadingCache
from core.config import Settings
from core.connectivity import ConnectivityMonitor, ProbeConnectivityMonitor
from core.coordinator import StateCoordinator
from core.freshness import FreshnessEngine
from metrics.base import MetricSource
from metrics.datadog import DatadogMetricSource
from routers.dashboard import router as dashboard_router
from routers.metrics import router as metrics_router

log = logging.getLogger("scanmonitor")

# =============================================================================
# Config / Paths
# =============================================================================

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"

# Extra headroom over the transport timeout before the engine gives up itself.
ENGINE_TIMEOUT_MARGIN_S = 2.0


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# App factory
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    *,
    source: Optional[MetricSource] = None,
    cache: Optional[CacheStore] = None,
    monitor: Optional[ConnectivityMonitor] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)

        app.state.cache = cache or ReadingCache(settings.cache_path)
        app.state.source = source or DatadogMetricSource(
            base_url=settings.datadog_base_url,
            api_key=settings.datadog_api_key,
            app_key=settings.datadog_app_key,
            query=settings.query,
            timeout_s=settings.fetch_timeout_s,
        )
        app.state.monitor = monitor or ProbeConnectivityMonitor(
            host=settings.probe_host,
            port=settings.probe_port,
            interval_s=settings.probe_interval_s,
        )
        app.state.engine = FreshnessEngine(
            source=app.state.source,
            cache=app.state.cache,
            stale_threshold=timedelta(seconds=settings.stale_after_s),
            fetch_timeout_s=settings.fetch_timeout_s + ENGINE_TIMEOUT_MARGIN_S,
        )
        app.state.coordinator = StateCoordinator(
            engine=app.state.engine,
            monitor=app.state.monitor,
            refresh_interval_s=settings.refresh_interval_s,
        )

        if isinstance(app.state.monitor, ProbeConnectivityMonitor):
            app.state.monitor.start()
        app.state.coordinator.start()
        log.info("scanmonitor started (cache=%s)", settings.cache_path)

        try:
            yield
        finally:
            app.state.coordinator.stop()
            if isinstance(app.state.monitor, ProbeConnectivityMonitor):
                await app.state.monitor.stop()
            await app.state.coordinator.drain()
            log.info("scanmonitor stopped")

    app = FastAPI(title="ScanMonitor", version="0.1", lifespan=lifespan)
    app.state.settings = settings
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

    app.include_router(dashboard_router)
    app.include_router(metrics_router)
    return app


app = create_app()

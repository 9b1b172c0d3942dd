from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from devkit.observability import configure_logging, configure_otel, configure_probe_access_log_filter
from geo_engine.resolvers import LocationResolver, close_resolver

from storefront.dependencies import build_admission_gateway
from storefront.middleware import GeoAdmissionMiddleware, ObservabilityMiddleware
from storefront.observability import (
    CompositeApiMetricsCollector,
    InMemoryApiMetricsCollector,
    PrometheusApiMetricsCollector,
)
from storefront.response import success_response
from storefront.settings import StorefrontSettings, load_storefront_settings
from storefront.static_files import SinglePageStaticFiles

logger = logging.getLogger(__name__)


def create_app(
    settings: StorefrontSettings | None = None,
    resolver: LocationResolver | None = None,
) -> FastAPI:
    settings = settings or load_storefront_settings()
    configure_logging(settings.LOG_LEVEL, loggers=("geo_engine", "storefront"))
    configure_otel(service_name=settings.SERVICE_NAME)
    configure_probe_access_log_filter(settings.exempt_paths)
    gateway = build_admission_gateway(settings, resolver)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "storefront_started",
            extra={
                "component": "storefront",
                "center_lat": gateway.config.center.lat,
                "center_lng": gateway.config.center.lng,
                "radius_km": gateway.config.radius_km,
            },
        )
        try:
            yield
        finally:
            close_resolver(gateway.resolver)

    app = FastAPI(title="Geofenced Storefront", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.admission_gateway = gateway
    app.state.api_metrics = InMemoryApiMetricsCollector(max_items=settings.METRICS_BUFFER_SIZE)
    app.state.prom_metrics = PrometheusApiMetricsCollector()
    app.state.composite_metrics = CompositeApiMetricsCollector(
        [app.state.api_metrics, app.state.prom_metrics]
    )

    # last added runs first: observability wraps CORS, which wraps the geofence
    app.add_middleware(
        GeoAdmissionMiddleware,
        gateway=gateway,
        collector=app.state.composite_metrics,
        trust_proxy=settings.TRUST_PROXY,
        exempt_paths=settings.exempt_paths,
        denied_message=settings.GEOFENCE_DENIED_MESSAGE,
    )
    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_methods=["GET", "HEAD", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(ObservabilityMiddleware, collector=app.state.composite_metrics)

    @app.get("/healthz")
    async def healthz() -> dict:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz() -> dict:
        return success_response({"status": "ready"}, meta={})

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = app.state.prom_metrics.render()
        return Response(content=payload, media_type="text/plain; version=0.0.4")

    if settings.STATIC_ROOT:
        app.mount("/", SinglePageStaticFiles(directory=settings.STATIC_ROOT), name="static")

    return app

from __future__ import annotations

import logging
from time import perf_counter
from uuid import uuid4

from opentelemetry import trace
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Match, Mount

from geo_engine.admission import AdmissionGateway

from storefront.observability import AdmissionMetric, ApiMetricCollector, ApiRequestMetric, get_trace_id, set_trace_id
from storefront.response import error_response
from storefront.settings import DEFAULT_DENIED_MESSAGE

logger = logging.getLogger(__name__)

UNMATCHED_ROUTE_LABEL = "unmatched"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, collector: ApiMetricCollector) -> None:
        super().__init__(app)
        self._collector = collector
        self._tracer = trace.get_tracer("storefront")

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id = request.headers.get("x-trace-id") or str(uuid4())
        set_trace_id(trace_id)
        route_label = resolve_route_label(request)
        started = perf_counter()
        with self._tracer.start_as_current_span("http.request") as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.route", route_label)
            span.set_attribute("trace.id", trace_id)
            try:
                response = await call_next(request)
            except Exception:
                self._collector.observe(
                    ApiRequestMetric(
                        method=request.method,
                        path=route_label,
                        status_code=500,
                        duration_ms=(perf_counter() - started) * 1000.0,
                        trace_id=trace_id,
                    )
                )
                span.set_attribute("http.status_code", 500)
                raise
            span.set_attribute("http.status_code", response.status_code)

        response.headers["x-trace-id"] = trace_id
        self._collector.observe(
            ApiRequestMetric(
                method=request.method,
                path=route_label,
                status_code=response.status_code,
                duration_ms=(perf_counter() - started) * 1000.0,
                trace_id=trace_id,
            )
        )
        return response


def resolve_client_address(request: Request, trust_proxy: bool) -> str:
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded
    if request.client:
        return request.client.host
    return ""


def resolve_route_label(request: Request) -> str:
    """Return the template of the route serving ``request``, never the raw path."""
    router = getattr(request.scope.get("app"), "router", None)
    for route in getattr(router, "routes", ()):
        match, _ = route.matches(request.scope)
        if match is not Match.FULL:
            continue
        if isinstance(route, Mount):
            return f"{route.path}/*"
        return getattr(route, "path", UNMATCHED_ROUTE_LABEL)
    return UNMATCHED_ROUTE_LABEL


class GeoAdmissionMiddleware(BaseHTTPMiddleware):
    """Rejects requests from outside the geofence before any handler runs.

    Denied clients get a uniform 403 body; the reason code and distance are
    only recorded in logs, spans and metrics.
    """

    def __init__(
        self,
        app,
        gateway: AdmissionGateway,
        collector: ApiMetricCollector,
        trust_proxy: bool = True,
        exempt_paths: tuple[str, ...] = (),
        denied_message: str = DEFAULT_DENIED_MESSAGE,
    ) -> None:
        super().__init__(app)
        self._gateway = gateway
        self._collector = collector
        self._trust_proxy = trust_proxy
        self._exempt_paths = frozenset(exempt_paths)
        self._denied_message = denied_message

    async def dispatch(self, request: Request, call_next) -> Response:
        # exact match: "/healthz/" would fall through to the static mount
        if request.url.path in self._exempt_paths:
            return await call_next(request)

        raw_address = resolve_client_address(request, self._trust_proxy)
        started = perf_counter()
        decision = await run_in_threadpool(self._gateway.evaluate, raw_address)
        duration_ms = (perf_counter() - started) * 1000.0

        span = trace.get_current_span()
        span.set_attribute("geo.admission.reason_code", decision.reason_code.value)
        if decision.distance_km is not None:
            span.set_attribute("geo.admission.distance_km", decision.distance_km)
        self._collector.observe_admission(
            AdmissionMetric(
                reason_code=decision.reason_code.value,
                allowed=decision.allowed,
                duration_ms=duration_ms,
                trace_id=get_trace_id(),
            )
        )

        if decision.allowed:
            return await call_next(request)

        logger.info(
            "geo_admission_denied",
            extra={
                "component": "storefront",
                "path": request.url.path,
                "client_address": raw_address,
                "reason_code": decision.reason_code.value,
                "distance_km": decision.distance_km,
            },
        )
        return JSONResponse(status_code=403, content=error_response("ACCESS_DENIED", self._denied_message))

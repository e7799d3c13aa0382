"""
Prometheus Metrics for the admin API

HTTP traffic:
- jobboard_http_request_seconds{method, route, status}
- jobboard_http_requests_total{method, route, status}
- jobboard_http_requests_in_flight{method}

Domain:
- jobboard_logo_conversions_total{outcome}: ok, decode_error, encode_error, stale
- jobboard_logo_uploads_total{outcome}: ok, error
- jobboard_logo_previews_live: preview handles not yet revoked
- jobboard_listing_seconds: filter + sort + paginate time of the job table
- jobboard_document_writes_total{collection, op}: add, update, delete, delete_where

Routes are labelled by their template (/jobs/{job_id}), never the raw
path, so preview tokens and document ids do not become label values.

Usage:
    setup_metrics(app)   # adds the middleware and GET /metrics
"""

import time
import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CONTENT_TYPE_LATEST,
    generate_latest,
    REGISTRY,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

logger = logging.getLogger(__name__)

UNMATCHED_ROUTE = "unmatched"
SKIPPED_ROUTES = {"/metrics", "/health"}

# ==================== Prometheus Metrics ====================

REQUEST_LATENCY = Histogram(
    "jobboard_http_request_seconds",
    "Admin API request latency in seconds",
    ["method", "route", "status"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

REQUEST_COUNT = Counter(
    "jobboard_http_requests_total",
    "Admin API requests",
    ["method", "route", "status"]
)

REQUESTS_IN_FLIGHT = Gauge(
    "jobboard_http_requests_in_flight",
    "Admin API requests being served",
    ["method"]
)

IMAGE_CONVERSIONS = Counter(
    "jobboard_logo_conversions_total",
    "Logo normalizations by outcome",
    ["outcome"]
)

LOGO_UPLOADS = Counter(
    "jobboard_logo_uploads_total",
    "Logo uploads to the blob store by outcome",
    ["outcome"]
)

LIVE_PREVIEWS = Gauge(
    "jobboard_logo_previews_live",
    "Preview handles not yet revoked"
)

LISTING_LATENCY = Histogram(
    "jobboard_listing_seconds",
    "Time to filter, sort and paginate the job table",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1]
)

DOCUMENT_WRITES = Counter(
    "jobboard_document_writes_total",
    "Committed document store writes",
    ["collection", "op"]
)


def _matched_path(routes, scope) -> Optional[str]:
    partial = None
    for route in routes:
        path = getattr(route, "path", None)
        if not path:
            # Included routers carry no path of their own
            continue
        match, _ = route.matches(scope)
        if match == Match.FULL:
            return path
        if match == Match.PARTIAL and partial is None:
            # Wrong method on a known path; still label by template
            partial = path
    return partial


def route_template(request: Request) -> str:
    """
    Path template of the route that served this request.

    Read after the request was routed: the router leaves the matched route
    in scope["route"]. Falls back to matching the app's top-level routes.
    """
    route = request.scope.get("route")
    path = getattr(route, "path_format", None) or getattr(route, "path", None)
    if path:
        return path
    return _matched_path(request.app.routes, request.scope) or UNMATCHED_ROUTE


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Records latency, count and in-flight gauge for every API request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in SKIPPED_ROUTES:
            return await call_next(request)

        method = request.method
        REQUESTS_IN_FLIGHT.labels(method=method).inc()
        start = time.perf_counter()
        status = "500"

        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        except Exception:
            logger.exception(f"Unhandled error on {method} {request.url.path}")
            raise
        finally:
            route = route_template(request)
            REQUEST_LATENCY.labels(method=method, route=route, status=status).observe(
                time.perf_counter() - start
            )
            REQUEST_COUNT.labels(method=method, route=route, status=status).inc()
            REQUESTS_IN_FLIGHT.labels(method=method).dec()


def metrics_endpoint(request: Request) -> Response:
    return PlainTextResponse(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


def setup_metrics(app: FastAPI) -> None:
    app.add_middleware(PrometheusMiddleware)
    app.add_route("/metrics", metrics_endpoint, methods=["GET"])
    logger.info("Prometheus metrics enabled at /metrics")


# ==================== Helper Functions ====================

def record_image_conversion(outcome: str) -> None:
    IMAGE_CONVERSIONS.labels(outcome=outcome).inc()


def record_logo_upload(outcome: str) -> None:
    LOGO_UPLOADS.labels(outcome=outcome).inc()


def record_listing_latency(duration: float) -> None:
    LISTING_LATENCY.observe(duration)


def record_document_write(collection: str, op: str) -> None:
    DOCUMENT_WRITES.labels(collection=collection, op=op).inc()


def update_live_previews(count: int) -> None:
    LIVE_PREVIEWS.set(count)

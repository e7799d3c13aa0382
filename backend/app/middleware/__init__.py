"""
Middleware Package

Prometheus request metrics plus the domain counters recorded by the
listing, logo and document store services.
"""

from app.middleware.metrics import (
    PrometheusMiddleware,
    setup_metrics,
    record_document_write,
    record_image_conversion,
    record_listing_latency,
    record_logo_upload,
    update_live_previews,
)

__all__ = [
    "PrometheusMiddleware",
    "setup_metrics",
    "record_document_write",
    "record_image_conversion",
    "record_listing_latency",
    "record_logo_upload",
    "update_live_previews",
]

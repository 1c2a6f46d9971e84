"""Prometheus instruments shared by every application instance."""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

__all__ = ["REQUEST_LATENCY", "SEQUENCE_RESOLUTIONS", "render_latest"]

REQUEST_LATENCY = Histogram(
    "request_latency_seconds",
    "HTTP request latency",
    labelnames=("method", "endpoint"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

SEQUENCE_RESOLUTIONS = Counter(
    "sequence_resolutions_total",
    "Resolved sequence terms by cache outcome",
    labelnames=("sequence", "cached"),
)


def render_latest() -> tuple[bytes, str]:
    """Return the exposition payload and its content type."""

    return generate_latest(), CONTENT_TYPE_LATEST

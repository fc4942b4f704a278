"""
Prometheus metrics for the matching engine.

All collectors live in one registry so every process (API, consumer,
reconciliation) exposes the same families. The API serves them at
/metrics; the background commands start a small exporter on
metrics.port.
"""

import logging

from prometheus_client import (
    CollectorRegistry,
    Counter,
    CONTENT_TYPE_LATEST,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
    start_http_server,
)

logger = logging.getLogger(__name__)

REGISTRY = CollectorRegistry()
ProcessCollector(registry=REGISTRY)
PlatformCollector(registry=REGISTRY)
GCCollector(registry=REGISTRY)

TRIGGER_SUCCESS = "success"
TRIGGER_ABORTED = "aborted"
TRIGGER_ERROR = "error"

MATCHING_REQUESTS = Counter(
    "matching_requests_total",
    "Triggers run by the matching pipeline",
    labelnames=["type", "status"],
    registry=REGISTRY,
)

MATCHES_CREATED = Counter(
    "matching_matches_created_total",
    "Matches persisted, by trigger source",
    labelnames=["source"],
    registry=REGISTRY,
)

EVENTS_HANDLED = Counter(
    "matching_events_total",
    "Inbound stream messages by acknowledgement decision",
    labelnames=["decision", "reason"],
    registry=REGISTRY,
)

EVENTS_DEAD_LETTERED = Counter(
    "matching_events_dead_lettered_total",
    "Messages moved to the dead-letter stream",
    labelnames=["stream"],
    registry=REGISTRY,
)


def record_trigger(side: str, status: str) -> None:
    MATCHING_REQUESTS.labels(side, status).inc()


def record_event(decision: str, reason: str) -> None:
    EVENTS_HANDLED.labels(decision, reason).inc()


def render_latest() -> bytes:
    return generate_latest(REGISTRY)


def start_exporter(port: int) -> None:
    """Serve the registry over HTTP from a daemon thread."""
    start_http_server(port, registry=REGISTRY)
    logger.info(f"Metrics exporter listening on :{port}")


__all__ = [
    'REGISTRY',
    'CONTENT_TYPE_LATEST',
    'MATCHING_REQUESTS',
    'MATCHES_CREATED',
    'EVENTS_HANDLED',
    'EVENTS_DEAD_LETTERED',
    'TRIGGER_SUCCESS',
    'TRIGGER_ABORTED',
    'TRIGGER_ERROR',
    'record_trigger',
    'record_event',
    'render_latest',
    'start_exporter',
]

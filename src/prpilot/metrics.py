"""Prometheus metrics for PR Pilot.

Collectors live on a dedicated registry so that tests and embedding
applications never collide with the process-wide default registry.

Metrics:
    prpilot_tool_calls_total: Tool invocations by tool name and outcome
    prpilot_upstream_requests_total: Outbound HTTP requests by service and outcome
    prpilot_upstream_request_seconds: Outbound HTTP request latency by service
    prpilot_degradations_total: Enrichment fallbacks by pipeline stage
"""

import logging

from prometheus_client import CONTENT_TYPE_LATEST
from prometheus_client import CollectorRegistry
from prometheus_client import Counter
from prometheus_client import Histogram
from prometheus_client import generate_latest


logger = logging.getLogger(__name__)

REGISTRY = CollectorRegistry()

TOOL_CALLS = Counter(
    "prpilot_tool_calls_total",
    "Tool invocations",
    ["tool", "outcome"],
    registry=REGISTRY,
)

UPSTREAM_REQUESTS = Counter(
    "prpilot_upstream_requests_total",
    "Outbound HTTP requests",
    ["service", "outcome"],
    registry=REGISTRY,
)

UPSTREAM_LATENCY = Histogram(
    "prpilot_upstream_request_seconds",
    "Outbound HTTP request duration",
    ["service"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
    registry=REGISTRY,
)

DEGRADATIONS = Counter(
    "prpilot_degradations_total",
    "Enrichment steps replaced by a deterministic fallback",
    ["stage"],
    registry=REGISTRY,
)


def record_tool_call(tool: str, success: bool) -> None:
    """Count a finished tool invocation."""
    TOOL_CALLS.labels(tool=tool, outcome="success" if success else "failure").inc()


def record_upstream(service: str, outcome: str, seconds: float) -> None:
    """Count an outbound request and observe its duration."""
    UPSTREAM_REQUESTS.labels(service=service, outcome=outcome).inc()
    UPSTREAM_LATENCY.labels(service=service).observe(seconds)


def record_degradation(stage: str) -> None:
    """Count a fallback taken by the enrichment pipeline."""
    logger.debug("Recording degradation at stage %s", stage)
    DEGRADATIONS.labels(stage=stage).inc()


def render_latest() -> tuple[bytes, str]:
    """Render all collectors in the Prometheus text format."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST

"""
Prometheus metrics for the Keycloak provisioner.

Metrics live on a dedicated registry so an embedding process can expose or
ignore them without collisions with its own default registry.
"""

import time
from contextlib import asynccontextmanager

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


_metrics_registry = CollectorRegistry()

PROVISIONING_RUNS_TOTAL = Counter(
    "keycloak_provisioner_runs_total",
    "Total number of provisioning runs",
    ["result"],
    registry=_metrics_registry,
)

PROVISIONING_STEP_TOTAL = Counter(
    "keycloak_provisioner_step_total",
    "Total number of provisioning steps by outcome",
    ["step", "outcome"],
    registry=_metrics_registry,
)

PROVISIONING_STEP_DURATION = Histogram(
    "keycloak_provisioner_step_duration_seconds",
    "Time spent in each provisioning step",
    ["step"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 120.0],
    registry=_metrics_registry,
)

READINESS_PROBES_TOTAL = Counter(
    "keycloak_provisioner_readiness_probes_total",
    "Total number of readiness probes sent to Keycloak",
    ["result"],
    registry=_metrics_registry,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get the provisioner metrics registry."""
    return _metrics_registry


def render_metrics() -> bytes:
    """Render all provisioner metrics in the Prometheus text format."""
    return generate_latest(_metrics_registry)


class MetricsCollector:
    """Collects and manages metrics for provisioning runs."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or get_metrics_registry()

    @asynccontextmanager
    async def track_step(self, step: str):
        """
        Context manager timing a provisioning step.

        The step outcome is recorded separately through ``record_step_outcome``
        since only the caller knows whether a success was a create, an update
        or a no-op.
        """
        start_time = time.monotonic()
        try:
            yield
        finally:
            PROVISIONING_STEP_DURATION.labels(step=step).observe(
                time.monotonic() - start_time
            )

    def record_step_outcome(self, step: str, outcome: str) -> None:
        PROVISIONING_STEP_TOTAL.labels(step=step, outcome=outcome).inc()

    def record_run(self, success: bool) -> None:
        PROVISIONING_RUNS_TOTAL.labels(result="success" if success else "error").inc()

    def record_probe(self, ready: bool) -> None:
        READINESS_PROBES_TOTAL.labels(result="ready" if ready else "unreachable").inc()


metrics_collector = MetricsCollector()

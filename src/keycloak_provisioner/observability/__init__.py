"""
Observability utilities for the Keycloak provisioner.

This module provides metrics, tracing and structured logging
capabilities for production monitoring and troubleshooting.
"""

from .logging import ProvisioningLogger, setup_structured_logging
from .metrics import MetricsCollector, get_metrics_registry
from .tracing import get_tracer, setup_tracing

__all__ = [
    "MetricsCollector",
    "get_metrics_registry",
    "ProvisioningLogger",
    "setup_structured_logging",
    "get_tracer",
    "setup_tracing",
]

"""
Structured logging utilities for the Keycloak provisioner.

This module provides correlation ID tracking, structured log formatting,
and a step-narration logger that is injected into the provisioning services
instead of being looked up from process-wide state.
"""

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable for tracking correlation IDs across async operations
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Structured fields copied from log records into the JSON document
STRUCTURED_FIELDS = (
    "workspace_id",
    "realm_name",
    "client_name",
    "step",
    "outcome",
    "operation",
    "duration",
    "error_type",
    "http_status",
    "response_body",
    "attempt",
    "url",
)


class CorrelationIDFilter(logging.Filter):
    """Logging filter that adds correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        current_correlation_id = correlation_id.get()
        if not current_correlation_id:
            current_correlation_id = generate_correlation_id()
            correlation_id.set(current_correlation_id)

        record.correlation_id = current_correlation_id
        return True


class StructuredFormatter(logging.Formatter):
    """
    Structured JSON formatter for logs with correlation ID support.

    Formats log records as structured JSON for better parsing and analysis
    in production monitoring systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", ""),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


def generate_correlation_id() -> str:
    """Generate a short correlation ID."""
    return str(uuid.uuid4())[:8]


def set_correlation_id(corr_id: str) -> str:
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str:
    return correlation_id.get("")


def setup_structured_logging(
    log_level: str = "INFO",
    enable_json_formatting: bool = True,
    correlation_id_enabled: bool = True,
) -> None:
    """
    Set up structured logging for the provisioner.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json_formatting: Whether to use JSON formatting
        correlation_id_enabled: Whether to enable correlation ID tracking
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()

    if enable_json_formatting:
        formatter: logging.Formatter = StructuredFormatter()
    elif correlation_id_enabled:
        formatter = logging.Formatter(
            "%(asctime)s - %(correlation_id)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)

    if correlation_id_enabled:
        handler.addFilter(CorrelationIDFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Third-party libraries are noisy at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class ProvisioningLogger:
    """
    Step-narration logger for provisioning runs.

    Provides convenient methods for logging run and step events with
    correlation ID tracking and structured data. Instances are passed into
    the orchestrator and reconcilers so tests can substitute their own.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def log_run_start(
        self,
        workspace_id: str,
        realm_name: str,
        correlation_id: str | None = None,
    ) -> str:
        """
        Log the start of a provisioning run.

        Returns:
            The correlation ID used for this run
        """
        if correlation_id is None:
            correlation_id = generate_correlation_id()

        set_correlation_id(correlation_id)

        self.logger.info(
            f"Starting provisioning for workspace {workspace_id} in realm {realm_name}",
            extra={
                "workspace_id": workspace_id,
                "realm_name": realm_name,
                "operation": "provision_start",
            },
        )
        return correlation_id

    def log_run_success(self, workspace_id: str, duration: float) -> None:
        self.logger.info(
            f"Provisioning completed successfully for workspace {workspace_id}",
            extra={
                "workspace_id": workspace_id,
                "operation": "provision_success",
                "duration": duration,
            },
        )

    def log_run_error(
        self, workspace_id: str, step: str, error: Exception, duration: float
    ) -> None:
        self.logger.error(
            f"Provisioning failed for workspace {workspace_id} at step {step}: {error}",
            extra={
                "workspace_id": workspace_id,
                "step": step,
                "operation": "provision_error",
                "error_type": type(error).__name__,
                "duration": duration,
            },
        )

    def log_step_start(self, step: str, message: str, **kwargs) -> None:
        self.logger.info(
            message, extra={"step": step, "operation": "step_start", **kwargs}
        )

    def log_step_success(
        self, step: str, outcome: str, duration: float, **kwargs
    ) -> None:
        self.logger.info(
            f"Step {step} finished: {outcome}",
            extra={
                "step": step,
                "outcome": outcome,
                "operation": "step_success",
                "duration": duration,
                **kwargs,
            },
        )

    def log_step_error(
        self, step: str, error: Exception, duration: float, **kwargs
    ) -> None:
        self.logger.error(
            f"Step {step} failed: {error}",
            extra={
                "step": step,
                "outcome": "Failed",
                "operation": "step_error",
                "error_type": type(error).__name__,
                "duration": duration,
                **kwargs,
            },
        )

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message with extra data."""
        self.logger.debug(message, extra=kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message with extra data."""
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message with extra data."""
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        """Log error message with extra data."""
        self.logger.error(message, exc_info=exc_info, extra=kwargs)

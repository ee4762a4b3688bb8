"""Centralized provisioner settings using pydantic-settings.

This module provides a single source of truth for all provisioner configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Provisioner configuration loaded from environment variables.

    All settings have sensible defaults. Override via environment variables
    as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )

    # Readiness wait budget
    readiness_max_attempts: int = Field(
        default=200,
        ge=1,
        validation_alias="READINESS_MAX_ATTEMPTS",
        description="Number of probes sent before Keycloak is declared unavailable",
    )
    readiness_interval_ms: int = Field(
        default=500,
        ge=0,
        validation_alias="READINESS_INTERVAL_MS",
        description="Fixed pause in milliseconds between two readiness probes",
    )
    readiness_failure_status: int = Field(
        default=500,
        validation_alias="READINESS_FAILURE_STATUS",
        description="HTTP status at or above which a probe counts as not ready",
    )

    # Keycloak admin API access
    keycloak_admin_realm: str = Field(
        default="master",
        validation_alias="KEYCLOAK_ADMIN_REALM",
        description="Realm holding the admin account used for provisioning",
    )
    keycloak_admin_client_id: str = Field(
        default="admin-cli",
        validation_alias="KEYCLOAK_ADMIN_CLIENT_ID",
        description="Client used for the admin password grant",
    )
    keycloak_verify_ssl: bool = Field(
        default=True,
        validation_alias="KEYCLOAK_VERIFY_SSL",
        description="Verify TLS certificates of the Keycloak server",
    )
    keycloak_http_timeout: float = Field(
        default=60.0,
        validation_alias="KEYCLOAK_HTTP_TIMEOUT",
        description="Timeout in seconds for a single Keycloak HTTP round trip",
    )

    # Reconciliation behavior
    lookup_failure_policy: Literal["fail", "create"] = Field(
        default="fail",
        validation_alias="LOOKUP_FAILURE_POLICY",
        description=(
            "What to do when a get-by-name lookup fails with a transport error: "
            "'fail' aborts the step, 'create' proceeds as if the resource was absent"
        ),
    )

    # Tracing
    tracing_enabled: bool = Field(
        default=False,
        validation_alias="TRACING_ENABLED",
        description="Export OpenTelemetry traces",
    )
    tracing_endpoint: str = Field(
        default="http://localhost:4317",
        validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT",
        description="OTLP collector endpoint (gRPC)",
    )
    service_name: str = Field(
        default="keycloak-provisioner",
        validation_alias="SERVICE_NAME",
        description="Service name reported in traces",
    )

    @property
    def readiness_budget_seconds(self) -> float:
        """Upper bound of the total readiness wait in seconds."""
        return self.readiness_max_attempts * self.readiness_interval_ms / 1000


# Global settings instance - initialized once at module import
settings = Settings()

"""
Provisioning error hierarchy with categorization and step attribution.

This module defines the error types used throughout the Keycloak provisioner.
Every error raised out of a provisioning run names the step that failed and
keeps the upstream cause, so operators can tell an unreachable server apart
from a rejected credential or a missing developer account.
"""


class ProvisioningError(Exception):
    """
    Base error class for all provisioning-related exceptions.

    Provides categorization, step attribution, and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        step: str | None = None,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize provisioning error.

        Args:
            message: Human-readable error description
            category: Error category (availability, authentication, resource, configuration)
            step: Name of the provisioning step that failed
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.step = step
        self.user_action = user_action
        self.cause = cause

    def __str__(self) -> str:
        """Enhanced string representation with step and user guidance."""
        base_msg = super().__str__()
        if self.step:
            base_msg = f"[{self.step}] {base_msg}"
        if self.cause is not None:
            base_msg = f"{base_msg}: {self.cause}"
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class ServiceUnavailableError(ProvisioningError):
    """Keycloak did not answer within the readiness budget."""

    def __init__(self, url: str, attempts: int, user_action: str | None = None):
        super().__init__(
            message=f"Keycloak at {url} did not start after {attempts} attempts",
            category="availability",
            step="wait_for_ready",
            user_action=user_action
            or "Check that the Keycloak service is running and reachable",
        )
        self.url = url
        self.attempts = attempts


class AuthError(ProvisioningError):
    """Admin credentials were rejected or the token exchange failed."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        user_action: str | None = None,
    ):
        super().__init__(
            message=message,
            category="authentication",
            step="authenticate",
            user_action=user_action or "Check the Keycloak admin username and password",
            cause=cause,
        )


class SecError(ProvisioningError):
    """A resource reconciliation step failed."""

    def __init__(
        self,
        step: str,
        description: str,
        cause: Exception | None = None,
        status_code: int | None = None,
        user_action: str | None = None,
    ):
        super().__init__(
            message=description,
            category="resource",
            step=step,
            user_action=user_action,
            cause=cause,
        )
        self.description = description
        self.status_code = status_code


class ConfigurationError(ProvisioningError):
    """Error in the provisioning request or provisioner configuration."""

    def __init__(
        self, message: str, step: str | None = None, user_action: str | None = None
    ):
        super().__init__(
            message=message,
            category="configuration",
            step=step,
            user_action=user_action or "Review and correct configuration",
        )

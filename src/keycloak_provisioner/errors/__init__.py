"""
Error handling module for the Keycloak provisioner.

This module provides the error hierarchy surfaced by provisioning runs.
"""

from .provisioning_errors import (
    AuthError,
    ConfigurationError,
    ProvisioningError,
    SecError,
    ServiceUnavailableError,
)

__all__ = [
    "ProvisioningError",
    "ServiceUnavailableError",
    "AuthError",
    "SecError",
    "ConfigurationError",
]

"""
Utils package - Utility modules for Keycloak provisioning.

Contains helper modules for:
- Keycloak Admin API interactions
- Waiting for the Keycloak service to answer
"""

from keycloak_provisioner.utils.keycloak_admin import (
    KeycloakAdminClient,
    KeycloakAdminError,
)
from keycloak_provisioner.utils.readiness import HttpProbe, ReadinessWaiter

__all__ = [
    "KeycloakAdminClient",
    "KeycloakAdminError",
    "HttpProbe",
    "ReadinessWaiter",
]

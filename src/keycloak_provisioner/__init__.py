"""
Keycloak Provisioner - idempotent workspace provisioning for Keycloak.

This package brings a Keycloak server into alignment with the configuration
a single workspace needs:
- A realm and an OIDC client with the workspace callback URL
- A per-workspace access role granted to the developer account
- The client secret returned to the caller
"""

from keycloak_provisioner.services.orchestrator import (
    ProvisioningOrchestrator,
    provision_workspace,
)

__version__ = "0.1.0"

__all__ = [
    "ProvisioningOrchestrator",
    "provision_workspace",
]

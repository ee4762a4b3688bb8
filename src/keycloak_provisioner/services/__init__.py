"""
Service layer for the Keycloak provisioner.

This module provides the services that authenticate against Keycloak,
reconcile workspace resources and sequence a complete provisioning run.
"""

from .authenticator import SessionAuthenticator
from .base_reconciler import BaseReconciler
from .orchestrator import ProvisioningOrchestrator, provision_workspace
from .resource_reconciler import ResourceReconciler

__all__ = [
    "BaseReconciler",
    "SessionAuthenticator",
    "ResourceReconciler",
    "ProvisioningOrchestrator",
    "provision_workspace",
]

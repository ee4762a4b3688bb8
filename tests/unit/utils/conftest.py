"""Shared pytest fixtures for Keycloak admin client tests."""

import pytest

from keycloak_provisioner.models.request import AccessToken


@pytest.fixture
def mock_admin_client():
    """Create a KeycloakAdminClient for testing without an httpx client.

    Uses object.__new__ to create an uninitialized instance, then sets
    required attributes directly. Tests replace _make_request or
    _make_validated_request with AsyncMocks.
    """
    from keycloak_provisioner.utils.keycloak_admin import KeycloakAdminClient

    client = object.__new__(KeycloakAdminClient)
    client.server_url = "http://keycloak:8080"
    client.admin_realm = "master"
    client.client_id = "admin-cli"
    client.verify_ssl = True
    client.timeout = 60
    client._client = None
    client._owns_client = True
    return client


@pytest.fixture
def token() -> AccessToken:
    return AccessToken(value="test-token", expires_in=300)

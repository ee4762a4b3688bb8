"""Unit tests for SessionAuthenticator."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from keycloak_provisioner.errors import AuthError
from keycloak_provisioner.models.request import AdminCredentials
from keycloak_provisioner.services.authenticator import SessionAuthenticator
from keycloak_provisioner.utils.keycloak_admin import KeycloakAdminError
from tests.fixtures.keycloak_resources import make_token


@pytest.fixture
def admin_mock() -> MagicMock:
    mock = MagicMock()
    mock.admin_realm = "master"
    mock.authenticate = AsyncMock(return_value=make_token())
    return mock


@pytest.fixture
def credentials() -> AdminCredentials:
    return AdminCredentials(username="admin", password="pw")


class TestSessionAuthenticator:
    @pytest.mark.asyncio
    async def test_returns_token(self, admin_mock, credentials):
        token = await SessionAuthenticator(admin_mock, logger=MagicMock()).authenticate(
            credentials
        )

        assert token == make_token()
        admin_mock.authenticate.assert_awaited_once_with("admin", credentials.password)

    @pytest.mark.asyncio
    async def test_rejection_is_an_auth_error_without_retry(
        self, admin_mock, credentials
    ):
        cause = KeycloakAdminError("Authentication failed", status_code=401)
        admin_mock.authenticate.side_effect = cause

        with pytest.raises(AuthError) as exc_info:
            await SessionAuthenticator(admin_mock, logger=MagicMock()).authenticate(
                credentials
            )

        assert exc_info.value.cause is cause
        assert "admin" in str(exc_info.value)
        assert admin_mock.authenticate.await_count == 1

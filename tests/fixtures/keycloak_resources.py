"""
Test fixtures for Keycloak resources.

This module provides an in-memory stand-in for the Keycloak Admin API with
the same async surface as KeycloakAdminClient, plus helpers to build
provisioning requests. The fake records every call so tests can assert on
ordering and on which steps never ran.
"""

import uuid
from typing import Any

from pydantic import SecretStr

from keycloak_provisioner.models.keycloak_api import (
    ClientRepresentation,
    ClientSecretRepresentation,
    RealmRepresentation,
    RoleRepresentation,
    UserRepresentation,
)
from keycloak_provisioner.models.request import AccessToken, ProvisioningRequest
from keycloak_provisioner.utils.keycloak_admin import KeycloakAdminError

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-password"
ISSUED_TOKEN = "issued-access-token"


def make_request(**overrides: Any) -> ProvisioningRequest:
    """Build the request used by the end-to-end scenario, with overrides."""
    fields = {
        "workspace_id": "ws1",
        "auth_url": "https://keycloak.example",
        "realm_name": "codewind",
        "admin_username": ADMIN_USERNAME,
        "admin_password": ADMIN_PASSWORD,
        "gatekeeper_public_url": "https://gatekeeper.example",
        "dev_username": "dev1",
        "client_name": "codewind-client",
    }
    fields.update(overrides)
    return ProvisioningRequest.build(**fields)


def make_token(value: str = ISSUED_TOKEN) -> AccessToken:
    return AccessToken(value=value, expires_in=60)


class FakeKeycloakAdmin:
    """
    In-memory Keycloak server exposing the KeycloakAdminClient methods.

    ``fail_on`` maps a method name to the exception that method raises,
    for fault injection. Users are seeded per realm independently of the
    realm itself, since the provisioner never creates users.
    """

    admin_realm = "master"

    def __init__(self, users: dict[str, list[str]] | None = None):
        self.realms: dict[str, RealmRepresentation] = {}
        self.clients: dict[tuple[str, str], ClientRepresentation] = {}
        self.secrets: dict[str, str] = {}
        self.roles: dict[tuple[str, str], RoleRepresentation] = {}
        self.users: dict[tuple[str, str], UserRepresentation] = {}
        self.role_mappings: dict[str, list[str]] = {}
        self.calls: list[str] = []
        self.fail_on: dict[str, Exception] = {}
        self.closed = False

        for realm_name, usernames in (users or {}).items():
            for username in usernames:
                self.add_user(realm_name, username)

    def add_user(self, realm_name: str, username: str) -> UserRepresentation:
        user = UserRepresentation(id=str(uuid.uuid4()), username=username, enabled=True)
        self.users[(realm_name, username)] = user
        return user

    def count(self, method: str) -> int:
        return self.calls.count(method)

    def _enter(self, method: str, token: AccessToken | None = None) -> None:
        self.calls.append(method)
        if method in self.fail_on:
            raise self.fail_on[method]
        if token is not None and token.value.get_secret_value() != ISSUED_TOKEN:
            raise KeycloakAdminError("Unauthorized", status_code=401)

    async def __aenter__(self) -> "FakeKeycloakAdmin":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.closed = True

    @property
    def http_client(self):
        raise AssertionError("tests must inject a readiness probe")

    async def authenticate(self, username: str, password: SecretStr) -> AccessToken:
        self._enter("authenticate")
        if username != ADMIN_USERNAME or password.get_secret_value() != ADMIN_PASSWORD:
            raise KeycloakAdminError("Authentication failed", status_code=401)
        return make_token()

    async def get_realm(
        self, realm_name: str, token: AccessToken
    ) -> RealmRepresentation | None:
        self._enter("get_realm", token)
        return self.realms.get(realm_name)

    async def create_realm(
        self, realm_config: RealmRepresentation, token: AccessToken
    ) -> RealmRepresentation:
        self._enter("create_realm", token)
        if realm_config.realm in self.realms:
            raise KeycloakAdminError("Conflict", status_code=409)
        stored = realm_config.model_copy(update={"id": str(uuid.uuid4())})
        self.realms[realm_config.realm] = stored
        return realm_config

    async def get_client_by_name(
        self, client_id: str, realm_name: str, token: AccessToken
    ) -> ClientRepresentation | None:
        self._enter("get_client_by_name", token)
        client = self.clients.get((realm_name, client_id))
        return client.model_copy(deep=True) if client else None

    async def create_client(
        self, client_config: ClientRepresentation, realm_name: str, token: AccessToken
    ) -> str:
        self._enter("create_client", token)
        key = (realm_name, client_config.client_id)
        if key in self.clients:
            raise KeycloakAdminError("Conflict", status_code=409)
        client_uuid = str(uuid.uuid4())
        self.clients[key] = client_config.model_copy(update={"id": client_uuid}, deep=True)
        self.secrets[client_uuid] = f"secret-{uuid.uuid4().hex[:12]}"
        return client_uuid

    async def update_client(
        self,
        client_uuid: str,
        client_config: ClientRepresentation,
        realm_name: str,
        token: AccessToken,
    ) -> None:
        self._enter("update_client", token)
        key = (realm_name, client_config.client_id)
        if key not in self.clients or self.clients[key].id != client_uuid:
            raise KeycloakAdminError("Client not found", status_code=404)
        self.clients[key] = client_config.model_copy(deep=True)

    async def get_client_secret(
        self, client_uuid: str, realm_name: str, token: AccessToken
    ) -> ClientSecretRepresentation:
        self._enter("get_client_secret", token)
        if client_uuid not in self.secrets:
            raise KeycloakAdminError("Client not found", status_code=404)
        return ClientSecretRepresentation(type="secret", value=self.secrets[client_uuid])

    async def get_realm_role(
        self, role_name: str, realm_name: str, token: AccessToken
    ) -> RoleRepresentation | None:
        self._enter("get_realm_role", token)
        return self.roles.get((realm_name, role_name))

    async def create_realm_role(
        self, role: RoleRepresentation, realm_name: str, token: AccessToken
    ) -> int:
        self._enter("create_realm_role", token)
        key = (realm_name, role.name)
        if key in self.roles:
            raise KeycloakAdminError("Role already exists", status_code=409)
        self.roles[key] = role.model_copy(update={"id": str(uuid.uuid4())})
        return 201

    async def get_user_by_username(
        self, username: str, realm_name: str, token: AccessToken
    ) -> UserRepresentation | None:
        self._enter("get_user_by_username", token)
        return self.users.get((realm_name, username))

    async def assign_realm_roles_to_user(
        self,
        user_id: str,
        roles: list[RoleRepresentation],
        realm_name: str,
        token: AccessToken,
    ) -> None:
        self._enter("assign_realm_roles_to_user", token)
        held = self.role_mappings.setdefault(user_id, [])
        for role in roles:
            if role.name not in held:
                held.append(role.name)


async def always_ready(url: str) -> bool:
    return True


async def never_ready(url: str) -> bool:
    return False

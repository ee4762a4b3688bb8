"""
Keycloak Admin API client utilities.

This module provides a thin async interface to the Keycloak Admin REST API
for the resources the provisioner manages: realms, clients, realm roles,
users, role mappings and client secrets.

The client handles:
- The admin password grant that yields the provisioning access token
- Bearer-authenticated requests with a single round trip each (no retries)
- Mapping of HTTP failures onto KeycloakAdminError with status and body
- Pydantic validation of request and response payloads

Lookups return None only for a 404; any other failure raises so callers can
tell an absent resource from an unanswered lookup.
"""

import logging
from typing import Any
from urllib.parse import urljoin

import httpx
from pydantic import BaseModel, SecretStr, ValidationError

from keycloak_provisioner.constants import HTTP_NOT_FOUND
from keycloak_provisioner.models.keycloak_api import (
    ClientRepresentation,
    ClientSecretRepresentation,
    RealmRepresentation,
    RoleRepresentation,
    UserRepresentation,
)
from keycloak_provisioner.models.request import AccessToken

logger = logging.getLogger(__name__)


class KeycloakAdminError(Exception):
    """Base exception for Keycloak Admin API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    def body_preview(self, limit: int = 2048) -> str | None:
        """Return a truncated preview of the response body for logging."""

        if self.response_body is None:
            return None

        if len(self.response_body) <= limit:
            return self.response_body

        return f"{self.response_body[:limit]}...<truncated>"


def _decode_json(response: httpx.Response) -> Any:
    """Decode a response body, raising KeycloakAdminError if it is not JSON."""
    try:
        return response.json()
    except ValueError as e:
        raise KeycloakAdminError(
            f"Malformed response body: {e}",
            status_code=response.status_code,
            response_body=response.text,
        ) from e


def _decode_json_list(response: httpx.Response) -> list[dict[str, Any]]:
    """Decode a search response, which Keycloak returns as a list of objects."""
    data = _decode_json(response)
    if not isinstance(data, list) or not all(isinstance(i, dict) for i in data):
        raise KeycloakAdminError(
            "Malformed response body: expected a list of objects",
            status_code=response.status_code,
            response_body=response.text,
        )
    return data


def _validate[M: BaseModel](
    model: type[M], data: Any, response: httpx.Response, keep_body: bool = True
) -> M:
    """
    Validate decoded JSON against ``model``, raising KeycloakAdminError.

    ``keep_body=False`` keeps credentials in the body out of the error.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise KeycloakAdminError(
            f"Unexpected {model.__name__} payload: {e.error_count()} field(s) rejected",
            status_code=response.status_code,
            response_body=response.text if keep_body else None,
        ) from e


class KeycloakAdminClient:
    """
    Client for the Keycloak Admin API operations used during provisioning.

    Every resource method takes the access token explicitly: a provisioning
    run authenticates once and shares that token read-only across its steps.
    """

    def __init__(
        self,
        server_url: str,
        admin_realm: str = "master",
        client_id: str = "admin-cli",
        verify_ssl: bool = True,
        timeout: float = 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize Keycloak Admin client.

        Args:
            server_url: Base URL of the Keycloak server
            admin_realm: Realm the admin account lives in (default: master)
            client_id: Client ID for the admin password grant
            verify_ssl: Whether to verify SSL certificates
            timeout: Request timeout in seconds
            http_client: Pre-built httpx client; created lazily when omitted
        """
        self.server_url = server_url.rstrip("/")
        self.admin_realm = admin_realm
        self.client_id = client_id
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

        logger.debug(f"Initialized Keycloak Admin client for {self.server_url}")

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client (lazy initialization)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                verify=self.verify_ssl,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=False,
            )
            self._owns_client = True
        return self._client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """The httpx client shared by admin calls and readiness probes."""
        return self._get_client()

    async def close(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "KeycloakAdminClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def authenticate(self, username: str, password: SecretStr) -> AccessToken:
        """
        Exchange admin credentials for an access token.

        Uses the password grant against the admin realm. One attempt only.

        Raises:
            KeycloakAdminError: If the token request fails
        """
        auth_url = (
            f"{self.server_url}/realms/{self.admin_realm}/protocol/openid-connect/token"
        )

        auth_data = {
            "username": username,
            "password": password.get_secret_value(),
            "grant_type": "password",
            "client_id": self.client_id,
        }

        try:
            response = await self._get_client().post(
                auth_url,
                data=auth_data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Failed to authenticate with Keycloak: {e}")
            raise KeycloakAdminError(
                f"Authentication failed: {e}",
                status_code=e.response.status_code,
                response_body=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to authenticate with Keycloak: {e}")
            raise KeycloakAdminError(f"Authentication failed: {e}") from e

        token_data = _decode_json(response)
        if not isinstance(token_data, dict) or "access_token" not in token_data:
            raise KeycloakAdminError(
                "Authentication failed: no access_token in response",
                status_code=response.status_code,
                response_body=response.text,
            )

        token = _validate(
            AccessToken,
            {
                "value": token_data["access_token"],
                "token_type": token_data.get("token_type", "Bearer"),
                "expires_in": token_data.get("expires_in"),
            },
            response,
            keep_body=False,
        )
        logger.debug("Successfully authenticated with Keycloak")
        return token

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        token: AccessToken,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Make an authenticated request to the Keycloak Admin API.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint (relative to admin base)
            token: Access token for the run
            json: JSON request body data
            params: Query parameters

        Returns:
            Response object with body already buffered

        Raises:
            KeycloakAdminError: On API errors (status_code set) or transport
                errors (status_code None)
        """
        url = urljoin(f"{self.server_url}/admin/", endpoint.lstrip("/"))

        try:
            response = await self._get_client().request(
                method=method,
                url=url,
                json=json,
                params=params,
                headers=token.authorization_header,
            )
            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            response_body = e.response.text or "<no content>"

            # 404 on lookups is an expected answer, not a failure
            level = logging.DEBUG if status_code == HTTP_NOT_FOUND else logging.ERROR
            logger.log(
                level,
                f"Request failed: {method} {url} - {e}",
                extra={
                    "http_status": status_code,
                    "response_body": response_body[:1024],
                },
            )
            raise KeycloakAdminError(
                f"API request failed: {e}",
                status_code=status_code,
                response_body=response_body,
            ) from e

        except httpx.HTTPError as e:
            logger.error(f"Request failed: {method} {url} - {e}")
            raise KeycloakAdminError(f"API request failed: {e}") from e

    async def _make_validated_request(
        self,
        method: str,
        endpoint: str,
        token: AccessToken,
        request_model: BaseModel | None = None,
        response_model: type[BaseModel] | None = None,
        **kwargs: Any,
    ) -> Any:
        """
        Make an authenticated request with automatic Pydantic validation.

        Returns:
            Validated response model instance if response_model is provided,
            otherwise the raw Response object
        """
        if request_model is not None:
            kwargs["json"] = request_model.model_dump(exclude_none=True, by_alias=True)

        response = await self._make_request(method, endpoint, token, **kwargs)

        if response_model is not None and response.status_code < 300:
            return _validate(response_model, _decode_json(response), response)

        return response

    # Realm Management Methods

    async def get_realm(
        self, realm_name: str, token: AccessToken
    ) -> RealmRepresentation | None:
        """
        Get realm configuration from Keycloak.

        Returns:
            Realm configuration as RealmRepresentation or None if not found

        Raises:
            KeycloakAdminError: If the request fails (except 404)
        """
        try:
            return await self._make_validated_request(
                "GET",
                f"realms/{realm_name}",
                token,
                response_model=RealmRepresentation,
            )
        except KeycloakAdminError as e:
            if e.status_code == HTTP_NOT_FOUND:
                return None
            raise

    async def create_realm(
        self, realm_config: RealmRepresentation, token: AccessToken
    ) -> RealmRepresentation:
        """
        Create a new realm in Keycloak.

        Raises:
            KeycloakAdminError: If realm creation fails
        """
        logger.info(f"Creating realm: {realm_config.realm or 'unknown'}")

        response = await self._make_validated_request(
            "POST", "realms", token, request_model=realm_config
        )

        if response.status_code != 201:
            raise KeycloakAdminError(
                f"Failed to create realm: {response.status_code}",
                response.status_code,
            )
        return realm_config

    # Client Management Methods

    async def get_client_by_name(
        self, client_id: str, realm_name: str, token: AccessToken
    ) -> ClientRepresentation | None:
        """
        Get a client by its client ID in the specified realm.

        Returns:
            Client data as ClientRepresentation if found, None otherwise

        Raises:
            KeycloakAdminError: If the realm cannot be queried
        """
        logger.debug(f"Looking up client '{client_id}' in realm '{realm_name}'")

        response = await self._make_request(
            "GET",
            f"realms/{realm_name}/clients",
            token,
            params={"clientId": client_id},
        )

        for client_data in _decode_json_list(response):
            if client_data.get("clientId") == client_id:
                return _validate(ClientRepresentation, client_data, response)

        return None

    async def create_client(
        self,
        client_config: ClientRepresentation,
        realm_name: str,
        token: AccessToken,
    ) -> str | None:
        """
        Create a new client in the specified realm.

        Returns:
            Client UUID taken from the Location header, if present

        Raises:
            KeycloakAdminError: If client creation fails
        """
        client_id = client_config.client_id or "unknown"
        logger.info(f"Creating client '{client_id}' in realm '{realm_name}'")

        response = await self._make_validated_request(
            "POST",
            f"realms/{realm_name}/clients",
            token,
            request_model=client_config,
        )

        if response.status_code != 201:
            raise KeycloakAdminError(
                f"Failed to create client '{client_id}': HTTP {response.status_code}",
                response.status_code,
            )

        location = response.headers.get("Location", "")
        return location.split("/")[-1] if location else None

    async def update_client(
        self,
        client_uuid: str,
        client_config: ClientRepresentation,
        realm_name: str,
        token: AccessToken,
    ) -> None:
        """
        Update an existing client configuration.

        Raises:
            KeycloakAdminError: If client update fails
        """
        logger.info(
            f"Updating client '{client_config.client_id}' (UUID: {client_uuid}) "
            f"in realm '{realm_name}'"
        )

        response = await self._make_validated_request(
            "PUT",
            f"realms/{realm_name}/clients/{client_uuid}",
            token,
            request_model=client_config,
        )

        if response.status_code not in (200, 204):
            raise KeycloakAdminError(
                f"Failed to update client '{client_config.client_id}': "
                f"HTTP {response.status_code}",
                response.status_code,
            )

    async def get_client_secret(
        self, client_uuid: str, realm_name: str, token: AccessToken
    ) -> ClientSecretRepresentation:
        """
        Get the secret of a confidential client.

        Raises:
            KeycloakAdminError: If the secret cannot be read
        """
        return await self._make_validated_request(
            "GET",
            f"realms/{realm_name}/clients/{client_uuid}/client-secret",
            token,
            response_model=ClientSecretRepresentation,
        )

    # Role Management Methods

    async def get_realm_role(
        self, role_name: str, realm_name: str, token: AccessToken
    ) -> RoleRepresentation | None:
        """Get a realm role by name, or None if it does not exist."""
        try:
            return await self._make_validated_request(
                "GET",
                f"realms/{realm_name}/roles/{role_name}",
                token,
                response_model=RoleRepresentation,
            )
        except KeycloakAdminError as e:
            if e.status_code == HTTP_NOT_FOUND:
                return None
            raise

    async def create_realm_role(
        self, role: RoleRepresentation, realm_name: str, token: AccessToken
    ) -> int:
        """
        Create a realm role.

        Returns:
            HTTP status code of the creation request

        Raises:
            KeycloakAdminError: If creation fails; a role that already exists
                surfaces as status_code 409
        """
        logger.info(f"Creating realm role '{role.name}' in realm '{realm_name}'")

        response = await self._make_validated_request(
            "POST", f"realms/{realm_name}/roles", token, request_model=role
        )
        return response.status_code

    # User Management Methods

    async def get_user_by_username(
        self, username: str, realm_name: str, token: AccessToken
    ) -> UserRepresentation | None:
        """
        Find a user by exact username.

        Keycloak stores usernames lower-cased, so the match ignores case.
        """
        response = await self._make_request(
            "GET",
            f"realms/{realm_name}/users",
            token,
            params={"username": username, "exact": "true"},
        )

        for user_data in _decode_json_list(response):
            if (user_data.get("username") or "").lower() == username.lower():
                return _validate(UserRepresentation, user_data, response)

        return None

    async def assign_realm_roles_to_user(
        self,
        user_id: str,
        roles: list[RoleRepresentation],
        realm_name: str,
        token: AccessToken,
    ) -> None:
        """
        Add realm role mappings to a user.

        Keycloak treats re-adding a held role as a no-op.

        Raises:
            KeycloakAdminError: If the mapping request fails
        """
        logger.info(f"Assigning realm roles to user {user_id} in realm '{realm_name}'")

        response = await self._make_request(
            "POST",
            f"realms/{realm_name}/users/{user_id}/role-mappings/realm",
            token,
            json=[role.to_api() for role in roles],
        )

        if response.status_code not in (200, 204):
            raise KeycloakAdminError(
                f"Failed to assign realm roles to user: {response.text}",
                status_code=response.status_code,
            )

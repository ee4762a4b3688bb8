"""
Pydantic models for provisioning input and session credentials.

A ProvisioningRequest is built once per run and passed by reference through
every step; it is frozen so no step can alter what a later step sees.
"""

import httpx
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from ..constants import REDIRECT_URI_SUFFIX, WORKSPACE_RESOURCE_PREFIX
from ..errors import ConfigurationError


class AdminCredentials(BaseModel):
    """Keycloak admin account used to obtain the provisioning token."""

    model_config = {"frozen": True}

    username: str = Field(..., min_length=1, description="Admin username")
    password: SecretStr = Field(..., description="Admin password")


class ProvisioningRequest(BaseModel):
    """Everything needed to provision one workspace in Keycloak."""

    model_config = {"frozen": True, "populate_by_name": True}

    workspace_id: str = Field(..., min_length=1, alias="workspaceID")
    auth_url: str = Field(
        ..., min_length=1, alias="authURL", description="Keycloak base URL"
    )
    realm_name: str = Field(..., min_length=1, alias="realmName")
    admin: AdminCredentials
    gatekeeper_public_url: str = Field(
        ...,
        min_length=1,
        alias="gatekeeperPublicURL",
        description="Public callback URL of the workspace gatekeeper",
    )
    dev_username: str = Field(..., min_length=1, alias="devUsername")
    client_name: str = Field(..., min_length=1, alias="clientName")

    @field_validator("auth_url", "gatekeeper_public_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.rstrip("/")
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"Invalid URL: {e}") from e
        if url.scheme not in ("http", "https"):
            raise ValueError("URL must start with http:// or https://")
        if not url.host:
            raise ValueError("URL must name a host")
        return v

    @classmethod
    def build(
        cls,
        workspace_id: str,
        auth_url: str,
        realm_name: str,
        admin_username: str,
        admin_password: str,
        gatekeeper_public_url: str,
        dev_username: str,
        client_name: str,
    ) -> "ProvisioningRequest":
        """
        Build a request from the flat argument list used by callers.

        Raises:
            ConfigurationError: If any argument is empty or a URL is malformed
        """
        try:
            return cls(
                workspace_id=workspace_id,
                auth_url=auth_url,
                realm_name=realm_name,
                admin=AdminCredentials(
                    username=admin_username, password=admin_password
                ),
                gatekeeper_public_url=gatekeeper_public_url,
                dev_username=dev_username,
                client_name=client_name,
            )
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid provisioning request: {e.error_count()} field(s) rejected",
                user_action=str(e),
            ) from e

    @property
    def access_role_name(self) -> str:
        """Realm role that grants access to this workspace."""
        return f"{WORKSPACE_RESOURCE_PREFIX}{self.workspace_id}"

    @property
    def secret_name(self) -> str:
        return f"{WORKSPACE_RESOURCE_PREFIX}{self.workspace_id}"

    @property
    def redirect_uri(self) -> str:
        return f"{self.gatekeeper_public_url}{REDIRECT_URI_SUFFIX}"


class AccessToken(BaseModel):
    """Short-lived admin access token shared read-only by all steps of a run."""

    model_config = {"frozen": True}

    value: SecretStr
    token_type: str = "Bearer"
    expires_in: int | None = None

    @property
    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.value.get_secret_value()}"}

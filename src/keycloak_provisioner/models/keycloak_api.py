"""
Keycloak Admin REST API representations.

Only the fields the provisioner reads or writes are modelled; unknown fields
returned by Keycloak are kept (extra="allow") so an update round-trips the
full resource instead of dropping settings made by other tools.
"""

from typing import Any

from pydantic import BaseModel, Field


class _Representation(BaseModel):
    model_config = {"populate_by_name": True, "extra": "allow"}

    def to_api(self) -> dict[str, Any]:
        """Serialize with camelCase field names, omitting unset values."""
        return self.model_dump(exclude_none=True, by_alias=True)


class RealmRepresentation(_Representation):
    id: str | None = None
    realm: str | None = None
    display_name: str | None = Field(None, alias="displayName")
    enabled: bool | None = None
    login_theme: str | None = Field(None, alias="loginTheme")
    access_token_lifespan: int | None = Field(None, alias="accessTokenLifespan")
    sso_session_idle_timeout: int | None = Field(None, alias="ssoSessionIdleTimeout")
    sso_session_max_lifespan: int | None = Field(None, alias="ssoSessionMaxLifespan")


class ClientRepresentation(_Representation):
    id: str | None = None
    client_id: str | None = Field(None, alias="clientId")
    name: str | None = None
    enabled: bool | None = None
    protocol: str | None = None
    public_client: bool | None = Field(None, alias="publicClient")
    standard_flow_enabled: bool | None = Field(None, alias="standardFlowEnabled")
    direct_access_grants_enabled: bool | None = Field(
        None, alias="directAccessGrantsEnabled"
    )
    root_url: str | None = Field(None, alias="rootUrl")
    redirect_uris: list[str] | None = Field(None, alias="redirectUris")


class RoleRepresentation(_Representation):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    composite: bool | None = None
    client_role: bool | None = Field(None, alias="clientRole")
    container_id: str | None = Field(None, alias="containerId")


class UserRepresentation(_Representation):
    id: str | None = None
    username: str | None = None
    enabled: bool | None = None
    email: str | None = None


class ClientSecretRepresentation(_Representation):
    """Credential returned by GET clients/{id}/client-secret."""

    type: str | None = None
    value: str | None = None

"""
Keycloak resource reconciler for one workspace provisioning run.

Each managed resource follows the same two-phase pattern: look it up by its
natural key, then either apply the update policy for that kind (which may
be a no-op) or create it. Nothing is ever deleted.

Per-kind policies:
- Realm: get-or-create; an existing realm is left untouched
- Client: get-or-create; an existing client gets the redirect URI appended
- Access role: create-only; 409 Conflict means it already exists
- User: get-only; a missing developer account is fatal
- Role grant: unconditional add of the role mapping
- Client secret: get-only; the secret is the result of the run
"""

from typing import Literal

from ..constants import (
    DEFAULT_ACCESS_TOKEN_LIFESPAN,
    DEFAULT_CLIENT_PROTOCOL,
    DEFAULT_LOGIN_THEME,
    DEFAULT_SSO_SESSION_IDLE_TIMEOUT,
    DEFAULT_SSO_SESSION_MAX_LIFESPAN,
    HTTP_CONFLICT,
    STEP_ACCESS_ROLE,
    STEP_CLIENT,
    STEP_CLIENT_SECRET,
    STEP_REALM,
    STEP_ROLE_GRANT,
    STEP_USER,
)
from ..errors import SecError
from ..models.keycloak_api import (
    ClientRepresentation,
    RealmRepresentation,
    RoleRepresentation,
)
from ..models.request import AccessToken, ProvisioningRequest
from ..models.results import (
    Found,
    LookupFailed,
    NotFound,
    ReconciliationOutcome,
    StepResult,
)
from ..observability.logging import ProvisioningLogger
from ..observability.metrics import MetricsCollector
from ..utils.keycloak_admin import KeycloakAdminClient, KeycloakAdminError
from .base_reconciler import BaseReconciler


class ResourceReconciler(BaseReconciler):
    """
    Reconciler for the Keycloak resources a workspace needs.

    Bound to one request and one access token; both are shared read-only
    by every step. Steps do not hand data to each other in memory: each one
    looks up what it needs by natural key.
    """

    def __init__(
        self,
        admin_client: KeycloakAdminClient,
        request: ProvisioningRequest,
        token: AccessToken,
        lookup_failure_policy: Literal["fail", "create"] = "fail",
        logger: ProvisioningLogger | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize resource reconciler.

        Args:
            admin_client: Keycloak Admin API client
            request: Provisioning request for this run
            token: Access token obtained for this run
            lookup_failure_policy: How a failed get-by-name lookup is handled
            logger: Step-narration logger
            metrics: Metrics collector
        """
        super().__init__(logger=logger, metrics=metrics)
        self.admin = admin_client
        self.request = request
        self.token = token
        self.lookup_failure_policy = lookup_failure_policy

    @property
    def realm_name(self) -> str:
        return self.request.realm_name

    def desired_realm(self) -> RealmRepresentation:
        return RealmRepresentation(
            realm=self.realm_name,
            display_name=self.realm_name,
            enabled=True,
            login_theme=DEFAULT_LOGIN_THEME,
            access_token_lifespan=DEFAULT_ACCESS_TOKEN_LIFESPAN,
            sso_session_idle_timeout=DEFAULT_SSO_SESSION_IDLE_TIMEOUT,
            sso_session_max_lifespan=DEFAULT_SSO_SESSION_MAX_LIFESPAN,
        )

    def desired_client(self) -> ClientRepresentation:
        return ClientRepresentation(
            client_id=self.request.client_name,
            name=self.request.client_name,
            enabled=True,
            protocol=DEFAULT_CLIENT_PROTOCOL,
            public_client=False,
            standard_flow_enabled=True,
            direct_access_grants_enabled=True,
            root_url=self.request.gatekeeper_public_url,
            redirect_uris=[self.request.redirect_uri],
        )

    def desired_access_role(self) -> RoleRepresentation:
        return RoleRepresentation(
            name=self.request.access_role_name,
            description=f"Access to workspace {self.request.workspace_id}",
        )

    async def reconcile_realm(self) -> StepResult:
        """Ensure the realm exists; an existing realm is never modified."""
        lookup = await self.lookup(self.admin.get_realm(self.realm_name, self.token))
        realm = self.resolve_lookup(
            STEP_REALM, f"realm '{self.realm_name}'", lookup, self.lookup_failure_policy
        )

        if realm is not None:
            self.logger.log_step_start(
                STEP_REALM,
                f"Updating existing Keycloak realm {realm.display_name or realm.realm}",
                realm_name=self.realm_name,
            )
            return StepResult(
                STEP_REALM,
                ReconciliationOutcome.ALREADY_SATISFIED,
                detail=f"realm '{self.realm_name}' already exists",
            )

        self.logger.log_step_start(
            STEP_REALM, "Creating new Keycloak realm", realm_name=self.realm_name
        )
        with self.translate_errors(
            STEP_REALM, f"Failed to create realm '{self.realm_name}'"
        ):
            await self.admin.create_realm(self.desired_realm(), self.token)

        return StepResult(
            STEP_REALM,
            ReconciliationOutcome.CREATED,
            detail=f"realm '{self.realm_name}' created",
        )

    async def reconcile_client(self) -> StepResult:
        """
        Ensure the client exists and allows the workspace redirect URI.

        The redirect URI is appended to an existing client's list, keeping
        URIs registered by earlier runs or other workspaces.
        """
        client_name = self.request.client_name
        redirect_uri = self.request.redirect_uri

        self.logger.log_step_start(
            STEP_CLIENT,
            f"Checking for Keycloak client {client_name}",
            realm_name=self.realm_name,
            client_name=client_name,
        )
        lookup = await self.lookup(
            self.admin.get_client_by_name(client_name, self.realm_name, self.token)
        )
        client = self.resolve_lookup(
            STEP_CLIENT, f"client '{client_name}'", lookup, self.lookup_failure_policy
        )

        if client is None:
            self.logger.info(
                f"Creating Keycloak client {client_name}",
                step=STEP_CLIENT,
                client_name=client_name,
            )
            with self.translate_errors(
                STEP_CLIENT, f"Failed to create client '{client_name}'"
            ):
                await self.admin.create_client(
                    self.desired_client(), self.realm_name, self.token
                )
            return StepResult(
                STEP_CLIENT,
                ReconciliationOutcome.CREATED,
                detail=f"client '{client_name}' created with redirect {redirect_uri}",
            )

        if not client.id:
            raise SecError(
                STEP_CLIENT, f"Client '{client_name}' was returned without an id"
            )

        redirect_uris = list(client.redirect_uris or [])
        if redirect_uri in redirect_uris:
            return StepResult(
                STEP_CLIENT,
                ReconciliationOutcome.ALREADY_SATISFIED,
                detail=f"client '{client_name}' already allows {redirect_uri}",
            )

        self.logger.info(
            f"Updating existing Keycloak client {client.name or client_name}",
            step=STEP_CLIENT,
            client_name=client_name,
        )
        updated = client.model_copy(update={"redirect_uris": [*redirect_uris, redirect_uri]})
        with self.translate_errors(
            STEP_CLIENT, f"Failed to append redirect URI to client '{client_name}'"
        ):
            await self.admin.update_client(client.id, updated, self.realm_name, self.token)

        return StepResult(
            STEP_CLIENT,
            ReconciliationOutcome.UPDATED,
            detail=f"appended {redirect_uri} to client '{client_name}'",
        )

    async def reconcile_access_role(self) -> StepResult:
        """Create the workspace access role; a 409 means it already exists."""
        role_name = self.request.access_role_name
        self.logger.log_step_start(
            STEP_ACCESS_ROLE,
            f"Creating access role {role_name} in realm {self.realm_name}",
            realm_name=self.realm_name,
        )

        try:
            await self.admin.create_realm_role(
                self.desired_access_role(), self.realm_name, self.token
            )
        except KeycloakAdminError as e:
            if e.status_code == HTTP_CONFLICT:
                return StepResult(
                    STEP_ACCESS_ROLE,
                    ReconciliationOutcome.ALREADY_SATISFIED,
                    detail=f"role '{role_name}' already exists",
                )
            raise SecError(
                STEP_ACCESS_ROLE,
                f"Access role create failed for '{role_name}'",
                cause=e,
                status_code=e.status_code,
            ) from e

        return StepResult(
            STEP_ACCESS_ROLE,
            ReconciliationOutcome.CREATED,
            detail=f"role '{role_name}' created",
        )

    async def verify_user(self) -> StepResult:
        """Check that the developer account exists. Users are never created."""
        username = self.request.dev_username
        lookup = await self.lookup(
            self.admin.get_user_by_username(username, self.realm_name, self.token)
        )

        match lookup:
            case Found(descriptor=user):
                return StepResult(
                    STEP_USER,
                    ReconciliationOutcome.ALREADY_SATISFIED,
                    detail=f"user '{username}' exists",
                    value=user.id,
                )
            case NotFound():
                raise SecError(
                    STEP_USER,
                    f"Developer account '{username}' not found in realm "
                    f"'{self.realm_name}'",
                    user_action=(
                        f"Register user '{username}' in realm '{self.realm_name}' "
                        "before provisioning"
                    ),
                )
            case LookupFailed(cause=cause):
                raise SecError(
                    STEP_USER,
                    f"Configuring user '{username}' failed",
                    cause=cause,
                    status_code=getattr(cause, "status_code", None),
                )
        raise TypeError(f"Unexpected lookup result: {lookup!r}")

    async def grant_access_role(self) -> StepResult:
        """Grant the workspace access role to the developer account."""
        username = self.request.dev_username
        role_name = self.request.access_role_name
        self.logger.log_step_start(
            STEP_ROLE_GRANT,
            f"Grant access to deployment for {username}",
            workspace_id=self.request.workspace_id,
        )

        with self.translate_errors(
            STEP_ROLE_GRANT, f"Granting role '{role_name}' to '{username}' failed"
        ):
            user = await self.admin.get_user_by_username(
                username, self.realm_name, self.token
            )
            role = await self.admin.get_realm_role(role_name, self.realm_name, self.token)
            if user is None or not user.id:
                raise SecError(
                    STEP_ROLE_GRANT, f"User '{username}' disappeared before role grant"
                )
            if role is None:
                raise SecError(
                    STEP_ROLE_GRANT, f"Role '{role_name}' not found in realm"
                )
            await self.admin.assign_realm_roles_to_user(
                user.id, [role], self.realm_name, self.token
            )

        return StepResult(
            STEP_ROLE_GRANT,
            ReconciliationOutcome.UPDATED,
            detail=f"role '{role_name}' granted to '{username}'",
        )

    async def fetch_client_secret(self) -> StepResult:
        """Read the secret registered for the workspace client."""
        client_name = self.request.client_name
        self.logger.log_step_start(
            STEP_CLIENT_SECRET,
            f"Fetching client secret {self.request.secret_name}",
            client_name=client_name,
        )

        with self.translate_errors(
            STEP_CLIENT_SECRET, f"Error fetching client secret for '{client_name}'"
        ):
            client = await self.admin.get_client_by_name(
                client_name, self.realm_name, self.token
            )
            if client is None or not client.id:
                raise SecError(
                    STEP_CLIENT_SECRET, f"Client '{client_name}' not found in realm"
                )
            secret = await self.admin.get_client_secret(
                client.id, self.realm_name, self.token
            )

        if not secret.value:
            raise SecError(
                STEP_CLIENT_SECRET, f"Client '{client_name}' has no registered secret"
            )

        return StepResult(
            STEP_CLIENT_SECRET,
            ReconciliationOutcome.ALREADY_SATISFIED,
            detail=f"secret fetched for client '{client_name}'",
            value=secret.value,
        )

"""
End-to-end workspace provisioning.

The orchestrator drives a fixed linear chain of states:

    Pending -> ServiceReady -> Authenticated -> RealmReady -> ClientReady
            -> RoleReady -> UserVerified -> RoleGranted -> SecretFetched

Each transition is one step. A failing step moves the run to Failed and no
later step is attempted. Earlier steps are not rolled back. Later steps
depend on earlier ones (a role can only be granted once it exists), so the
order is part of the contract and is never rearranged or parallelised.

The caller must ensure at most one run per workspace at a time; no locking
is done here.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial

from ..constants import (
    STEP_ACCESS_ROLE,
    STEP_AUTHENTICATE,
    STEP_CLIENT,
    STEP_CLIENT_SECRET,
    STEP_REALM,
    STEP_ROLE_GRANT,
    STEP_USER,
    STEP_WAIT_FOR_READY,
)
from ..errors import ProvisioningError
from ..models.request import AccessToken, ProvisioningRequest
from ..models.results import (
    ProvisioningRun,
    ProvisioningState,
    ReconciliationOutcome,
    StepResult,
)
from ..observability.logging import ProvisioningLogger
from ..observability.metrics import MetricsCollector
from ..settings import Settings
from ..settings import settings as default_settings
from ..utils.keycloak_admin import KeycloakAdminClient
from ..utils.readiness import HttpProbe, Probe, ReadinessWaiter
from .authenticator import SessionAuthenticator
from .base_reconciler import BaseReconciler
from .resource_reconciler import ResourceReconciler

# Target state of each step, in execution order
STATE_CHAIN: tuple[tuple[ProvisioningState, str], ...] = (
    (ProvisioningState.SERVICE_READY, STEP_WAIT_FOR_READY),
    (ProvisioningState.AUTHENTICATED, STEP_AUTHENTICATE),
    (ProvisioningState.REALM_READY, STEP_REALM),
    (ProvisioningState.CLIENT_READY, STEP_CLIENT),
    (ProvisioningState.ROLE_READY, STEP_ACCESS_ROLE),
    (ProvisioningState.USER_VERIFIED, STEP_USER),
    (ProvisioningState.ROLE_GRANTED, STEP_ROLE_GRANT),
    (ProvisioningState.SECRET_FETCHED, STEP_CLIENT_SECRET),
)

type AdminClientFactory = Callable[[ProvisioningRequest, Settings], KeycloakAdminClient]


def default_admin_client_factory(
    request: ProvisioningRequest, settings: Settings
) -> KeycloakAdminClient:
    """Build an admin client for the Keycloak server named in ``request``."""
    return KeycloakAdminClient(
        server_url=request.auth_url,
        admin_realm=settings.keycloak_admin_realm,
        client_id=settings.keycloak_admin_client_id,
        verify_ssl=settings.keycloak_verify_ssl,
        timeout=settings.keycloak_http_timeout,
    )


@dataclass
class _Session:
    """Per-run state: the admin client and, once authenticated, the token."""

    request: ProvisioningRequest
    admin: KeycloakAdminClient
    token: AccessToken | None = None
    reconciler: ResourceReconciler | None = None

    @property
    def resources(self) -> ResourceReconciler:
        if self.reconciler is None:
            raise RuntimeError("Resource steps require an authenticated session")
        return self.reconciler


class ProvisioningOrchestrator(BaseReconciler):
    """
    Sequences readiness wait, authentication and resource reconciliation.

    Collaborators are injectable so the chain can be driven against a fake
    identity service: ``admin_client_factory`` builds the admin client for a
    request and ``probe`` replaces the HTTP readiness probe.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        admin_client_factory: AdminClientFactory | None = None,
        probe: Probe | None = None,
        logger: ProvisioningLogger | None = None,
        metrics: MetricsCollector | None = None,
    ):
        super().__init__(logger=logger, metrics=metrics)
        self.settings = settings or default_settings
        self.admin_client_factory = admin_client_factory or default_admin_client_factory
        self.probe = probe

    async def provision(self, request: ProvisioningRequest) -> str:
        """
        Provision ``request`` and return the client secret.

        Raises:
            ProvisioningError: The error of the first step that failed
        """
        run = await self.run(request)
        if run.error is not None:
            raise run.error
        if run.client_secret is None:
            raise RuntimeError("Provisioning finished without a client secret")
        return run.client_secret

    async def run(self, request: ProvisioningRequest) -> ProvisioningRun:
        """
        Drive the state chain for ``request`` and record every step.

        Step failures are recorded on the returned run rather than raised.
        """
        run = ProvisioningRun(workspace_id=request.workspace_id)
        start_time = time.monotonic()
        self.logger.log_run_start(request.workspace_id, request.realm_name)

        with self.tracer.start_as_current_span("provision") as span:
            span.set_attribute("provisioning.workspace_id", request.workspace_id)
            span.set_attribute("provisioning.realm", request.realm_name)

            async with self.admin_client_factory(request, self.settings) as admin:
                session = _Session(request=request, admin=admin)
                handlers = self._handlers(session)

                for state, step in STATE_CHAIN:
                    try:
                        result = await self.run_step(step, handlers[step])
                    except ProvisioningError as e:
                        run.results.append(
                            StepResult(
                                step,
                                ReconciliationOutcome.FAILED,
                                detail=e.message,
                                error=e,
                            )
                        )
                        run.failed_state = state
                        run.state = ProvisioningState.FAILED
                        run.error = e
                        break

                    run.results.append(result)
                    run.state = state

            span.set_attribute("provisioning.state", run.state.value)

        duration = time.monotonic() - start_time
        if run.done:
            run.client_secret = run.results[-1].value
            self.logger.log_run_success(request.workspace_id, duration)
        else:
            failed_step = run.results[-1].step
            self.logger.log_run_error(
                request.workspace_id, failed_step, run.error, duration
            )
        self.metrics.record_run(run.done)
        return run

    def _handlers(
        self, session: _Session
    ) -> dict[str, Callable[[], Awaitable[StepResult]]]:
        return {
            STEP_WAIT_FOR_READY: partial(self._wait_for_ready, session),
            STEP_AUTHENTICATE: partial(self._authenticate, session),
            STEP_REALM: lambda: session.resources.reconcile_realm(),
            STEP_CLIENT: lambda: session.resources.reconcile_client(),
            STEP_ACCESS_ROLE: lambda: session.resources.reconcile_access_role(),
            STEP_USER: lambda: session.resources.verify_user(),
            STEP_ROLE_GRANT: lambda: session.resources.grant_access_role(),
            STEP_CLIENT_SECRET: lambda: session.resources.fetch_client_secret(),
        }

    async def _wait_for_ready(self, session: _Session) -> StepResult:
        url = session.request.auth_url
        self.logger.log_step_start(
            STEP_WAIT_FOR_READY, "Waiting for Keycloak to start", url=url
        )
        interval = self.settings.readiness_interval_ms / 1000
        probe = self.probe or HttpProbe(
            session.admin.http_client,
            self.settings.readiness_failure_status,
            timeout=interval or None,
        )
        attempts = await ReadinessWaiter(probe, metrics=self.metrics).wait_until_ready(
            url,
            self.settings.readiness_max_attempts,
            self.settings.readiness_interval_ms,
        )
        return StepResult(
            STEP_WAIT_FOR_READY,
            ReconciliationOutcome.ALREADY_SATISFIED,
            detail=f"Keycloak answered after {attempts} probe(s)",
        )

    async def _authenticate(self, session: _Session) -> StepResult:
        self.logger.log_step_start(
            STEP_AUTHENTICATE, "Configuring Keycloak...", url=session.request.auth_url
        )
        authenticator = SessionAuthenticator(session.admin, logger=self.logger)
        session.token = await authenticator.authenticate(session.request.admin)
        session.reconciler = ResourceReconciler(
            session.admin,
            session.request,
            session.token,
            lookup_failure_policy=self.settings.lookup_failure_policy,
            logger=self.logger,
            metrics=self.metrics,
        )
        return StepResult(
            STEP_AUTHENTICATE,
            ReconciliationOutcome.CREATED,
            detail="admin access token issued",
        )


async def provision_workspace(
    workspace_id: str,
    auth_url: str,
    realm_name: str,
    admin_username: str,
    admin_password: str,
    gatekeeper_public_url: str,
    dev_username: str,
    client_name: str,
    settings: Settings | None = None,
    logger: ProvisioningLogger | None = None,
) -> str:
    """
    Set up Keycloak with a realm, client, access role and role grant for a
    workspace, and return the client secret.

    Raises:
        ProvisioningError: Naming the step that failed and its cause
    """
    request = ProvisioningRequest.build(
        workspace_id=workspace_id,
        auth_url=auth_url,
        realm_name=realm_name,
        admin_username=admin_username,
        admin_password=admin_password,
        gatekeeper_public_url=gatekeeper_public_url,
        dev_username=dev_username,
        client_name=client_name,
    )
    orchestrator = ProvisioningOrchestrator(settings=settings, logger=logger)
    return await orchestrator.provision(request)

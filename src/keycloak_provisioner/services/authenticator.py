"""
Session authentication for provisioning runs.

Obtains the admin access token that every later step shares. Authentication
is attempted exactly once: bad credentials or an unreachable token endpoint
do not heal within the lifetime of a run.
"""

from ..errors import AuthError
from ..models.request import AccessToken, AdminCredentials
from ..observability.logging import ProvisioningLogger
from ..utils.keycloak_admin import KeycloakAdminClient, KeycloakAdminError


class SessionAuthenticator:
    """Exchanges admin credentials for a short-lived access token."""

    def __init__(
        self,
        admin_client: KeycloakAdminClient,
        logger: ProvisioningLogger | None = None,
    ):
        self.admin_client = admin_client
        self.logger = logger or ProvisioningLogger(self.__class__.__name__)

    async def authenticate(self, credentials: AdminCredentials) -> AccessToken:
        """
        Obtain an access token for ``credentials``.

        Raises:
            AuthError: On any failure, with the transport error as cause
        """
        self.logger.debug(
            f"Authenticating as {credentials.username} in realm "
            f"{self.admin_client.admin_realm}",
            realm_name=self.admin_client.admin_realm,
        )
        try:
            return await self.admin_client.authenticate(
                credentials.username, credentials.password
            )
        except KeycloakAdminError as e:
            raise AuthError(
                f"Could not authenticate admin user '{credentials.username}'",
                cause=e,
            ) from e

"""Command line entry point: provision one workspace and print its client secret."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Sequence

from .errors import ConfigurationError, ProvisioningError
from .models.request import ProvisioningRequest
from .observability.logging import setup_structured_logging
from .observability.tracing import setup_tracing, shutdown_tracing
from .services.orchestrator import ProvisioningOrchestrator
from .settings import settings


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="keycloak-provision",
        description="Provision a workspace realm, client, role and role grant in Keycloak",
    )
    parser.add_argument("--workspace-id", required=True, help="Workspace identifier")
    parser.add_argument("--auth-url", required=True, help="Keycloak base URL")
    parser.add_argument("--realm", required=True, help="Realm to provision into")
    parser.add_argument(
        "--admin-user",
        default=os.environ.get("KEYCLOAK_ADMIN_USERNAME", "admin"),
        help="Keycloak admin username (default: $KEYCLOAK_ADMIN_USERNAME or admin)",
    )
    parser.add_argument(
        "--admin-password",
        default=os.environ.get("KEYCLOAK_ADMIN_PASSWORD"),
        help="Keycloak admin password (default: $KEYCLOAK_ADMIN_PASSWORD)",
    )
    parser.add_argument(
        "--gatekeeper-url",
        required=True,
        help="Public URL of the workspace gatekeeper (callback)",
    )
    parser.add_argument("--dev-user", required=True, help="Existing developer username")
    parser.add_argument("--client", required=True, help="Client name")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> str:
    request = ProvisioningRequest.build(
        workspace_id=args.workspace_id,
        auth_url=args.auth_url,
        realm_name=args.realm,
        admin_username=args.admin_user,
        admin_password=args.admin_password,
        gatekeeper_public_url=args.gatekeeper_url,
        dev_username=args.dev_user,
        client_name=args.client,
    )
    return await ProvisioningOrchestrator(settings=settings).provision(request)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    if not args.admin_password:
        print(
            "error: --admin-password or KEYCLOAK_ADMIN_PASSWORD is required",
            file=sys.stderr,
        )
        return 2

    setup_structured_logging(
        log_level=settings.log_level,
        enable_json_formatting=settings.json_logs,
        correlation_id_enabled=settings.correlation_ids,
    )
    setup_tracing(
        enabled=settings.tracing_enabled,
        endpoint=settings.tracing_endpoint,
        service_name=settings.service_name,
    )

    try:
        secret = asyncio.run(_run(args))
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except ProvisioningError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_tracing()

    print(secret)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

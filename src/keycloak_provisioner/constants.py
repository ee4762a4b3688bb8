"""
Constants used throughout the Keycloak provisioner.

This module defines all constant values used by the provisioner including:
- Natural key prefixes for workspace-scoped resources
- Default payload values for created realms and clients
- Step names used in logs, metrics and error messages
"""

# Natural key prefix for the per-workspace access role and registered secret
WORKSPACE_RESOURCE_PREFIX = "codewind-"

# Suffix appended to the gatekeeper public URL to form the redirect URI
REDIRECT_URI_SUFFIX = "/*"

# Realm defaults for newly created realms
DEFAULT_LOGIN_THEME = "codewind"
DEFAULT_ACCESS_TOKEN_LIFESPAN = 86400  # 1 day
DEFAULT_SSO_SESSION_IDLE_TIMEOUT = 86400 * 5  # 5 days
DEFAULT_SSO_SESSION_MAX_LIFESPAN = 86400 * 5

# Client defaults
DEFAULT_CLIENT_PROTOCOL = "openid-connect"

# Step names, in execution order
STEP_WAIT_FOR_READY = "wait_for_ready"
STEP_AUTHENTICATE = "authenticate"
STEP_REALM = "realm"
STEP_CLIENT = "client"
STEP_ACCESS_ROLE = "access_role"
STEP_USER = "user"
STEP_ROLE_GRANT = "role_grant"
STEP_CLIENT_SECRET = "client_secret"

# HTTP status codes with special meaning during reconciliation
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409

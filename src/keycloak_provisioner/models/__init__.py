"""
Models package - Pydantic models and result types.

Defines data models for:
- Provisioning requests and admin access tokens
- Keycloak Admin REST API representations
- Lookup, step and run results
"""

"""
Tests package - Test suite for the Keycloak provisioner.

Contains:
- unit/: Unit tests for individual components
- fixtures/: In-memory Keycloak fake and request builders
"""

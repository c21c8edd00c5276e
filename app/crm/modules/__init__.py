"""
Feature modules live under this package.

Each module owns its routes, record schemas and API-facing service functions,
and reuses the platform pieces (auth, RBAC, query cache, API client, audit).
"""

"""Clients for the Jolly Quiz HTTP API."""

from .admin_client import AdminApiClient, ApiError, AuthenticationError
from .auth_context import AdminAuthContext, InMemoryCredentialStorage

__all__ = [
    "AdminApiClient",
    "AdminAuthContext",
    "ApiError",
    "AuthenticationError",
    "InMemoryCredentialStorage",
]

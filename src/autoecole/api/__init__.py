"""API access layer: HTTP client, error types and stored credentials."""

from autoecole.api.client import (
    ApiClient,
    ApiConnectionError,
    ApiError,
    ApiResponseError,
    ApiStatusError,
)
from autoecole.api.credentials import Credentials, CredentialsStore

__all__ = [
    "ApiClient",
    "ApiConnectionError",
    "ApiError",
    "ApiResponseError",
    "ApiStatusError",
    "Credentials",
    "CredentialsStore",
]

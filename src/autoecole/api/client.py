"""HTTP client for the platform REST API.

Wraps every outbound call with the configured base URL and, when a
token is available, an ``Authorization: Bearer`` header. All services
sit on top of this module.
"""

from __future__ import annotations

import time
from typing import Any, Callable

import httpx
import structlog

from autoecole.config.app_config import ApiSettings, load_app_config

logger = structlog.get_logger(__name__)

TokenProvider = Callable[[], "str | None"]


# =============================================================================
# ERRORS
# =============================================================================


class ApiError(Exception):
    """Error while talking to the platform API."""

    pass


class ApiConnectionError(ApiError):
    """Request could not complete (unreachable, timeout, bad URL, redirects)."""

    pass


class ApiStatusError(ApiError):
    """Server answered with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code in (401, 403)


class ApiResponseError(ApiError):
    """Response body is not the JSON shape we expected."""

    pass


def expect_field(payload: Any, key: str) -> Any:
    """Return payload[key] or raise ApiResponseError."""
    if not isinstance(payload, dict) or payload.get(key) is None:
        raise ApiResponseError(f"Réponse inattendue du serveur: champ '{key}' manquant")
    return payload[key]


def _error_message(response: httpx.Response) -> str:
    """Best-effort user-facing message from an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]

    return f"Erreur serveur ({response.status_code})"


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    """Drop unset filters so they never reach the query string."""
    if not params:
        return None
    return {k: v for k, v in params.items() if v is not None and v != ""}


# =============================================================================
# API CLIENT
# =============================================================================


class ApiClient:
    """Thin synchronous client over httpx.

    Args:
        settings: API settings (loaded from app config if not provided)
        token_provider: Callable returning the bearer token, or None
        http: Pre-built httpx.Client (tests inject one bound to a fake app)
    """

    def __init__(
        self,
        settings: ApiSettings | None = None,
        token_provider: TokenProvider | None = None,
        http: httpx.Client | None = None,
    ):
        if settings is None:
            settings = load_app_config().api

        self.settings = settings
        self._token_provider = token_provider
        self._http = http or httpx.Client(timeout=settings.timeout)
        self._owns_http = http is None

        logger.debug("api_client_initialized", base_url=self.base_url)

    @property
    def base_url(self) -> str:
        return self.settings.root_url

    def url_for(self, path: str) -> str:
        """Absolute URL for an API path like '/articles/3'."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, auth: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if auth and self._token_provider is not None:
            token = self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        files: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        auth: bool = True,
    ) -> httpx.Response:
        """Send a request and return the successful response.

        Raises:
            ApiConnectionError: If the server cannot be reached
            ApiStatusError: If the server answers with a non-2xx status
        """
        url = self.url_for(path)
        start_time = time.time()

        try:
            response = self._http.request(
                method,
                url,
                params=_clean_params(params),
                json=json,
                files=files,
                headers={**self._headers(auth), **(headers or {})},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("api_request_failed", method=method, url=url, error=str(e))
            raise ApiConnectionError(
                f"Impossible de joindre le serveur ({self.base_url}): {e}"
            ) from e

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "api_error_status",
                method=method,
                url=url,
                status=response.status_code,
                message=message,
            )
            raise ApiStatusError(response.status_code, message)

        logger.debug(
            "api_response",
            method=method,
            url=url,
            status=response.status_code,
            latency_ms=latency_ms,
        )
        return response

    def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            ApiResponseError: If the body is not JSON
        """
        response = self.request(method, path, **kwargs)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ApiResponseError(f"Réponse non JSON pour {path}") from e

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self.request_json("GET", path, params=params)

    def post(self, path: str, payload: Any = None, files: dict[str, Any] | None = None) -> Any:
        return self.request_json("POST", path, json=payload, files=files)

    def put(self, path: str, payload: Any = None) -> Any:
        return self.request_json("PUT", path, json=payload)

    def delete(self, path: str) -> Any:
        return self.request_json("DELETE", path)

    def close(self) -> None:
        """Close the underlying connection pool if we created it."""
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

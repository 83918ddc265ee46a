"""Account endpoints: register, login, logout, password reset."""

from __future__ import annotations

import structlog

from autoecole.api.client import ApiClient, ApiError, expect_field
from autoecole.api.credentials import Credentials, CredentialsStore
from autoecole.services.schemas import AuthSession

logger = structlog.get_logger(__name__)


class AuthService:
    """Authentication calls, persisting tokens to the credentials store."""

    def __init__(self, client: ApiClient, store: CredentialsStore):
        self.client = client
        self.store = store

    def _remember(self, session: AuthSession) -> AuthSession:
        self.store.save(
            Credentials(
                access_token=session.access_token,
                refresh_token=session.refresh_token,
                user=session.user.model_dump(mode="json"),
            )
        )
        return session

    def register(
        self,
        name: str,
        email: str,
        password: str,
        phone: str | None = None,
    ) -> AuthSession:
        """Create an account and sign in."""
        body = {"name": name, "email": email, "password": password}
        if phone:
            body["phone"] = phone

        payload = self.client.request_json("POST", "/auth/register", json=body, auth=False)
        session = AuthSession.model_validate(payload)
        logger.info("user_registered", user_id=session.user.id)
        return self._remember(session)

    def login(self, email: str, password: str) -> AuthSession:
        """Sign in and store the returned tokens."""
        payload = self.client.request_json(
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            auth=False,
        )
        session = AuthSession.model_validate(payload)
        logger.info("user_logged_in", user_id=session.user.id, role=session.user.role)
        return self._remember(session)

    def logout(self) -> None:
        """Tell the server, then drop local tokens whatever it answered."""
        try:
            self.client.post("/auth/logout")
        except ApiError as e:
            logger.warning("logout_request_failed", error=str(e))
        finally:
            self.store.clear()

    def refresh_token(self, refresh_token: str) -> str:
        """Exchange a refresh token for a new access token."""
        payload = self.client.request_json(
            "POST", "/auth/refresh", json={"refreshToken": refresh_token}, auth=False
        )
        return expect_field(payload, "accessToken")

    def forgot_password(self, email: str) -> str:
        """Request a reset e-mail. Returns the server's message."""
        payload = self.client.request_json(
            "POST", "/auth/forgot-password", json={"email": email}, auth=False
        )
        return payload.get("message", "")

    def reset_password(self, token: str, new_password: str) -> str:
        payload = self.client.request_json(
            "POST",
            "/auth/reset-password",
            json={"token": token, "newPassword": new_password},
            auth=False,
        )
        return payload.get("message", "")

    def google_auth_url(self) -> str:
        """URL to open in a browser for Google sign-in."""
        return self.client.url_for("/auth/google")

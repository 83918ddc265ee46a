"""Local persistence of the signed-in user's tokens.

Tokens live in <state_dir>/credentials_v1.json. Refresh and expiry are
the server's business; this module only stores what login returned.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

CREDENTIALS_FILENAME = "credentials_v1.json"
CREDENTIALS_SCHEMA = "credentials_v1"


@dataclass
class Credentials:
    """Tokens and the user snapshot returned by login."""

    access_token: str
    refresh_token: str = ""
    user: dict[str, Any] = field(default_factory=dict)
    saved_at: str = ""

    @property
    def is_admin(self) -> bool:
        return self.user.get("role") == "admin"

    @property
    def display_name(self) -> str:
        return self.user.get("name") or self.user.get("email") or "?"

    def to_dict(self) -> dict[str, Any]:
        return {
            "$schema": CREDENTIALS_SCHEMA,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "user": self.user,
            "saved_at": self.saved_at,
        }


class CredentialsStore:
    """File-backed credentials for the API client's bearer header."""

    def __init__(self, state_dir: Path):
        self.state_dir = state_dir
        self.path = state_dir / CREDENTIALS_FILENAME

    def load(self) -> Credentials | None:
        """Read stored credentials, or None when absent or unreadable."""
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("credentials_unreadable", path=str(self.path), error=str(e))
            return None

        if data.get("$schema") != CREDENTIALS_SCHEMA or not data.get("access_token"):
            logger.warning(
                "credentials_invalid_schema",
                expected=CREDENTIALS_SCHEMA,
                got=data.get("$schema"),
            )
            return None

        return Credentials(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            user=data.get("user") or {},
            saved_at=data.get("saved_at", ""),
        )

    def save(self, credentials: Credentials) -> Path:
        """Persist credentials, stamping the save time."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        credentials.saved_at = datetime.now(timezone.utc).isoformat()

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(credentials.to_dict(), f, indent=2, ensure_ascii=False)

        logger.info("credentials_saved", path=str(self.path))
        return self.path

    def clear(self) -> bool:
        """Remove stored credentials. Returns True if a file was deleted."""
        if not self.path.exists():
            return False
        self.path.unlink()
        logger.info("credentials_cleared", path=str(self.path))
        return True

    def get_access_token(self) -> str | None:
        credentials = self.load()
        return credentials.access_token if credentials else None

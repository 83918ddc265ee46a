"""Administration: platform stats, user management, settings.

Per-resource admin writes (courses, videos, tests, questions) live on
their own services; this one covers what only the admin area reads.
"""

from __future__ import annotations

from typing import Any

import structlog

from autoecole.api.client import ApiClient, expect_field
from autoecole.services.schemas import AdminStats, Course, Payment, UserProfile, Video

logger = structlog.get_logger(__name__)


class AdminService:
    def __init__(self, client: ApiClient):
        self.client = client

    def get_stats(self) -> AdminStats:
        payload = self.client.get("/admin/stats")
        return AdminStats.model_validate(expect_field(payload, "stats"))

    def list_users(
        self,
        role: str | None = None,
        is_premium: bool | None = None,
        search: str | None = None,
    ) -> list[UserProfile]:
        """All accounts, optionally filtered by role, premium flag or search text."""
        payload = self.client.get(
            "/admin/users",
            params={"role": role, "isPremium": is_premium, "search": search},
        )
        return [UserProfile.model_validate(u) for u in expect_field(payload, "users")]

    def update_user(self, user_id: str, data: dict[str, Any]) -> UserProfile:
        payload = self.client.put(f"/admin/users/{user_id}", data)
        return UserProfile.model_validate(expect_field(payload, "user"))

    def delete_user(self, user_id: str) -> None:
        self.client.delete(f"/admin/users/{user_id}")
        logger.info("admin_user_deleted", user_id=user_id)

    def list_courses(self) -> list[Course]:
        """Every course, drafts included."""
        payload = self.client.get("/admin/courses")
        return [Course.model_validate(c) for c in expect_field(payload, "courses")]

    def list_videos(self) -> list[Video]:
        payload = self.client.get("/admin/videos")
        return [Video.model_validate(v) for v in expect_field(payload, "videos")]

    def list_payments(
        self, status: str | None = None, user_id: str | None = None
    ) -> list[Payment]:
        payload = self.client.get(
            "/admin/payments", params={"status": status, "userId": user_id}
        )
        return [Payment.model_validate(p) for p in expect_field(payload, "payments")]

    def get_settings(self) -> dict[str, Any]:
        payload = self.client.get("/admin/settings")
        return expect_field(payload, "settings")

    def update_settings(self, settings: dict[str, Any]) -> dict[str, Any]:
        payload = self.client.put("/admin/settings", settings)
        return expect_field(payload, "settings")

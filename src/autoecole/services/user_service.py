"""Signed-in user's profile and progress."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from autoecole.api.client import ApiClient, expect_field
from autoecole.services.schemas import AvatarUpload, ProfileOverview, UserProfile, UserProgress


class UserService:
    def __init__(self, client: ApiClient):
        self.client = client

    def get_profile(self) -> ProfileOverview:
        """Profile with stats and recent attempts."""
        payload = self.client.get("/users/profile")
        return ProfileOverview.model_validate(payload)

    def update_profile(self, changes: dict[str, Any]) -> UserProfile:
        payload = self.client.put("/users/profile", changes)
        return UserProfile.model_validate(expect_field(payload, "user"))

    def upload_avatar(self, image_path: Path) -> AvatarUpload:
        """Upload an avatar image as multipart form data."""
        with open(image_path, "rb") as f:
            payload = self.client.post(
                "/users/avatar", files={"avatar": (image_path.name, f.read())}
            )
        return AvatarUpload.model_validate(payload)

    def get_progress(self) -> UserProgress:
        payload = self.client.get("/users/progress")
        return UserProgress.model_validate(expect_field(payload, "progress"))

    def change_password(self, current_password: str, new_password: str) -> str:
        payload = self.client.put(
            "/users/change-password",
            {"currentPassword": current_password, "newPassword": new_password},
        )
        return payload.get("message", "")

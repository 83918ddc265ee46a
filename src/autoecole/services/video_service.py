"""Video library."""

from __future__ import annotations

from typing import Any

from autoecole.api.client import ApiClient, expect_field
from autoecole.services.schemas import Video


class VideoService:
    def __init__(self, client: ApiClient):
        self.client = client

    def list_videos(
        self,
        category: str | None = None,
        is_premium: bool | None = None,
        search: str | None = None,
    ) -> list[Video]:
        """Get all videos, optionally filtered."""
        payload = self.client.get(
            "/videos",
            params={"category": category, "isPremium": is_premium, "search": search},
        )
        return [Video.model_validate(v) for v in expect_field(payload, "videos")]

    def get_video(self, video_id: str) -> Video:
        payload = self.client.get(f"/videos/{video_id}")
        return Video.model_validate(expect_field(payload, "video"))

    def list_by_category(self, category: str) -> list[Video]:
        payload = self.client.get(f"/videos/category/{category}")
        return [Video.model_validate(v) for v in expect_field(payload, "videos")]

    def increment_view_count(self, video_id: str) -> None:
        self.client.post(f"/videos/{video_id}/view")

    # Admin endpoints

    def create_video(self, data: dict[str, Any]) -> Video:
        payload = self.client.post("/videos", data)
        return Video.model_validate(expect_field(payload, "video"))

    def update_video(self, video_id: str, data: dict[str, Any]) -> Video:
        payload = self.client.put(f"/videos/{video_id}", data)
        return Video.model_validate(expect_field(payload, "video"))

    def delete_video(self, video_id: str) -> None:
        self.client.delete(f"/videos/{video_id}")

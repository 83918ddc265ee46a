"""Course catalogue."""

from __future__ import annotations

from typing import Any

from autoecole.api.client import ApiClient, expect_field
from autoecole.services.schemas import Course


class CourseService:
    def __init__(self, client: ApiClient):
        self.client = client

    def list_courses(
        self,
        category: str | None = None,
        is_premium: bool | None = None,
        search: str | None = None,
    ) -> list[Course]:
        """Get all courses, optionally filtered."""
        payload = self.client.get(
            "/courses",
            params={"category": category, "isPremium": is_premium, "search": search},
        )
        return [Course.model_validate(c) for c in expect_field(payload, "courses")]

    def get_course(self, course_id: str) -> Course:
        payload = self.client.get(f"/courses/{course_id}")
        return Course.model_validate(expect_field(payload, "course"))

    def list_by_category(self, category: str) -> list[Course]:
        payload = self.client.get(f"/courses/category/{category}")
        return [Course.model_validate(c) for c in expect_field(payload, "courses")]

    def increment_view_count(self, course_id: str) -> None:
        self.client.post(f"/courses/{course_id}/view")

    def mark_completed(self, course_id: str) -> None:
        self.client.post(f"/courses/{course_id}/complete")

    # Admin endpoints

    def create_course(self, data: dict[str, Any]) -> Course:
        payload = self.client.post("/courses", data)
        return Course.model_validate(expect_field(payload, "course"))

    def update_course(self, course_id: str, data: dict[str, Any]) -> Course:
        payload = self.client.put(f"/courses/{course_id}", data)
        return Course.model_validate(expect_field(payload, "course"))

    def delete_course(self, course_id: str) -> None:
        self.client.delete(f"/courses/{course_id}")

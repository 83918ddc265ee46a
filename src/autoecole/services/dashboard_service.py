"""Progress dashboard and revision material."""

from __future__ import annotations

from typing import Any

from autoecole.api.client import ApiClient, expect_field
from autoecole.services.schemas import Dashboard


class DashboardService:
    def __init__(self, client: ApiClient):
        self.client = client

    def get_dashboard(self) -> Dashboard:
        """XP, level, streak, badges and test/course statistics."""
        payload = self.client.get("/users/dashboard")
        return Dashboard.model_validate(expect_field(payload, "dashboard"))

    def get_incorrect_answers(self) -> list[dict[str, Any]]:
        """Questions the user got wrong, for the revision view."""
        payload = self.client.get("/users/incorrect-answers")
        if isinstance(payload, list):
            return payload
        for key in ("incorrectAnswers", "questions", "data"):
            if isinstance(payload.get(key), list):
                return payload[key]
        return []

"""Question bank."""

from __future__ import annotations

from typing import Any

from autoecole.api.client import ApiClient, expect_field
from autoecole.services.schemas import Question


class QuestionService:
    def __init__(self, client: ApiClient):
        self.client = client

    def list_questions(
        self,
        category: str | None = None,
        difficulty: str | None = None,
        search: str | None = None,
    ) -> list[Question]:
        payload = self.client.get(
            "/questions",
            params={"category": category, "difficulty": difficulty, "search": search},
        )
        return [Question.model_validate(q) for q in expect_field(payload, "questions")]

    def get_question(self, question_id: str) -> Question:
        payload = self.client.get(f"/questions/{question_id}")
        return Question.model_validate(expect_field(payload, "question"))

    def random_questions(
        self,
        count: int = 10,
        category: str | None = None,
        difficulty: str | None = None,
    ) -> list[Question]:
        """Draw random questions for a free practice round."""
        payload = self.client.get(
            "/questions/random",
            params={"count": count, "category": category, "difficulty": difficulty},
        )
        return [Question.model_validate(q) for q in expect_field(payload, "questions")]

    # Admin endpoints

    def create_question(self, data: dict[str, Any]) -> Question:
        payload = self.client.post("/questions", data)
        return Question.model_validate(expect_field(payload, "question"))

    def update_question(self, question_id: str, data: dict[str, Any]) -> Question:
        payload = self.client.put(f"/questions/{question_id}", data)
        return Question.model_validate(expect_field(payload, "question"))

    def delete_question(self, question_id: str) -> None:
        self.client.delete(f"/questions/{question_id}")

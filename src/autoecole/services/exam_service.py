"""Practice exams ("tests" on the platform) and their attempts.

Scoring happens server-side; the client only submits selected option
indexes and renders the graded result.
"""

from __future__ import annotations

from typing import Any

import structlog

from autoecole.api.client import ApiClient, ApiResponseError, expect_field
from autoecole.services.schemas import (
    AttemptReview,
    DrivingTest,
    SubmissionResult,
    TestAttempt,
    TestSubmission,
)

logger = structlog.get_logger(__name__)


class ExamService:
    """Endpoints under /tests."""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_tests(
        self,
        difficulty: str | None = None,
        is_premium: bool | None = None,
    ) -> list[DrivingTest]:
        payload = self.client.get(
            "/tests", params={"difficulty": difficulty, "isPremium": is_premium}
        )
        return [DrivingTest.model_validate(t) for t in expect_field(payload, "tests")]

    def get_test(self, test_id: str) -> DrivingTest:
        """Get one test with its questions populated.

        Raises:
            ApiResponseError: If the server answers without a test
        """
        payload = self.client.get(f"/tests/{test_id}")
        if not isinstance(payload, dict) or not payload.get("test"):
            raise ApiResponseError("Test introuvable dans la réponse du serveur")
        return DrivingTest.model_validate(payload["test"])

    def submit_test(self, submission: TestSubmission) -> SubmissionResult:
        """Submit answers; the server grades and returns XP/level changes."""
        body = submission.model_dump(by_alias=True, include={"answers", "time_taken"})
        payload = self.client.post(f"/tests/{submission.test_id}/submit", body)
        result = SubmissionResult.model_validate(payload)

        logger.info(
            "test_submitted",
            test_id=submission.test_id,
            answers=len(submission.answers),
            score=result.score,
            passed=result.passed,
        )
        return result

    def list_attempts(self) -> list[TestAttempt]:
        payload = self.client.get("/tests/attempts")
        return [TestAttempt.model_validate(a) for a in expect_field(payload, "attempts")]

    def get_attempt(self, attempt_id: str) -> AttemptReview:
        payload = self.client.get(f"/tests/attempts/{attempt_id}")
        return AttemptReview.model_validate(payload)

    def get_test_stats(self, test_id: str) -> dict[str, Any]:
        payload = self.client.get(f"/tests/{test_id}/stats")
        return expect_field(payload, "stats")

    # Admin endpoints

    def create_test(self, data: dict[str, Any]) -> DrivingTest:
        payload = self.client.post("/tests", data)
        return DrivingTest.model_validate(expect_field(payload, "test"))

    def update_test(self, test_id: str, data: dict[str, Any]) -> DrivingTest:
        payload = self.client.put(f"/tests/{test_id}", data)
        return DrivingTest.model_validate(expect_field(payload, "test"))

    def delete_test(self, test_id: str) -> None:
        self.client.delete(f"/tests/{test_id}")

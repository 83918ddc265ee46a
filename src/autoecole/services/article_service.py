"""Highway-code articles and the article assistant."""

from __future__ import annotations

import structlog

from autoecole.api.client import ApiClient, expect_field
from autoecole.services.schemas import Article, ArticleSummary, AssistantAnswer

logger = structlog.get_logger(__name__)


class ArticleService:
    """Read access to articles plus the question-answering endpoint."""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_articles(self) -> list[ArticleSummary]:
        """Get all article summaries."""
        payload = self.client.get("/articles")
        return [ArticleSummary.model_validate(a) for a in expect_field(payload, "data")]

    def get_article(self, article_number: int) -> Article:
        """Get a single article by number."""
        payload = self.client.get(f"/articles/{article_number}")
        return Article.model_validate(expect_field(payload, "data"))

    def get_articles_context(self, article_numbers: list[int]) -> list[Article]:
        """Get several articles at once, e.g. neighbours of the current one."""
        payload = self.client.post("/articles/context", {"articleNumbers": article_numbers})
        return [Article.model_validate(a) for a in expect_field(payload, "data")]

    def ask_assistant(
        self,
        question: str,
        current_article_number: int | None = None,
        include_nearby_articles: bool = True,
    ) -> AssistantAnswer:
        """Ask the assistant a question scoped to the current article.

        Args:
            question: The learner's question
            current_article_number: Article the learner is reading
            include_nearby_articles: Let the server add neighbouring articles

        Returns:
            AssistantAnswer with the answer text and the articles it used
        """
        payload = self.client.post(
            "/assistant/chat",
            {
                "question": question,
                "currentArticleNumber": current_article_number,
                "includeNearbyArticles": include_nearby_articles,
            },
        )
        answer = AssistantAnswer.model_validate(expect_field(payload, "data"))

        logger.info(
            "assistant_answered",
            article=current_article_number,
            answer_length=len(answer.answer),
        )
        return answer

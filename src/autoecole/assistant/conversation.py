"""Assistant chat scoped to the article being studied.

One request per question, no retry. A failed request becomes an
assistant message in the transcript instead of an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

import structlog
from pydantic import ValidationError

from autoecole.api.client import ApiError
from autoecole.services.article_service import ArticleService
from autoecole.services.schemas import AssistantContext

logger = structlog.get_logger(__name__)

ERROR_NOTICE = "Impossible d'obtenir une réponse. Veuillez réessayer."
ERROR_REPLY_PREFIX = "Désolé, une erreur est survenue pendant le traitement de votre question."

SUGGESTED_QUESTIONS = [
    "Quelle est la définition de la route ?",
    "Explique-moi cet article simplement",
    "Quels sont les points importants de cet article ?",
    "Donne-moi un exemple concret",
]


@dataclass
class ChatMessage:
    """One entry of the visible transcript."""

    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    context: AssistantContext | None = None
    is_error: bool = False

    @property
    def sources(self) -> list[str]:
        """Titles of the articles the answer was based on."""
        if self.context is None:
            return []
        return [a.title for a in self.context.articles_used]


class AssistantConversation:
    """Transcript plus the pending-request flag for one article."""

    def __init__(self, articles: ArticleService, current_article_number: int):
        self.articles = articles
        self.current_article_number = current_article_number
        self.messages: list[ChatMessage] = []
        self.is_loading = False
        self.error: str | None = None
        self._counter = 0

    @property
    def suggested_questions(self) -> list[str]:
        return list(SUGGESTED_QUESTIONS)

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def set_article(self, article_number: int) -> None:
        """Switch article; the transcript belongs to the previous one."""
        if article_number == self.current_article_number:
            return
        self.current_article_number = article_number
        self.messages.clear()
        self.error = None

    def ask(self, question: str) -> ChatMessage | None:
        """Send a question and append the reply to the transcript.

        Returns:
            The assistant message (answer or error), or None when the
            question was blank or another request is still pending.
        """
        question = question.strip()
        if not question or self.is_loading:
            return None

        self.messages.append(
            ChatMessage(id=self._next_id("user"), role="user", content=question)
        )
        self.is_loading = True
        self.error = None

        try:
            answer = self.articles.ask_assistant(
                question,
                current_article_number=self.current_article_number,
                include_nearby_articles=True,
            )
            reply = ChatMessage(
                id=self._next_id("assistant"),
                role="assistant",
                content=answer.answer,
                context=answer.context,
            )
        except (ApiError, ValidationError) as e:
            logger.warning(
                "assistant_request_failed",
                article=self.current_article_number,
                error=str(e),
            )
            self.error = ERROR_NOTICE
            reply = ChatMessage(
                id=self._next_id("assistant-error"),
                role="assistant",
                content=f"{ERROR_REPLY_PREFIX} {e}",
                is_error=True,
            )
        finally:
            self.is_loading = False

        self.messages.append(reply)
        return reply

"""Tests for the article assistant conversation."""

from unittest.mock import MagicMock

import pytest

from autoecole.api.client import ApiConnectionError
from autoecole.assistant.conversation import (
    ERROR_NOTICE,
    SUGGESTED_QUESTIONS,
    AssistantConversation,
)
from autoecole.services.article_service import ArticleService


@pytest.fixture
def conversation(api_client):
    return AssistantConversation(ArticleService(api_client), current_article_number=1)


class TestAsk:
    """Tests for the question/answer exchange."""

    def test_answer_appended_with_sources(self, conversation, backend):
        reply = conversation.ask("  C'est quoi une chaussée ?  ")

        assert [m.role for m in conversation.messages] == ["user", "assistant"]
        assert conversation.messages[0].content == "C'est quoi une chaussée ?"
        assert reply.content == "Réponse à: C'est quoi une chaussée ?"
        assert reply.sources == ["Article 1"]
        assert reply.is_error is False
        assert conversation.is_loading is False
        assert conversation.error is None
        assert backend.bodies["chat"]["includeNearbyArticles"] is True

    def test_blank_question_sends_nothing(self, conversation, backend):
        assert conversation.ask("   ") is None
        assert conversation.messages == []
        assert backend.requests == []

    def test_no_second_request_while_loading(self, conversation):
        conversation.is_loading = True
        assert conversation.ask("Question") is None
        assert conversation.messages == []

    def test_failure_becomes_error_message(self):
        """Request errors are shown in the transcript, not raised."""
        articles = MagicMock(spec=ArticleService)
        articles.ask_assistant.side_effect = ApiConnectionError("Impossible de joindre le serveur")
        conversation = AssistantConversation(articles, current_article_number=4)

        reply = conversation.ask("Question")

        assert reply.is_error is True
        assert "Impossible de joindre le serveur" in reply.content
        assert conversation.error == ERROR_NOTICE
        assert conversation.is_loading is False
        assert len(conversation.messages) == 2

    def test_error_cleared_on_next_success(self, conversation, backend):
        backend.fail("POST", "/api/assistant/chat", 500, "Service IA indisponible")
        conversation.ask("Première")
        assert conversation.error == ERROR_NOTICE

        backend.canned.clear()
        conversation.ask("Seconde")
        assert conversation.error is None
        assert len(conversation.messages) == 4

    def test_message_ids_unique(self, conversation):
        conversation.ask("Un")
        conversation.ask("Deux")
        ids = [m.id for m in conversation.messages]
        assert len(set(ids)) == len(ids)


class TestArticleSwitch:
    def test_switching_article_resets_transcript(self, conversation, backend):
        conversation.ask("Un")
        conversation.set_article(2)

        assert conversation.messages == []
        conversation.ask("Deux")
        assert backend.bodies["chat"]["currentArticleNumber"] == 2

    def test_same_article_keeps_transcript(self, conversation):
        conversation.ask("Un")
        conversation.set_article(1)
        assert len(conversation.messages) == 2

    def test_suggested_questions_are_a_copy(self, conversation):
        conversation.suggested_questions.append("x")
        assert conversation.suggested_questions == SUGGESTED_QUESTIONS

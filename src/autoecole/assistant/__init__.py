"""Article assistant (question/answer exchange)."""

from autoecole.assistant.conversation import (
    SUGGESTED_QUESTIONS,
    AssistantConversation,
    ChatMessage,
)

__all__ = ["AssistantConversation", "ChatMessage", "SUGGESTED_QUESTIONS"]

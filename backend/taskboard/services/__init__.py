"""Domain services and the LLM integration."""

from taskboard.services.chat_service import chat_service

__all__ = ["chat_service"]

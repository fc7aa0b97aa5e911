"""API route modules."""

from taskboard.api.routes import auth, boards, cards, chat, columns, comments, tags

__all__ = ["auth", "boards", "cards", "chat", "columns", "comments", "tags"]

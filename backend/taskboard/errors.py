"""
Domain error taxonomy.

Every error raised by the action core derives from TaskboardError and carries
a stable ``code`` (reported in chat outcomes) and the HTTP status it maps to
when it escapes a direct API call.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TaskboardError(Exception):
    """Base class for domain errors."""

    code: str = "error"
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskboardError):
    """Malformed input or action shape."""

    code = "validation_error"
    status_code = 400


class NotFoundError(TaskboardError):
    """A referenced entity does not exist."""

    code = "not_found"
    status_code = 404


class AuthorizationError(TaskboardError):
    """Insufficient role or visibility."""

    code = "authorization_error"
    status_code = 403


class ConflictError(TaskboardError):
    """Referential mismatch across scopes or a concurrent-write collision."""

    code = "conflict"
    status_code = 409


class LLMUnavailableError(TaskboardError):
    """The language model is unreachable or timed out."""

    code = "llm_unavailable"
    status_code = 502

    def __init__(self, message: str, *, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out
        if timed_out:
            self.status_code = 504


class ParseError(TaskboardError):
    """A model reply entry could not be decoded into an action."""

    code = "parse_error"
    status_code = 502


async def taskboard_error_handler(request: Request, exc: TaskboardError) -> JSONResponse:
    """Render a domain error in FastAPI's standard error body."""
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def install_error_handlers(app: FastAPI) -> None:
    """Register the domain error handler on the application."""
    app.add_exception_handler(TaskboardError, taskboard_error_handler)

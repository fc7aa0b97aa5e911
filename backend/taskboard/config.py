"""Taskboard settings, read from the environment and an optional .env file."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ASYNC_DRIVER = "postgresql+asyncpg://"
_SYNC_DRIVER = "postgresql://"
_POSTGRES_SCHEMES = ("postgresql+asyncpg://", "postgresql+psycopg2://", "postgresql://", "postgres://")


def _with_driver(url: str, driver: str) -> str:
    """Rewrite a Postgres URL to use ``driver``. Other databases pass through untouched."""
    for scheme in _POSTGRES_SCHEMES:
        if url.startswith(scheme):
            return driver + url[len(scheme):]
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Taskboard"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Database
    # DATABASE_URL_OVERRIDE wins over the postgres_* parts when set
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "taskboard"
    postgres_password: str = ""
    postgres_db: str = "taskboard"
    # How long a position update waits on a scope lock before giving up (ms)
    db_lock_timeout_ms: int = Field(default=5000, ge=0)

    # Auth
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7
    password_min_length: int = 8
    cookie_cross_domain: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Assistant
    anthropic_api_key: str
    llm_model: str = "claude-sonnet-4-20250514"
    llm_max_tokens: int = 4000
    llm_timeout_seconds: float = Field(default=60.0, gt=0)
    chat_context_messages: int = 10
    chat_history_limit: int = 50
    max_context_chars: int = 50000

    # Cards marked public are readable without a board role only when enabled
    public_visibility_enabled: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value

    @computed_field
    @property
    def database_url(self) -> str:
        """Async URL used by the app."""
        if self.database_url_override:
            url = _with_driver(self.database_url_override, _ASYNC_DRIVER)
            # asyncpg rejects libpq query parameters such as sslmode
            if url.startswith(_ASYNC_DRIVER):
                url = url.split("?", 1)[0]
            return url
        return (
            f"{_ASYNC_DRIVER}{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Sync URL used by Alembic."""
        if self.database_url_override:
            return _with_driver(self.database_url_override, _SYNC_DRIVER)
        return _with_driver(self.database_url, _SYNC_DRIVER)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Message safe to show a user.

    Development gets the exception text; staging and production get
    ``generic_message``.
    """
    if get_settings().environment == "development":
        return str(error)
    return generic_message

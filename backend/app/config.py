"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables; auth_jwt_secret has no
      default, so the app refuses to start without one
    - get_settings() is cached (lru_cache): single instance per process

Design Decisions:
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - push_timeout_seconds bounds the only outbound call made while a request's
      background task is running
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://commons:commons@db:5432/commons"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Auth (tokens are issued by the external auth service)
    auth_jwt_secret: str = Field(min_length=32)
    auth_jwt_algorithm: str = "HS256"
    auth_jwt_audience: str | None = None

    # Push gateway (Expo)
    push_gateway_url: str = "https://exp.host/--/api/v2/push/send"
    push_access_token: str | None = None
    push_timeout_seconds: float = 5.0
    push_max_devices: int = 10

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()

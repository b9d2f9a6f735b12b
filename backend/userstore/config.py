"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Secrets come from environment variables (placeholder defaults only)
    - get_settings() is cached (lru_cache): single instance per process
    - Only the composition point (main.create_app) reads settings; stages and
      the store receive plain values

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works against a local redis-server
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Record store
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout_seconds: float = 5.0
    redis_connect_timeout_seconds: float = 5.0
    scan_batch_size: int = 100

    # Authentication
    api_shared_secret: str = "change-me-shared-secret"

    @field_validator("api_shared_secret")
    @classmethod
    def reject_blank_secret(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("api_shared_secret cannot be empty")
        return v

    # Rate limiting (fixed window, per caller + route)
    rate_limit_requests: int = 100
    rate_limit_window_seconds: float = 60.0

    # Exempt from authentication and rate limiting
    public_paths: list[str] = ["/health"]

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()

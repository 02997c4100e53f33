"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

UNAUTHORIZED_POLICIES = {"ignore", "logout"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str = "http://localhost:3000/api"
    production_api_url: str | None = None
    environment: str = _ENVIRONMENT
    token_file: str = "~/.config/calorie_tracker/token.json"
    token_storage_key: str = "token"
    unauthorized_policy: str = "ignore"
    request_timeout_seconds: float = 15.0
    search_debounce_seconds: float = 0.5
    foods_page_size: int = 20
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def resolve_api_base_url(settings: Settings) -> str:
    """Pick the backend base URL for the configured environment."""
    if settings.environment == "production" and settings.production_api_url:
        base_url = settings.production_api_url
    else:
        base_url = settings.api_base_url
    return base_url.rstrip("/")


def parse_unauthorized_policy(raw: str | None) -> str:
    """Normalize the 401 policy, falling back to ignoring the response."""
    if raw is None:
        return "ignore"
    cleaned = raw.strip().lower()
    if cleaned in UNAUTHORIZED_POLICIES:
        return cleaned
    return "ignore"

"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    api_token: str
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 8.0
    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "PantryTracker/1.0 (https://github.com/pantry-tracker)"
    off_timeout_seconds: float = 8.0
    search_cache_ttl_seconds: int = 600
    default_language: str = "es"
    log_level: str = "INFO"
    extra_generic_terms: str | None = None
    extra_brands: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_keyword_list(raw: str | None) -> set[str]:
    """Parse a comma-separated keyword list from env."""
    if raw is None:
        return set()
    keywords: set[str] = set()
    for chunk in raw.split(","):
        value = chunk.strip().lower()
        if value:
            keywords.add(value)
    return keywords

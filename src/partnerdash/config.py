"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Streak CRM upstream
    STREAK_API_BASE: str = "https://www.streak.com/api/v1"
    STREAK_API_KEY: str = ""  # BE tenant
    STREAK_API_KEY_NL: str = ""  # NL tenant
    UPSTREAM_TIMEOUT: float = 10.0

    # Pipeline keys that belong to NL without carrying the NL marker
    NL_PIPELINE_KEYS: str = ""
    NL_CACHE_TTL_SECONDS: int = 3600

    # Field resolution
    PARTNERSHIP_SOURCE_FIELD_KEY: str = "1001"
    PARTNERSHIP_FIELD_KEY: str = ""  # empty = locate by name
    PARTNER_PAGE_LIVE_FIELD_KEY: str = ""  # empty = locate by name

    # Session tokens
    SESSION_SECRET_KEY: str = "CHANGE-ME-IN-PRODUCTION-use-openssl-rand-hex-32"
    SESSION_ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = "partnerdash_session"
    SESSION_EXPIRE_MINUTES: int = 60 * 12

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    def declared_nl_pipeline_keys(self) -> tuple[str, ...]:
        """Return NL_PIPELINE_KEYS split into a tuple of non-empty keys."""
        return tuple(k.strip() for k in self.NL_PIPELINE_KEYS.split(",") if k.strip())


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()

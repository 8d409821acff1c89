"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. This keeps secrets out of source code — the .env file is
gitignored and never committed.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from donation_exchange.config import settings
    print(settings.DATABASE_URL)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Donation Exchange API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Shared with the identity provider to verify bearer tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Donation Exchange API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Public URL of the web frontend, used to build links in notifications
    APP_BASE_URL: str = "http://localhost:3000"

    # --- Database ---
    # SQLite for local use; swap to a postgresql+asyncpg:// URL for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/donations.db"

    # How long a SQLite writer waits for a competing writer before giving up
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 15.0

    # --- Authentication ---
    # REQUIRED: tokens are issued by the external identity provider
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Notifications ---
    # When unset, acceptances are only logged
    NOTIFY_WEBHOOK_URL: str | None = None
    NOTIFY_TIMEOUT_SECONDS: float = 10.0

    # --- Neediness scoring (advisory only) ---
    # When unset, every request gets NEUTRAL_NEEDINESS_SCORE
    NEEDINESS_SCORER_URL: str | None = None
    NEEDINESS_TIMEOUT_SECONDS: float = 5.0
    NEUTRAL_NEEDINESS_SCORE: float = 5.0

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()

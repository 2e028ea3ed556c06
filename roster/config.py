"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. Secrets never live in source code: the .env file is gitignored.

Pydantic Settings resolves values in this order:
  1. Environment variables (highest priority)
  2. .env file values
  3. Defaults defined here (lowest priority)

SECRET_KEY and DATABASE_URL have no defaults. If either is missing, constructing
the settings singleton raises at import time and the process refuses to start.

Usage:
    from roster.config import settings
    print(settings.LOGIN_EMAIL_DOMAIN)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Squadron Roster API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign bearer tokens
      - DATABASE_URL: Async SQLAlchemy connection string
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Squadron Roster API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # e.g. "sqlite+aiosqlite:///./roster.db" or "postgresql+asyncpg://..."
    DATABASE_URL: str

    # --- Bearer tokens ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 8 * 60

    # --- Password reset ---
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    RESET_TOKEN_BYTES: int = 32
    FRONTEND_URL: str = "http://localhost:3000"

    # --- Registration policy ---
    LOGIN_EMAIL_DOMAIN: str = "sq23rd.com"
    DEFAULT_DISPLAY_NAME: str = "New User"
    PASSWORD_MIN_LENGTH: int = 8
    PASSWORD_REQUIRE_LETTER: bool = True
    PASSWORD_REQUIRE_DIGIT: bool = True
    # When False, a registrant asking for "admin" is registered as a plain user
    ALLOW_SELF_ASSIGNED_ADMIN: bool = False

    # --- Mail transport (SMTP) ---
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_STARTTLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 10.0
    MAIL_FROM: str = "23rd Tactical Airlift Squadron <no-reply@sq23rd.com>"

    # --- Rate limiting (slowapi / limits notation) ---
    RATE_LIMIT: str = "100 per 15 minutes"
    RATE_LIMIT_ENABLED: bool = True

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()

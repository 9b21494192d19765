"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. This keeps the token secrets out of source code — the .env file is
gitignored, and .env.example provides a safe template for developers.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from tours_api.config import settings
    print(settings.ACCESS_TOKEN_EXPIRE_MINUTES)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Tours API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Signs access tokens
      - REFRESH_SECRET_KEY: Signs refresh tokens (kept separate so a leaked
        access secret cannot mint long-lived sessions)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Tours API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    # "development" exposes unexpected error messages and sends the refresh
    # cookie without the Secure flag; anything else is treated as production
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/tours.db"

    # --- Authentication ---
    SECRET_KEY: str
    REFRESH_SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    REFRESH_COOKIE_NAME: str = "jwt"

    # Subtracted from "now" when recording a password change
    PASSWORD_CHANGED_SKEW_SECONDS: float = 0.0

    # --- Password reset ---
    PASSWORD_RESET_EXPIRE_MINUTES: int = 10

    # --- Query engine ---
    DEFAULT_PAGE_SIZE: int = 100
    MAX_PAGE_SIZE: int = 1000

    # --- Email ---
    # Transactional email HTTP API. When EMAIL_API_KEY is unset, reset
    # emails cannot be dispatched and forgotPassword fails with a 500.
    EMAIL_API_URL: str = "https://api.brevo.com/v3/smtp/email"
    EMAIL_API_KEY: str | None = None
    EMAIL_FROM_NAME: str = "Tours API"
    EMAIL_FROM_ADDRESS: str = "noreply@tours.example.com"
    EMAIL_TIMEOUT_SECONDS: float = 10.0

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() != "development"


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()

"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


NOTIFICATION_BACKENDS = ("inline", "rq")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/santa.db"
    AUTO_CREATE_DB_SCHEMA: bool = True

    # Redis (only used by the rq notification backend)
    REDIS_URL: str = "redis://localhost:6379"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3001
    ENVIRONMENT: str = "development"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    CLIENT_URL: str = "http://localhost:5173"

    # Sessions
    SESSION_COOKIE_NAME: str = "session_id"
    SESSION_TTL_DAYS: int = 7
    SESSION_SWEEP_INTERVAL_MINUTES: int = 60

    # Credentials
    BCRYPT_ROUNDS: int = 12

    # Wishlist
    WISHLIST_ALLOWED_HOSTS: List[str] = ["amazon.com", "www.amazon.com", "smile.amazon.com"]
    PRODUCT_FETCH_TIMEOUT_SECONDS: float = 10.0

    # Email notifications
    NOTIFICATION_BACKEND: str = "inline"
    NOTIFIER_TIMEOUT_SECONDS: float = 20.0
    EMAIL_USER: str = ""
    EMAIL_PASS: str = ""
    EMAIL_FROM_NAME: str = "Secret Santa"
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USE_TLS: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"

    @property
    def email_configured(self) -> bool:
        return bool(self.EMAIL_USER.strip() and self.EMAIL_PASS.strip())


settings = Settings()


def validate_runtime_settings() -> None:
    """Fail fast when settings would leave the service in a broken state."""
    backend = (settings.NOTIFICATION_BACKEND or "").strip().lower()
    if backend not in NOTIFICATION_BACKENDS:
        raise ValueError(
            f"NOTIFICATION_BACKEND must be one of {', '.join(NOTIFICATION_BACKENDS)}; got {backend!r}."
        )
    if int(settings.SESSION_TTL_DAYS) < 1:
        raise ValueError("SESSION_TTL_DAYS must be at least 1.")
    if not settings.WISHLIST_ALLOWED_HOSTS:
        raise ValueError("WISHLIST_ALLOWED_HOSTS must list at least one retail host.")

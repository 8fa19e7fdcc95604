"""Application configuration and settings management.

This module defines the application settings loaded from environment
variables and provides helper functions for accessing cached settings
and email configuration.
"""

from functools import lru_cache
from typing import List

from fastapi_mail import ConnectionConfig
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Attributes:
        APP_NAME: Title of the FastAPI application.
        APP_ENV: Deployment environment. Only ``dev`` exposes raw internal
            error details in 500 responses.
        LOG_LEVEL: Root logging level.
        DATABASE_URL: Database connection string.
        SECRET_KEY: Secret key used for JWT signing.
        ALGORITHM: Algorithm used to encode JWT tokens.
        ACCESS_TOKEN_EXPIRE_MINUTES: Access token lifetime in minutes.
        ALLOWED_ORIGINS: Allowed origins for CORS.
        REDIS_URL: Redis connection URL for rate limiting.
        RATE_LIMIT_ENABLED: Whether rate limits are applied at all.
        CLOUDINARY_URL: Cloudinary connection URL for animal photos.
        CLOUDINARY_ROOT_FOLDER: Folder prefix for uploaded photos.
        MAX_PHOTOS_PER_ANIMAL: Maximum number of photos an animal can hold.
        MAX_PHOTO_SIZE_MB: Maximum size of a single uploaded photo.
        MAIL_ENABLED: Whether notification emails are actually sent.
        MAIL_FROM: Sender email address for outgoing emails.
        SMTP_USER: SMTP username.
        SMTP_PASSWORD: SMTP password.
        SMTP_PORT: SMTP server port.
        SMTP_HOST: SMTP server host.
        BASE_URL: Base URL of the application.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Little Refugees API"
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str = "sqlite:///./app.db"
    SECRET_KEY: str = "dev-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ALLOWED_ORIGINS: List[str] = ["*"]
    REDIS_URL: str = "redis://localhost:6379"
    RATE_LIMIT_ENABLED: bool = True
    CLOUDINARY_URL: str | None = None
    CLOUDINARY_ROOT_FOLDER: str = "little_refugees"
    MAX_PHOTOS_PER_ANIMAL: int = 5
    MAX_PHOTO_SIZE_MB: int = 5
    MAIL_ENABLED: bool = False
    MAIL_FROM: str = "noreply@example.com"
    SMTP_USER: str = "user"
    SMTP_PASSWORD: str = "password"
    SMTP_PORT: int = 1025
    SMTP_HOST: str = "localhost"
    BASE_URL: str = "http://localhost:8000"


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    The settings object is cached to prevent reloading environment
    variables multiple times during application lifetime.
    """

    return Settings()


def get_mail_config(settings: Settings | None = None) -> ConnectionConfig:
    """Create and return email configuration for FastAPI-Mail.

    Returns:
        ConnectionConfig: Configured email connection settings.
    """

    settings = settings or get_settings()
    return ConnectionConfig(
        MAIL_USERNAME=settings.SMTP_USER,
        MAIL_PASSWORD=settings.SMTP_PASSWORD,
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_PORT=settings.SMTP_PORT,
        MAIL_SERVER=settings.SMTP_HOST,
        MAIL_STARTTLS=True,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=True,
    )

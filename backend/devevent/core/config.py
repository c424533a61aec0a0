"""
Application configuration using pydantic-settings.
All config is loaded from environment variables with sensible defaults.

DATABASE_URL has no default on purpose: the connection manager reports a
ConfigurationError the first time a handler needs the database.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "DevEvent API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False

    # Redis (event list cache)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CACHE_TTL: int = 300
    REDIS_ENABLED: bool = True

    # Media storage (S3 compatible)
    MEDIA_BUCKET: Optional[str] = None
    MEDIA_REGION: str = "us-east-1"
    MEDIA_ENDPOINT_URL: Optional[str] = None
    MEDIA_ACCESS_KEY_ID: Optional[str] = None
    MEDIA_SECRET_ACCESS_KEY: Optional[str] = None
    MEDIA_PUBLIC_BASE_URL: Optional[str] = None
    MEDIA_FOLDER: str = "DevEvent"

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()

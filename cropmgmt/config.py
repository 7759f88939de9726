"""
Application settings.

Values are read from environment variables (and an optional ``.env`` file)
through pydantic-settings. Import ``settings`` for the process-wide instance.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API
    PROJECT_NAME: str = "crop-management"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api/v1"

    # Database
    DATABASE_URL: str = "sqlite:///./cropmgmt.db"

    # Security
    # WARNING: override JWT_SECRET in every deployed environment
    JWT_SECRET: str = "change-this-to-a-long-random-secret-of-at-least-64-bytes-for-hs512-signing"
    JWT_ALGORITHM: str = "HS512"
    JWT_ISSUER: str = "crop-management"
    JWT_VALID_DURATION: int = 3600  # seconds
    JWT_REFRESHABLE_DURATION: int = 36000  # seconds
    BCRYPT_ROUNDS: int = 12

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost", "http://localhost:3000", "http://localhost:5173"]

    # Dashboard
    LOW_STOCK_THRESHOLD: int = 5
    EXPIRING_LOT_DAYS: int = 30
    LOW_STOCK_ALERT_LIMIT: int = 100

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

"""
Application configuration using environment variables.
"""
import os
import secrets
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


_GENERATED_SECRET = secrets.token_urlsafe(32)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Built once per process and handed to components through
    ``Depends(get_settings)``; instances are frozen.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    # Application
    app_name: str = "FoodDiscover API"
    debug: bool = False
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 5000

    # Security
    secret_key: str = os.getenv("SECRET_KEY", _GENERATED_SECRET)
    algorithm: str = "HS256"
    access_token_expire_days: int = 7
    bcrypt_rounds: int = 12

    # Database
    database_url: str = "sqlite:///./fooddiscover.db"

    # Uploads
    upload_dir: str = "./uploads"
    uploads_url_prefix: str = "/uploads"
    max_upload_size: int = 5 * 1024 * 1024  # 5MB per file
    max_upload_files: int = 5
    allowed_image_types: List[str] = ["image/jpeg", "image/png", "image/webp"]

    # CORS
    cors_origins: List[str] = [
        "http://localhost:5000",
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Rate limiting
    register_rate_limit: str = "5/minute"
    login_rate_limit: str = "10/minute"
    refresh_rate_limit: str = "20/minute"
    rate_limit_enabled: bool = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    if settings.environment == "production" and settings.secret_key == _GENERATED_SECRET:
        raise ValueError(
            "SECRET_KEY must be set in production! "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
        )
    return settings

"""
Application configuration using Pydantic settings.

This module contains all configuration settings for the application,
loaded from environment variables with sensible defaults.
"""

import os
import secrets
from typing import List, Optional, Union

from pydantic import AliasChoices, Field, field_validator, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden with environment variables.
    """

    # API Configuration
    PROJECT_NAME: str = "Detection Dashboard API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    DEBUG: bool = False

    # Session tokens
    SECRET_KEY: str = Field(
        default_factory=lambda: os.getenv("NEXTAUTH_SECRET") or secrets.token_urlsafe(32),
        description="Secret key for signing session tokens. MUST be set via SECRET_KEY in production!"
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day

    # CORS Configuration
    # Note: Using Union[str, List] to avoid pydantic-settings JSON parsing of plain strings
    BACKEND_CORS_ORIGINS: Union[str, List[str]] = "http://localhost:3000"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(
        cls, v: Union[str, List[str]]
    ) -> List[str]:
        """
        Parse CORS origins from environment variable.

        Supports:
        - Comma-separated string: "http://localhost,http://example.com"
        - Already parsed list: ["http://localhost"]
        - Empty string: returns empty list
        """
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        raise ValueError(f"Invalid CORS origins format: {v}")

    # Database Configuration
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    @field_validator("SQLALCHEMY_DATABASE_URI", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        """Resolve the async database URL."""
        if isinstance(v, str) and v:
            return v

        # DATABASE_URL (Render/Railway/Heroku style)
        database_url = os.getenv("DATABASE_URL")
        if database_url:
            if database_url.startswith("postgres://"):
                database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
            elif database_url.startswith("postgresql://"):
                database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return database_url

        return "sqlite+aiosqlite:///./detection_dashboard.db"

    AUTO_CREATE_TABLES: bool = True

    # External inference service
    DETECTION_API_URL: str = Field(
        default="http://localhost:5000",
        validation_alias=AliasChoices("DETECTION_API_URL", "API_URL", "PYTHON_API_URL"),
    )
    DETECTION_API_CONNECT_TIMEOUT: float = 10.0
    DETECTION_API_READ_TIMEOUT: Optional[float] = None  # inference can be slow
    DETECTION_API_MAX_CONNECTIONS: int = 100

    @field_validator("DETECTION_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # API keys
    API_KEY_DEFAULT_EXPIRY_DAYS: int = 365

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"
    LOGIN_RATE_LIMIT: str = "5/minute"
    SIGNUP_RATE_LIMIT: str = "10/hour"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    # Default admin account (scripts/seed_admin.py)
    FIRST_ADMIN_USERNAME: str = "admin"
    FIRST_ADMIN_EMAIL: str = "admin@example.com"
    FIRST_ADMIN_PASSWORD: str = "admin"

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Create global settings instance
settings = Settings()

"""
Centralized configuration management using pydantic-settings.
This module provides a single source of truth for all application configuration.
"""


import os

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.utils.logger import setup_logger

load_dotenv(override=False)


logger = setup_logger("core_config")

INSECURE_DEFAULT_SECRET = "your-secret-key-change-this-in-production"


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        # Allow override from environment variables
        env_prefix="",
    )

    # ===== Database Configuration =====
    app_database_url: str | None = Field(
        default=None,
        alias="KANBAN_DATABASE_URL",
        description="Application database URL (postgresql+asyncpg:// or sqlite+aiosqlite://)",
    )

    db_schema: str | None = Field(
        default=None,
        alias="KANBAN_DB_SCHEMA",
        description="Optional PostgreSQL schema placed first on the search_path",
    )

    # ===== Token Configuration =====
    secret_key: str = Field(
        default=INSECURE_DEFAULT_SECRET,
        alias="SECRET_KEY",
        description="Secret used to sign access tokens",
    )

    jwt_algorithm: str = Field(
        default="HS256",
        alias="JWT_ALGORITHM",
        description="Signing algorithm for access tokens",
    )

    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
        description="Access token lifetime in minutes (default 30 days)",
    )

    # ===== Board Configuration =====
    default_columns: list[str] = Field(
        default_factory=lambda: ["To Do", "In Progress", "Done"],
        alias="DEFAULT_COLUMNS",
        description="Columns every new project starts with, in order",
    )

    # ===== Realtime Configuration =====
    broadcast_queue_size: int = Field(
        default=256,
        alias="BROADCAST_QUEUE_SIZE",
        description="Maximum undelivered events buffered per realtime subscriber",
    )

    # ===== Server Configuration =====
    server_host: str = Field(
        default="0.0.0.0", alias="SERVER_HOST", description="Server host address"
    )

    server_port: int = Field(
        default=5000, alias="SERVER_PORT", description="Server port number"
    )

    server_workers: int = Field(
        default=1,
        alias="SERVER_WORKERS",
        description="Number of uvicorn workers (realtime topics are per process)",
    )

    # ===== CORS Configuration =====
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",  # Vite dev server default port
            "http://localhost:3000",  # Alternative dev port
            "http://127.0.0.1:5173",  # Local IP variant
        ],
        alias="CORS_ALLOW_ORIGINS",
        description="CORS allowed origins",
    )

    cors_allow_credentials: bool = Field(
        default=True,
        alias="CORS_ALLOW_CREDENTIALS",
        description="Whether to allow credentials in CORS requests",
    )

    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE"],
        alias="CORS_ALLOW_METHODS",
        description="CORS allowed methods",
    )

    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_HEADERS",
        description="CORS allowed headers",
    )

    # User-facing hint for database connection errors
    db_unavailable_hint: str = os.getenv(
        "DB_UNAVAILABLE_HINT",
        "Database connection failed. The server may be offline or network connectivity is down.",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings and log warnings for missing critical configurations."""

        if not self.app_database_url:
            logger.warning("KANBAN_DATABASE_URL environment variable not set.")

        if self.secret_key == INSECURE_DEFAULT_SECRET:
            logger.warning("SECRET_KEY not set, using the insecure development key.")

        if not self.default_columns:
            raise ValueError("DEFAULT_COLUMNS must name at least one column")

        logger.debug(f"Default project columns: {self.default_columns}")

        return self

    @property
    def is_sqlite(self) -> bool:
        return bool(self.app_database_url) and self.app_database_url.startswith(
            "sqlite"
        )


# Global settings instance
settings = Settings()

"""Application configuration with validation."""

from enum import Enum
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class PersistenceMode(str, Enum):
    """How the store makes committed writes durable.

    ENGINE talks to the database engine directly (SQLite file or PostgreSQL).
    SNAPSHOT keeps the whole database in memory and writes a full image to
    ``snapshot_path`` after every mutating call.
    """
    ENGINE = "engine"
    SNAPSHOT = "snapshot"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every field can be overridden by the upper-cased environment variable
    of the same name (e.g. ``PERSISTENCE_MODE=snapshot``).
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Bind address for uvicorn")
    port: int = Field(default=3001, description="Bind port for uvicorn")

    # Persistence
    persistence_mode: PersistenceMode = Field(
        default=PersistenceMode.ENGINE,
        description="Durability strategy: 'engine' or 'snapshot'"
    )
    database_url: str = Field(
        default="sqlite:///./giststore.db",
        description="Database connection URL (engine mode)"
    )
    snapshot_path: str = Field(
        default="./data/giststore.sqlite",
        description="Path of the database image file (snapshot mode)"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(
        default=5,
        description="Number of persistent database connections"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed during traffic bursts"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection from the pool before raising"
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Seconds before a connection is recycled (prevents stale connections)"
    )
    operation_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for waiting on the writer lock or a busy database"
    )

    # Pagination
    default_per_page: int = Field(default=30, ge=1, description="Commits per page when not given")
    default_file_versions_limit: int = Field(
        default=10, ge=1, description="File versions per page when not given"
    )
    max_page_size: int = Field(default=100, ge=1, description="Largest accepted page size")

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in ('json', 'text'):
            raise ValueError("Invalid log format. Must be 'json' or 'text'")
        return v_lower

    def is_postgresql(self) -> bool:
        """Check if the configured engine URL is PostgreSQL."""
        return self.database_url.startswith("postgresql")

    def production_warnings(self) -> list[str]:
        """Settings that work but are a poor fit for production."""
        warnings: list[str] = []
        if self.environment != Environment.PRODUCTION:
            return warnings
        if self.persistence_mode == PersistenceMode.SNAPSHOT:
            warnings.append(
                "PERSISTENCE_MODE=snapshot rewrites the whole database image on every write."
            )
        elif self.database_url.startswith("sqlite"):
            warnings.append("DATABASE_URL points at SQLite; consider PostgreSQL for production.")
        return warnings

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        # Allow reading from environment variables with different case
        case_sensitive = False


def get_settings() -> Settings:
    """Load settings from the environment."""
    return Settings()

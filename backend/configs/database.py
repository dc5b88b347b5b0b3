"""
Database configuration settings.

Manages PostgreSQL (pgvector) connection parameters for SQLAlchemy.
Supports connection pooling and async operations.

Dependencies: pydantic, pydantic_settings, sqlalchemy
System role: Database connection configuration for the embedding index
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict
from sqlalchemy.engine import URL

from backend.configs.base import BaseSettings


class DatabaseSettings(BaseSettings):
    """PostgreSQL database configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="POSTGRES_",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL user")
    password: str = Field(default="postgres", description="PostgreSQL password")
    db: str = Field(default="gemcraft", description="PostgreSQL database name")

    pool_size: int = Field(default=10, description="Connection pool size")
    max_overflow: int = Field(default=20, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Connection pool timeout in seconds")
    echo_sql: bool = Field(default=False, description="Echo SQL statements to logs")

    sslmode: str = Field(default="require", description="SSL mode for managed Postgres")

    @property
    def async_database_url(self) -> URL:
        """
        Construct async PostgreSQL connection URL.

        Credentials are escaped by SQLAlchemy; asyncpg takes the 'ssl' query
        parameter instead of 'sslmode'.

        Returns:
            URL: SQLAlchemy async-compatible database URL
        """
        query = {"ssl": "require"} if self.sslmode == "require" else {}
        return URL.create(
            drivername="postgresql+asyncpg",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.db,
            query=query,
        )

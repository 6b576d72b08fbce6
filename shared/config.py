"""
Shared configuration management for the Task List access layer.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="TASKS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local", description="Deployment environment")
    log_level: str = Field(default="info", description="Log level")

    # Service
    service_name: str = Field(default="tasks", description="Logger and metrics namespace")
    host: str = "0.0.0.0"
    port: int = 3000

    # Persistence
    storage_backend: str = Field(default="memory", description="memory or postgres")
    postgres_dsn: str = Field(default="postgresql://localhost:5432/tasks")

    # Response cache
    cache_backend: str = Field(default="redis", description="redis or memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_list_ttl_seconds: int = Field(default=30, ge=1)
    cache_item_ttl_seconds: int = Field(default=60, ge=1)

    # Security
    jwt_secret: Optional[str] = Field(default=None, description="Credential signing secret")
    jwt_algorithm: str = Field(default="HS256")
    jwt_lifetime_seconds: int = Field(default=30 * 24 * 3600, ge=1)


def get_config(**overrides) -> BaseConfig:
    """Get configuration, with explicit overrides taking precedence over the environment."""
    return BaseConfig(**overrides)

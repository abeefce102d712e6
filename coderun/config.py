"""Centralized configuration management using Pydantic Settings.

This module provides typed configuration for all application settings,
loaded from environment variables with sensible defaults.

Usage:
    from coderun.config import get_settings
    settings = get_settings()
    image = settings.execution.image
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_bool(v):
    if isinstance(v, str):
        return v.lower() in ("1", "true", "yes")
    return bool(v)


class ExecutionSettings(BaseSettings):
    """Compile-and-run task policy."""

    model_config = SettingsConfigDict(env_prefix="EXEC_", extra="ignore")

    image: str = Field(default="gcc-compiler:latest", description="Toolchain container image")
    timeout: str = Field(default="20s", description="Task timeout as a duration string")
    cpus: str = Field(default="1", description="CPU limit per task")
    memory: str = Field(default="1000m", description="Memory limit per task")
    debug_trace: bool = Field(
        default=False,
        description="Dump the valgrind trace instead of running the program",
    )
    result_timeout_sec: float = Field(
        default=60.0, description="How long a request waits for its job to finish"
    )
    disconnect_poll_sec: float = Field(
        default=0.5, description="Interval for checking client disconnects"
    )

    @field_validator("debug_trace", mode="before")
    @classmethod
    def parse_debug_trace(cls, v):
        return _parse_bool(v)


class DockerSettings(BaseSettings):
    """Docker engine configuration."""

    model_config = SettingsConfigDict(env_prefix="DOCKER_", extra="ignore")

    binary: str = Field(default="docker", description="Docker CLI executable")
    network: str = Field(default="none", description="Container network mode")
    pids_limit: int = Field(default=64, description="Max processes per container")
    grace_sec: float = Field(default=5.0, description="Extra time allowed for container startup")
    max_output_bytes: int = Field(
        default=1_000_000, description="Max bytes of task output read back from the container"
    )
    max_file_bytes: int = Field(
        default=64 * 1024 * 1024, description="Per-file write limit inside the container (ulimit fsize)"
    )


class RedisSettings(BaseSettings):
    """Redis connection configuration."""

    model_config = SettingsConfigDict(env_prefix="REDIS_", extra="ignore")

    host: str = Field(default="redis", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: str = Field(default="", description="Redis password")
    max_connections: int = Field(default=50, description="Maximum pool connections")
    pool_timeout_sec: float = Field(default=5.0, description="Pool timeout in seconds")
    socket_timeout: float = Field(default=5.0, description="Socket timeout in seconds")
    socket_connect_timeout: float = Field(default=5.0, description="Socket connect timeout in seconds")


class CorsSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    origins_raw: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )
    origins_regex: str = Field(
        default="",
        validation_alias="CORS_ORIGINS_REGEX",
        description="Regex pattern for origins",
    )

    @property
    def origins(self) -> list[str]:
        """Parse comma-separated origins into list."""
        return [o.strip() for o in self.origins_raw.split(",") if o.strip()]

    @property
    def allow_credentials(self) -> bool:
        """Credentials not allowed with wildcard origins."""
        return self.origins != ["*"] and not self.origins_regex


class DebugSettings(BaseSettings):
    """Debug flags configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    request: bool = Field(default=False, alias="request_debug")

    @field_validator("*", mode="before")
    @classmethod
    def parse_bool(cls, v):
        return _parse_bool(v)


class FeatureSettings(BaseSettings):
    """Feature flags configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    job_events: bool = Field(default=False, alias="enable_job_events")

    @field_validator("*", mode="before")
    @classmethod
    def parse_bool(cls, v):
        return _parse_bool(v)


class Settings:
    """Main application settings combining all configuration sections.

    This is not a BaseSettings subclass to avoid env var conflicts.
    Each subsetting is loaded independently with its own prefix.
    """

    def __init__(self) -> None:
        self.execution = ExecutionSettings()
        self.docker = DockerSettings()
        self.redis = RedisSettings()
        self.cors = CorsSettings()
        self.debug = DebugSettings()
        self.features = FeatureSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance (singleton pattern)."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear cached settings (useful for testing)."""
    get_settings.cache_clear()

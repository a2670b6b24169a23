"""
Settings for correlay services.

All values come from environment variables (or a local .env file).
Use get_settings() rather than instantiating Settings directly so that the
environment is only read once per process.
"""

import functools
import os
import socket
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DispatchMode = Literal["inline", "pubsub", "stream"]


def default_consumer_name() -> str:
    """Consumer name unique to this host and process."""
    return f"correlation-{socket.gethostname()}-{os.getpid()}"


class Settings(BaseSettings):
    """
    Process-wide configuration.

    Field names match the environment variable names.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    REDIS_URL: str = "redis://localhost:6379/0"

    # Records
    RECORD_TTL_SECONDS: int = Field(default=300, gt=0)
    KEY_PREFIX: str = "correlation:record:"

    # Dispatch
    DISPATCH_MODE: DispatchMode = "pubsub"
    DISPATCH_CHANNEL: str = "correlation:dispatch"
    STREAM_GROUP: str = "correlation-workers"
    STREAM_MAX_LEN: int = Field(default=100000, gt=0)

    # Worker
    WORKER_CONCURRENCY: int = Field(default=4, gt=0)
    WORKER_BLOCK_MS: int = Field(default=1000, gt=0)
    WORKER_CONSUMER_NAME: str = Field(default_factory=default_consumer_name)
    RECLAIM_INTERVAL_SEC: int = Field(default=60, gt=0)
    RECLAIM_IDLE_MS: int = Field(default=60000, ge=0)

    PROCESSOR: str = "echo"

    # HTTP API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = Field(default=8000, gt=0, lt=65536)

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @field_validator("DISPATCH_CHANNEL", "STREAM_GROUP", "PROCESSOR")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()


@functools.lru_cache()
def get_settings() -> Settings:
    """
    Get settings (cached).

    Call get_settings.cache_clear() after changing the environment in tests.
    """
    return Settings()

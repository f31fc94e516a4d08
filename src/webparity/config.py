from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Config(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    cache_path: Path = Field(alias="cachePath")
    cache_duration: int = Field(default=86_400_000, alias="cacheDuration")
    max_concurrent_handles: int = Field(default=50, alias="maxConcurrentHandles")
    handle_wait_interval_ms: int = Field(default=50, alias="handleWaitIntervalMs")
    retry_delay_ms: int = Field(default=10_000, alias="retryDelayMs")
    max_retries: int = Field(default=3, alias="maxRetries")

    timeout: float = 30.0
    max_connections: int = 40
    concurrency: int = 4
    verbose: bool = False

    @model_validator(mode="before")
    @classmethod
    def apply_env_defaults(cls, data: object) -> object:
        load_dotenv(override=False)
        values = dict(data) if isinstance(data, dict) else {}

        env_map = {
            "cache_path": ("cachePath", "WEBPARITY_CACHE_PATH"),
            "cache_duration": ("cacheDuration", "WEBPARITY_CACHE_DURATION"),
            "max_concurrent_handles": ("maxConcurrentHandles", "WEBPARITY_MAX_CONCURRENT_HANDLES"),
            "handle_wait_interval_ms": ("handleWaitIntervalMs", "WEBPARITY_HANDLE_WAIT_INTERVAL_MS"),
            "retry_delay_ms": ("retryDelayMs", "WEBPARITY_RETRY_DELAY_MS"),
            "max_retries": ("maxRetries", "WEBPARITY_MAX_RETRIES"),
            "timeout": (None, "WEBPARITY_TIMEOUT"),
            "max_connections": (None, "WEBPARITY_MAX_CONNECTIONS"),
            "concurrency": (None, "WEBPARITY_CONCURRENCY"),
        }
        for field_name, (alias, env_name) in env_map.items():
            given = values.get(field_name)
            if given is None and alias is not None:
                given = values.get(alias)
            if given is None:
                env_value = os.getenv(env_name)
                if env_value not in (None, ""):
                    values[field_name] = env_value
        return values

    @field_validator("cache_path", mode="before")
    @classmethod
    def expand_cache_path(cls, value: str | Path) -> Path:
        if value in (None, ""):
            raise ValueError("cache_path is required")
        return Path(value).expanduser()

    @field_validator("max_concurrent_handles", "max_retries", "max_connections", "concurrency")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("cache_duration", "handle_wait_interval_ms", "retry_delay_ms")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be > 0")
        return value

    @property
    def ttl_seconds(self) -> float:
        return self.cache_duration / 1000

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000

    @property
    def handle_wait_interval_seconds(self) -> float:
        return self.handle_wait_interval_ms / 1000

"""
Configuration settings for the Cottontail DB client.

Uses Pydantic Settings to load environment variables for the server address,
transport options, batched-write flow control, and logging.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Server
    host: str = Field("localhost", alias="COTTONTAIL_HOST")
    port: int = Field(1865, alias="COTTONTAIL_PORT")
    plaintext: bool = Field(True, alias="COTTONTAIL_PLAINTEXT")
    max_message_bytes: int = Field(16 * 1024 * 1024, alias="COTTONTAIL_MAX_MESSAGE_BYTES")
    connect_timeout_seconds: float = Field(10.0, alias="COTTONTAIL_CONNECT_TIMEOUT")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Batched writes
    batch_max_in_flight: int = Field(1000, alias="BATCH_MAX_IN_FLIGHT", gt=0)
    batch_wait_timeout_seconds: Optional[float] = Field(None, alias="BATCH_WAIT_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]

"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    # Relay behaviour
    report_relay_errors: bool = Field(
        default=False,
        description="If true, dropped events are reported back to the sender as an `error` event.",
    )
    notify_peer_on_disconnect: bool = Field(
        default=False,
        description="If true, the other party of a call interrupted by a disconnect or re-join receives `call-ended`.",
    )
    buffer_ice_while_ringing: bool = Field(
        default=True,
        description="Hold caller ICE candidates until the callee accepts and the offer is relayed.",
    )
    max_buffered_candidates: int = Field(default=64, ge=0)

    # Transport
    outbound_queue_size: int = Field(
        default=256,
        ge=1,
        description="Per-connection outbox capacity; messages beyond it are dropped.",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()

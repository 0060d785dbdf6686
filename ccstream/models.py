"""Pydantic configuration models for ccStream.

Provides validated data models for type safety and runtime validation.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ServerConfig(BaseModel):
    """HTTP gateway configuration."""

    host: str = Field(default="0.0.0.0", description="Interface to bind")  # nosec B104
    port: int = Field(default=5000, ge=0, le=65535, description="HTTP port")
    cors_enabled: bool = Field(
        default=True,
        description="Send permissive CORS headers on every response",
    )


class EngineConfig(BaseModel):
    """Swarm engine configuration."""

    save_path: str = Field(
        default=".ccstream/cache",
        description="Directory where swarm pieces are cached",
    )
    listen_interfaces: str = Field(
        default="0.0.0.0:6881",
        description="libtorrent listen_interfaces setting",
    )
    join_timeout: float = Field(
        default=120.0,
        gt=0.0,
        le=3600.0,
        description="Seconds to wait for swarm metadata before failing a join",
    )
    piece_poll_interval: float = Field(
        default=0.1,
        gt=0.0,
        le=10.0,
        description="Seconds between piece availability checks",
    )
    read_timeout: float = Field(
        default=60.0,
        gt=0.0,
        le=3600.0,
        description="Seconds to wait for a single piece before failing a read",
    )


class CatalogConfig(BaseModel):
    """File catalog configuration."""

    max_archive_bytes: int = Field(
        default=256 * 1024 * 1024,
        ge=1,
        description="Largest ZIP container buffered for expansion",
    )


class StreamingConfig(BaseModel):
    """Range streaming configuration."""

    default_chunk_size: int = Field(
        default=1_000_000,
        ge=1,
        description="Bytes served when the Range header omits its end",
    )
    read_chunk_size: int = Field(
        default=64 * 1024,
        ge=1024,
        le=16 * 1024 * 1024,
        description="Size of chunks pulled from the content source",
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Emit JSON log lines instead of rich console output",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v


class Config(BaseModel):
    """Main configuration model."""

    server: ServerConfig = Field(
        default_factory=ServerConfig,
        description="HTTP gateway configuration",
    )
    engine: EngineConfig = Field(
        default_factory=EngineConfig,
        description="Swarm engine configuration",
    )
    catalog: CatalogConfig = Field(
        default_factory=CatalogConfig,
        description="Catalog configuration",
    )
    streaming: StreamingConfig = Field(
        default_factory=StreamingConfig,
        description="Streaming configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )

"""
Configuration management for ResourceDB Server.

All configuration is done via environment variables - no config files inside containers.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - The store core reads none of these; only the server wires them in

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Document new settings in the owning class docstring
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class StoreBackend(Enum):
    """Supported store backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class HttpConfig:
    """HTTP server configuration.

    Attributes:
        host: Address to bind
        port: Port to listen on
        cors_origins: Origins allowed by CORS ("*" allows all)
        request_timeout_ms: Default per-request deadline
        shutdown_timeout_seconds: Grace period for in-flight requests on shutdown
    """

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: tuple[str, ...] = ("*",)
    request_timeout_ms: int = 30000
    shutdown_timeout_seconds: int = 10

    @classmethod
    def from_env(cls) -> HttpConfig:
        """Load configuration from environment variables."""
        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            cors_origins=_split_list(os.getenv("HTTP_CORS_ORIGINS", "*")),
            request_timeout_ms=int(os.getenv("REQUEST_TIMEOUT_MS", "30000")),
            shutdown_timeout_seconds=int(os.getenv("SHUTDOWN_TIMEOUT_SECONDS", "10")),
        )


@dataclass(frozen=True)
class StoreConfig:
    """Resource store configuration.

    Attributes:
        backend: Which store backend to use
        sqlite_path: Database file for the SQLite backend
        sqlite_busy_timeout_ms: SQLite busy timeout in milliseconds
        sqlite_wal_mode: SQLite WAL journal mode enabled
        list_check_interval: Entities copied between deadline checks in list()
        required_fields: Attributes every payload must carry (empty = accept any)
    """

    backend: StoreBackend = StoreBackend.MEMORY
    sqlite_path: str = "resources.db"
    sqlite_busy_timeout_ms: int = 5000
    sqlite_wal_mode: bool = True
    list_check_interval: int = 1024
    required_fields: tuple[str, ...] = ()

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables."""
        backend_str = os.getenv("STORE_BACKEND", "memory").lower()
        try:
            backend = StoreBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid STORE_BACKEND '{backend_str}'. Must be one of: memory, sqlite"
            )

        return cls(
            backend=backend,
            sqlite_path=os.getenv("SQLITE_PATH", "resources.db"),
            sqlite_busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
            sqlite_wal_mode=os.getenv("SQLITE_WAL_MODE", "true").lower() == "true",
            list_check_interval=int(os.getenv("LIST_CHECK_INTERVAL", "1024")),
            required_fields=_split_list(os.getenv("REQUIRED_FIELDS", "")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class ServerConfig:
    """Complete server configuration.

    Attributes:
        http: HTTP server configuration
        store: Store configuration
        observability: Logging configuration
    """

    http: HttpConfig = field(default_factory=HttpConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Returns:
            ServerConfig with all sections populated from environment.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        config = cls(
            http=HttpConfig.from_env(),
            store=StoreConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not 0 < self.http.port < 65536:
            raise ValueError(f"HTTP_PORT must be between 1 and 65535, got {self.http.port}")
        if self.http.request_timeout_ms <= 0:
            raise ValueError("REQUEST_TIMEOUT_MS must be positive")
        if self.http.shutdown_timeout_seconds < 0:
            raise ValueError("SHUTDOWN_TIMEOUT_SECONDS must not be negative")

        if self.store.list_check_interval <= 0:
            raise ValueError("LIST_CHECK_INTERVAL must be positive")
        if self.store.backend == StoreBackend.SQLITE and not self.store.sqlite_path:
            raise ValueError("SQLITE_PATH is required when STORE_BACKEND=sqlite")

        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "Server configuration loaded",
            extra={
                "http_bind": f"{self.http.host}:{self.http.port}",
                "cors_origins": list(self.http.cors_origins),
                "request_timeout_ms": self.http.request_timeout_ms,
                "store_backend": self.store.backend.value,
                "sqlite_path": self.store.sqlite_path
                if self.store.backend == StoreBackend.SQLITE
                else None,
                "required_fields": list(self.store.required_fields),
                "log_level": self.observability.log_level,
            },
        )

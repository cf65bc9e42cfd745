"""
Configuration management for PharmaLedger.

All configuration is done via environment variables - no config files.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Production deployments should set an explicit PHARMALEDGER_DB_PATH

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Never change the meaning of an existing variable
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "text")
SYNCHRONOUS_LEVELS = ("OFF", "NORMAL", "FULL", "EXTRA")


@dataclass(frozen=True)
class StorageConfig:
    """Local storage configuration.

    Attributes:
        db_path: Path to the SQLite store file (":memory:" for a throwaway store)
        wal_mode: SQLite WAL journal mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
        synchronous: SQLite synchronous level (OFF, NORMAL, FULL, EXTRA)
    """

    db_path: str = "./data/pharmaledger.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000
    synchronous: str = "FULL"

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            db_path=os.getenv("PHARMALEDGER_DB_PATH", "./data/pharmaledger.db"),
            wal_mode=os.getenv("SQLITE_WAL_MODE", "true").lower() == "true",
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
            synchronous=os.getenv("SQLITE_SYNCHRONOUS", "FULL"),
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

    HTTP binding (host, port, CORS) is configured separately through
    pharmaledger.api.config.Settings.

    Attributes:
        storage: Local storage configuration
        observability: Logging configuration
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Returns:
            ServerConfig with all sections populated from environment.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            storage=StorageConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.storage.db_path:
            raise ValueError("PHARMALEDGER_DB_PATH must not be empty")
        if self.storage.busy_timeout_ms < 0:
            raise ValueError("SQLITE_BUSY_TIMEOUT_MS must be non-negative")
        if self.storage.synchronous.upper() not in SYNCHRONOUS_LEVELS:
            raise ValueError(
                f"Invalid SQLITE_SYNCHRONOUS '{self.storage.synchronous}'. "
                f"Must be one of: {', '.join(SYNCHRONOUS_LEVELS)}"
            )
        if self.observability.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid LOG_LEVEL '{self.observability.log_level}'. "
                f"Must be one of: {', '.join(LOG_LEVELS)}"
            )
        if self.observability.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

        if self.storage.db_path != ":memory:":
            parent = os.path.dirname(os.path.abspath(self.storage.db_path))
            if not os.path.exists(parent):
                logger.warning(
                    f"Store directory does not exist: {parent}. It will be created on open."
                )

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "Server configuration loaded",
            extra={
                "db_path": self.storage.db_path,
                "wal_mode": self.storage.wal_mode,
                "synchronous": self.storage.synchronous,
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
            },
        )

"""
Configuration management for the Bubbly store tooling.

All configuration is done via environment variables; command-line flags of
the schema CLI override them. This module provides typed configuration
classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Invalid values fail at load time, never mid-diff

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Keep environment variable names stable, CI pipelines set them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

import json_log_formatter

logger = logging.getLogger(__name__)

LOG_FORMATS = ("text", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class DiffConfig:
    """Schema diff configuration.

    Attributes:
        include_internal_tables: Add the store's internal tables (_resource,
            _event, _schema) to both schemas before diffing
        allow_destructive: Whether plans that delete or retype elements are
            accepted
    """

    include_internal_tables: bool = False
    allow_destructive: bool = True

    @classmethod
    def from_env(cls) -> DiffConfig:
        """Load configuration from environment variables."""
        return cls(
            include_internal_tables=_env_bool("BUBBLY_INCLUDE_INTERNAL_TABLES", "false"),
            allow_destructive=_env_bool("BUBBLY_ALLOW_DESTRUCTIVE", "true"),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class StoreConfig:
    """Complete configuration.

    Attributes:
        diff: Schema diff configuration
        observability: Logging configuration
    """

    diff: DiffConfig = field(default_factory=DiffConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            diff=DiffConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.observability.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid LOG_LEVEL '{self.observability.log_level}'. "
                f"Must be one of: {', '.join(LOG_LEVELS)}"
            )
        if self.observability.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. "
                f"Must be one of: {', '.join(LOG_FORMATS)}"
            )

    def log_config(self) -> None:
        """Log the effective configuration."""
        logger.debug(
            f"Configuration loaded: "
            f"include_internal_tables={self.diff.include_internal_tables}, "
            f"allow_destructive={self.diff.allow_destructive}, "
            f"log_level={self.observability.log_level}, "
            f"log_format={self.observability.log_format}",
            extra={
                "include_internal_tables": self.diff.include_internal_tables,
                "allow_destructive": self.diff.allow_destructive,
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
            },
        )


def setup_logging(config: StoreConfig) -> None:
    """Configure root logging based on configuration.

    The json format writes one JSON object per record, with any ``extra``
    values as top-level keys.
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

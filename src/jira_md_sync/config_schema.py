"""Configuration schema for jira_md_sync.

Pydantic models for the YAML config file, one section per concern. Every
field has a default so an empty or missing config file is valid.

Usage:
    from jira_md_sync.config_schema import build_config, to_fallbacks

    unified = build_config(load_hierarchical_config())
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class TicketsConfig(BaseModel):
    """Where ticket Markdown files live.

    Attributes:
        directory: Working directory holding editable ticket files.
        cache_directory: Pristine copies of the last fetched tickets,
            compared against ``directory`` to find local changes.
    """

    directory: str = Field(default="tickets", description="Ticket directory")
    cache_directory: str = Field(
        default=".jira_md/cache", description="Fetched ticket cache directory"
    )

    model_config = {"frozen": True}


class ConverterConfig(BaseModel):
    escape_macros: bool = Field(
        default=False,
        description="Escape { and } in plain text when converting to wiki markup",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Maximum files converted concurrently (1-64)",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


class UnifiedConfig(BaseModel):
    """Top-level configuration; ``UnifiedConfig()`` is always valid."""

    tickets: TicketsConfig = Field(default_factory=TicketsConfig)
    converter: ConverterConfig = Field(default_factory=ConverterConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict | None) -> UnifiedConfig:
    """Validate the merged dict from ``load_hierarchical_config()``.

    Missing sections get defaults.

    Raises:
        pydantic.ValidationError: If a value is out of range or mistyped.
    """
    if not raw_data:
        return UnifiedConfig()
    return UnifiedConfig(**raw_data)


def to_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten a ``UnifiedConfig`` into the fallback dict used by ``load_config``."""
    return {
        "directory": unified.tickets.directory,
        "cache_directory": unified.tickets.cache_directory,
        "escape_macros": unified.converter.escape_macros,
        "max_workers": unified.converter.max_workers,
        "debug": unified.logging.level.upper() == "DEBUG",
        "log_file": unified.logging.file,
    }

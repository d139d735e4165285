"""Runtime configuration for the jira-md-sync command line tool.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    JIRA_MD_DIRECTORY: Ticket directory (default: tickets)
    JIRA_MD_CACHE_DIRECTORY: Fetched ticket cache (default: .jira_md/cache)
    JIRA_MD_ESCAPE_MACROS: Escape braces when converting to wiki markup
    JIRA_MD_MAX_WORKERS: Max files converted concurrently (default: 4)
    JIRA_MD_DEBUG: Enable debug logging
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY = "tickets"
DEFAULT_CACHE_DIRECTORY = ".jira_md/cache"
DEFAULT_MAX_WORKERS = 4


@dataclass
class Config:
    directory: str = DEFAULT_DIRECTORY
    cache_directory: str = DEFAULT_CACHE_DIRECTORY
    escape_macros: bool = False
    max_workers: int = DEFAULT_MAX_WORKERS
    debug: bool = False
    log_file: str | None = None


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Strips surrounding whitespace from the directory settings.

    Raises:
        ValueError: If a directory is empty, the cache directory equals the
            ticket directory, or max_workers is out of range.
    """
    config.directory = config.directory.strip()
    config.cache_directory = config.cache_directory.strip()

    if not config.directory:
        raise ValueError(
            "Ticket directory cannot be empty. Set JIRA_MD_DIRECTORY or "
            "tickets.directory in config.yml."
        )
    if not config.cache_directory:
        raise ValueError(
            "Cache directory cannot be empty. Set JIRA_MD_CACHE_DIRECTORY or "
            "tickets.cache_directory in config.yml."
        )
    if os.path.abspath(config.directory) == os.path.abspath(config.cache_directory):
        raise ValueError(
            f"Cache directory '{config.cache_directory}' must differ from the "
            "ticket directory"
        )
    if not (1 <= config.max_workers <= 64):
        raise ValueError(
            f"Invalid max_workers {config.max_workers}: must be between 1 and 64"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_config(
    directory: str | None = None,
    cache_directory: str | None = None,
    escape_macros: bool = False,
    debug: bool = False,
    log_file: str | None = None,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` first so .env
    values are visible through ``os.getenv()``.

    Args:
        directory: Ticket directory override.
        cache_directory: Cache directory override.
        escape_macros: Escape braces (CLI flag).
        debug: Enable debug logging (CLI flag).
        log_file: Log file path (CLI option).
        yaml_fallbacks: Flattened YAML values, see ``config_schema.to_fallbacks``.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If an environment value is malformed or the result is invalid.
    """
    fb = yaml_fallbacks or {}

    final_directory = (
        directory
        or os.getenv("JIRA_MD_DIRECTORY")
        or fb.get("directory")
        or DEFAULT_DIRECTORY
    )
    final_cache = (
        cache_directory
        or os.getenv("JIRA_MD_CACHE_DIRECTORY")
        or fb.get("cache_directory")
        or DEFAULT_CACHE_DIRECTORY
    )

    # Boolean flags can only switch a setting on from the command line
    if escape_macros:
        final_escape = True
    else:
        env_escape = _get_bool_env("JIRA_MD_ESCAPE_MACROS")
        if env_escape is not None:
            final_escape = env_escape
        else:
            final_escape = bool(fb.get("escape_macros", False))

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("JIRA_MD_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    max_workers_raw = os.getenv("JIRA_MD_MAX_WORKERS")
    if max_workers_raw is not None:
        try:
            final_max_workers = int(max_workers_raw)
        except ValueError:
            raise ValueError(
                f"Invalid JIRA_MD_MAX_WORKERS '{max_workers_raw}': must be a number between 1 and 64"
            ) from None
    elif "max_workers" in fb:
        final_max_workers = int(fb["max_workers"])
    else:
        final_max_workers = DEFAULT_MAX_WORKERS

    config = Config(
        directory=final_directory,
        cache_directory=final_cache,
        escape_macros=final_escape,
        max_workers=final_max_workers,
        debug=final_debug,
        log_file=log_file or fb.get("log_file"),
    )

    validate_config(config)
    logger.debug("Loaded config: %s", config)
    return config

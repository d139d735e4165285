"""File handler module: encoding-aware read/write, format detection, ticket files.

All sync functions only touch the files they are given.
Async wrappers run them in worker threads via run_sync_limited().
"""

import logging
from pathlib import Path

from charset_normalizer import from_bytes

from .async_utils import run_sync_limited
from .converters.common import detect_format_heuristic
from .ticket import Ticket

logger = logging.getLogger(__name__)

# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = Path(path).read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        logger.debug("Encoding detection failed for %s, assuming utf-8", path)
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write content to a file, creating parent directories as needed.

    Returns:
        Number of bytes written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


# =============================================================================
# Format Detection
# =============================================================================


_EXTENSION_FORMAT_MAP: dict[str, str] = {
    ".md": "markdown",
    ".markdown": "markdown",
    ".wiki": "jirawiki",
    ".jira": "jirawiki",
}


def detect_file_format(path: Path, content: str) -> str:
    """Detect file format from extension, falling back to content heuristic.

    ``.md``/``.markdown`` are Markdown and ``.wiki``/``.jira`` are wiki
    markup; any other extension (``.txt``) is decided from the content.

    Returns:
        Format string: 'markdown' or 'jirawiki'.
    """
    suffix = Path(path).suffix.lower()
    if suffix in _EXTENSION_FORMAT_MAP:
        return _EXTENSION_FORMAT_MAP[suffix]
    return detect_format_heuristic(content)


# =============================================================================
# Ticket Files
# =============================================================================


def save_ticket(ticket: Ticket, directory: Path) -> Ticket:
    """Write a ticket to ``directory/<file_name>``.

    Returns:
        The ticket with ``file_path`` set to the written file.
    """
    path = Path(directory) / ticket.file_name
    count = write_file(path, ticket.to_markdown())
    logger.debug("Saved %s (%d bytes)", path, count)
    return ticket.model_copy(update={"file_path": str(path)})


def load_ticket(path: Path) -> Ticket:
    """Read a ticket file.

    Raises:
        TicketFormatError: If the front matter is malformed.
        OSError: If the file cannot be read.
    """
    content, _ = read_file_with_encoding(Path(path))
    return Ticket.from_markdown(content, file_path=str(path))


# =============================================================================
# Async Wrappers
# =============================================================================


async def read_file_async(path: Path) -> tuple[str, str]:
    """Async wrapper around read_file_with_encoding()."""
    return await run_sync_limited(read_file_with_encoding, Path(path))


async def write_file_async(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Async wrapper around write_file()."""
    return await run_sync_limited(write_file, Path(path), content, encoding)

"""Three-way merge and diff utilities for ticket files.

Uses ``merge3`` for three-way merging and ``difflib`` for unified diffs.

* Merges operate on Markdown, the format users edit locally.
* Conflict markers follow Git convention: ``<<<<<<< LOCAL``, ``=======``,
  ``>>>>>>> REMOTE``.
* ``compare_dirs`` reports which local ticket files differ from the cached
  copies of the last fetch.
"""

import difflib
import logging
from enum import Enum
from pathlib import Path

from merge3 import Merge3
from pydantic import BaseModel

from .file_handler import load_ticket

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    """How a local ticket file relates to its cached copy."""

    NEW = "new"
    DELETED = "deleted"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


class DiffResult(BaseModel):
    """Comparison outcome for one local ticket file.

    Attributes:
        key: Ticket key, None for a ticket that was never pushed.
        file_path: Local file that was compared.
        kind: Kind of change.
        diff_text: Unified diff of the editable fields for modified tickets,
            a one-line summary otherwise.
    """

    key: str | None
    file_path: str
    kind: ChangeKind
    diff_text: str = ""

    model_config = {"frozen": True}

    @property
    def has_diff(self) -> bool:
        return self.kind is not ChangeKind.UNCHANGED


def attempt_merge(
    base_content: str,
    local_content: str,
    remote_content: str,
) -> tuple[str, bool]:
    """Three-way merge of local and remote edits against their common base.

    Args:
        base_content: Ticket file as last fetched.
        local_content: Current local ticket file.
        remote_content: Ticket file rendered from the current server state.

    Returns:
        ``(merged_text, has_conflicts)``; the text holds conflict markers
        when ``has_conflicts`` is True.
    """
    m3 = Merge3(
        base_content.splitlines(True),
        local_content.splitlines(True),
        remote_content.splitlines(True),
    )
    merged_text = "".join(m3.merge_lines(name_a="LOCAL", name_b="REMOTE"))
    has_conflicts = "<<<<<<< LOCAL" in merged_text
    return merged_text, has_conflicts


def generate_diff(
    old_content: str,
    new_content: str,
    label_old: str = "old",
    label_new: str = "new",
) -> str:
    """Unified diff between two strings; empty when they are identical."""
    return "".join(
        difflib.unified_diff(
            old_content.splitlines(True),
            new_content.splitlines(True),
            fromfile=label_old,
            tofile=label_new,
        )
    )


def compare_dirs(local_dir: str | Path, cache_dir: str | Path) -> list[DiffResult]:
    """Compare local ticket files against the cache of the last fetch.

    * ``.<name>.md`` files mark tickets deleted locally.
    * ``<name>.md`` files with no cached copy are new tickets.
    * Other files are modified when their editable fields differ from the
      cached copy; server-owned fields (key, status, reporter, timestamps)
      are ignored.

    Raises:
        TicketFormatError: If a ticket file has malformed front matter.
        OSError: If a file cannot be read.
    """
    local_dir = Path(local_dir)
    cache_dir = Path(cache_dir)
    results: list[DiffResult] = []

    for deleted in sorted(local_dir.glob(".*.md")):
        ticket = load_ticket(deleted)
        results.append(
            DiffResult(
                key=ticket.key,
                file_path=str(deleted),
                kind=ChangeKind.DELETED,
                diff_text=f"Deleted ticket: {ticket.title}",
            )
        )

    for local_file in sorted(local_dir.glob("*.md")):
        if local_file.name.startswith("."):
            continue
        local_ticket = load_ticket(local_file)
        cache_file = cache_dir / local_file.name

        if not cache_file.exists():
            results.append(
                DiffResult(
                    key=local_ticket.key,
                    file_path=str(local_file),
                    kind=ChangeKind.NEW,
                    diff_text=f"New ticket: {local_ticket.title}",
                )
            )
            continue

        cached_ticket = load_ticket(cache_file)
        if not local_ticket.has_editable_changes(cached_ticket):
            results.append(
                DiffResult(
                    key=local_ticket.key,
                    file_path=str(local_file),
                    kind=ChangeKind.UNCHANGED,
                )
            )
            continue

        results.append(
            DiffResult(
                key=local_ticket.key,
                file_path=str(local_file),
                kind=ChangeKind.MODIFIED,
                diff_text=generate_diff(
                    cached_ticket.editable_markdown(),
                    local_ticket.editable_markdown(),
                    label_old=f"a/{local_file.name}",
                    label_new=f"b/{local_file.name}",
                ),
            )
        )

    logger.debug(
        "Compared %s against %s: %d changed of %d",
        local_dir,
        cache_dir,
        sum(1 for r in results if r.has_diff),
        len(results),
    )
    return results

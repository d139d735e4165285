"""Local Markdown representation of a Jira ticket.

A ticket file is a YAML front matter block delimited by ``---`` lines,
a blank line, then the description as Markdown. Both are read and written
with python-frontmatter::

    ---
    key: PROJ-1
    title: Fix the login page
    type: bug
    status: In Progress
    ---

    The login button does nothing.
"""

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

import frontmatter
import yaml
from frontmatter.default_handlers import YAMLHandler
from pydantic import BaseModel, Field, ValidationError, field_validator

from .converters.adf_to_jirawiki import adf_to_markdown
from .converters.jirawiki_to_markdown import to_markdown
from .converters.markdown_to_jirawiki import markdown_to_jirawiki
from .errors import TicketFormatError

logger = logging.getLogger(__name__)

_YAML_HANDLER = YAMLHandler()

# Front matter key -> model field, in output order
_FRONT_MATTER_FIELDS: tuple[tuple[str, str], ...] = (
    ("key", "key"),
    ("parentKey", "parent_key"),
    ("title", "title"),
    ("type", "type"),
    ("status", "status"),
    ("assignee", "assignee"),
    ("reporter", "reporter"),
    ("created_at", "created_at"),
    ("updated_at", "updated_at"),
    ("estimate", "estimate"),
)

# Fields the server owns; local edits to them are never pushed
READONLY_FIELDS = frozenset(
    {"key", "status", "reporter", "created_at", "updated_at"}
)

_SLUG_RE = re.compile(r"[^\w]+")


def _user_name(user: Any) -> str | None:
    if not isinstance(user, Mapping):
        return None
    return user.get("displayName") or user.get("emailAddress") or user.get("name")


class Ticket(BaseModel):
    """A Jira issue as stored in a local Markdown file.

    Attributes:
        key: Issue key (``PROJ-123``); None for a ticket not yet created.
        parent_key: Key of the parent issue, if any.
        type: Lower-case issue type name.
        status: Workflow status name.
        assignee: Assignee display name.
        reporter: Reporter display name.
        created_at: Creation timestamp as reported by the server.
        updated_at: Last update timestamp as reported by the server.
        estimate: Original estimate (``2h``, ``1d``).
        title: Issue summary.
        body: Description as Markdown.
        file_path: File the ticket was read from or saved to.
    """

    key: str | None = None
    parent_key: str | None = None
    type: str | None = None
    status: str | None = None
    assignee: str | None = None
    reporter: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    estimate: str | None = None
    title: str = ""
    body: str = ""
    file_path: str | None = Field(default=None, exclude=True)

    model_config = {"frozen": True}

    @field_validator(
        "key",
        "parent_key",
        "type",
        "status",
        "assignee",
        "reporter",
        "created_at",
        "updated_at",
        "estimate",
        mode="before",
    )
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Any:
        # YAML turns unquoted timestamps and numbers into native types
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if value == "":
            return None
        return value

    @classmethod
    def from_issue(cls, issue: Mapping[str, Any]) -> "Ticket":
        """Build a ticket from a REST API issue payload.

        The description may be wiki markup (API v2) or an ADF document
        (API v3); both are converted to Markdown.
        """
        fields = issue.get("fields") or {}

        description = fields.get("description")
        if isinstance(description, Mapping):
            body = adf_to_markdown(description)
        elif description:
            body = to_markdown(description)
        else:
            body = ""

        issue_type = (fields.get("issuetype") or {}).get("name")
        timetracking = fields.get("timetracking") or {}

        return cls(
            key=issue.get("key"),
            parent_key=(fields.get("parent") or {}).get("key"),
            type=issue_type.lower() if issue_type else None,
            status=(fields.get("status") or {}).get("name"),
            assignee=_user_name(fields.get("assignee")),
            reporter=_user_name(fields.get("reporter")),
            created_at=fields.get("created"),
            updated_at=fields.get("updated"),
            estimate=timetracking.get("originalEstimate"),
            title=fields.get("summary") or "",
            body=body,
        )

    @classmethod
    def from_markdown(cls, text: str, file_path: str | None = None) -> "Ticket":
        """Parse a ticket file.

        Text without front matter becomes the body. When the front matter
        has no title, a leading ``# Title`` line of the body is used.

        Raises:
            TicketFormatError: If the front matter is unterminated, is not
                valid YAML, or holds values of the wrong type.
        """
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        meta, body = _split_front_matter(text, file_path)

        title = meta.get("title")
        if not title and body.startswith("# "):
            first, _, rest = body.partition("\n")
            title = first[2:].strip()
            body = rest.lstrip("\n")

        values: dict[str, Any] = {
            field: meta.get(name) for name, field in _FRONT_MATTER_FIELDS
        }
        values["title"] = "" if title is None else str(title)
        try:
            return cls(**values, body=body, file_path=file_path)
        except ValidationError as e:
            raise TicketFormatError(
                f"Invalid front matter in {file_path or 'ticket'}: {e}"
            ) from e

    def front_matter(self, fields: tuple[str, ...] | None = None) -> dict[str, Any]:
        """Front matter mapping, skipping unset values."""
        meta: dict[str, Any] = {}
        for name, field in _FRONT_MATTER_FIELDS:
            if fields is not None and field not in fields:
                continue
            value = getattr(self, field)
            if value not in (None, ""):
                meta[name] = value
        return meta

    def to_markdown(self) -> str:
        """Render the ticket file content."""
        return _render(self.front_matter(), self.body)

    def editable_markdown(self) -> str:
        """Render only the fields a push would send, with a normalized body.

        The body goes through Markdown -> wiki -> Markdown so that spellings
        Jira cannot tell apart (``*a*`` vs ``**a**``) do not count as edits.
        """
        editable = tuple(
            field for _, field in _FRONT_MATTER_FIELDS if field not in READONLY_FIELDS
        )
        return _render(self.front_matter(editable), normalize_body(self.body))

    def has_editable_changes(self, other: "Ticket") -> bool:
        """True when the tickets differ outside the server-owned fields."""
        return self.editable_markdown() != other.editable_markdown()

    def to_issue_fields(self, escape_macros: bool = False) -> dict[str, str]:
        """Fields for an issue create/update request."""
        return {
            "summary": self.title,
            "description": markdown_to_jirawiki(self.body, escape_macros=escape_macros),
        }

    @property
    def file_name(self) -> str:
        """``<KEY>.md``, or a slug of the title for a ticket without a key."""
        if self.key:
            return f"{self.key}.md"
        slug = _SLUG_RE.sub("_", self.title.lower()).strip("_")
        return f"{slug or 'untitled'}.md"


def has_front_matter(text: str) -> bool:
    """True when the text opens with a YAML front matter block."""
    return _YAML_HANDLER.detect(text)


def normalize_body(body: str) -> str:
    """Round-trip Markdown through wiki markup so equivalent spellings compare equal."""
    if not body.strip():
        return ""
    return to_markdown(markdown_to_jirawiki(body))


def _render(meta: dict[str, Any], body: str) -> str:
    post = frontmatter.Post(body.strip("\n"), **meta)
    return frontmatter.dumps(post, sort_keys=False) + "\n"


def _split_front_matter(
    text: str, file_path: str | None
) -> tuple[dict[str, Any], str]:
    source = file_path or "ticket"
    if not _YAML_HANDLER.detect(text):
        return {}, text

    try:
        raw, body = _YAML_HANDLER.split(text)
    except ValueError as e:
        raise TicketFormatError(
            f"Unterminated front matter in {source}: missing closing '---'"
        ) from e

    try:
        meta = _YAML_HANDLER.load(raw)
    except yaml.YAMLError as e:
        raise TicketFormatError(f"Invalid YAML front matter in {source}: {e}") from e
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise TicketFormatError(
            f"Front matter in {source} must be a mapping, got {type(meta).__name__}"
        )

    logger.debug("Parsed front matter keys: %s", list(meta))
    return meta, body.strip("\n")

"""Typed document tree for Atlassian Document Format (ADF) payloads.

Issue descriptions fetched from the v3 REST API arrive as an ADF JSON tree.
``parse_adf`` turns the decoded JSON into the immutable node classes below,
which ``adf_to_jirawiki.translate`` serializes to wiki markup.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

logger = logging.getLogger(__name__)


class Mark(str, Enum):
    """Inline text formatting marks."""

    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    STRIKE = "strike"
    CODE = "code"


@dataclass(frozen=True)
class Text:
    value: str
    marks: frozenset[Mark] = frozenset()


@dataclass(frozen=True)
class HardBreak:
    pass


@dataclass(frozen=True)
class Rule:
    pass


@dataclass(frozen=True)
class Link:
    href: str
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class Paragraph:
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class Heading:
    level: int
    children: tuple["Node", ...] = ()

    def __post_init__(self):
        if not 1 <= self.level <= 6:
            raise ValueError(f"Heading level must be 1-6, got {self.level}")


@dataclass(frozen=True)
class Item:
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class BulletList:
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class OrderedList:
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class Cell:
    header: bool = False
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class Row:
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class Table:
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class CodeBlock:
    language: str | None = None
    text: str = ""


@dataclass(frozen=True)
class Panel:
    title: str | None = None
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class Blockquote:
    children: tuple["Node", ...] = ()


@dataclass(frozen=True)
class Document:
    children: tuple["Node", ...] = ()


Node = Union[
    Document,
    Paragraph,
    Heading,
    BulletList,
    OrderedList,
    Item,
    Table,
    Row,
    Cell,
    CodeBlock,
    Panel,
    Blockquote,
    Text,
    HardBreak,
    Link,
    Rule,
]


# ADF mark type -> Mark. "link" is handled separately (it carries an href).
_MARKS: dict[str, Mark] = {
    "strong": Mark.BOLD,
    "em": Mark.ITALIC,
    "underline": Mark.UNDERLINE,
    "strike": Mark.STRIKE,
    "code": Mark.CODE,
}

# Inline nodes without a wiki equivalent, degraded to their display text
_DISPLAY_ATTRS: dict[str, tuple[str, ...]] = {
    "mention": ("text", "id"),
    "emoji": ("text", "shortName"),
    "status": ("text",),
    "date": ("timestamp",),
}

_CONTAINERS: dict[str, type] = {
    "paragraph": Paragraph,
    "bulletList": BulletList,
    "orderedList": OrderedList,
    "listItem": Item,
    "table": Table,
    "tableRow": Row,
    "blockquote": Blockquote,
}


def parse_adf(data: Any) -> Document:
    """
    Build a typed document tree from a JSON-decoded ADF value.

    Args:
        data: Decoded ADF document (``{"type": "doc", "content": [...]}``)

    Returns:
        Document root node

    Raises:
        ValueError: If the root is not a mapping of type ``doc``.
    """
    if not isinstance(data, Mapping):
        raise ValueError(
            f"ADF document must be a JSON object, got {type(data).__name__}"
        )
    if data.get("type") != "doc":
        raise ValueError(
            f"ADF root node must have type 'doc', got {data.get('type')!r}"
        )
    return Document(children=_parse_children(data))


def _parse_children(node: Mapping) -> tuple[Node, ...]:
    content = node.get("content") or []
    children: list[Node] = []
    for child in content:
        if not isinstance(child, Mapping):
            logger.warning("Dropping malformed ADF node: %r", child)
            continue
        children.extend(_parse_node(child))
    return tuple(_merge_links(children))


def _merge_links(nodes: list[Node]) -> list[Node]:
    """Join adjacent links to the same href (ADF marks each text run)."""
    merged: list[Node] = []
    for node in nodes:
        prev = merged[-1] if merged else None
        if (
            isinstance(node, Link)
            and isinstance(prev, Link)
            and prev.href == node.href
        ):
            merged[-1] = Link(href=prev.href, children=prev.children + node.children)
        else:
            merged.append(node)
    return merged


def _parse_node(node: Mapping) -> list[Node]:
    node_type = node.get("type")
    attrs = node.get("attrs") or {}

    match node_type:
        case "text":
            return [_parse_text(node)]
        case "hardBreak":
            return [HardBreak()]
        case "rule":
            return [Rule()]
        case "heading":
            level = attrs.get("level", 1)
            if not isinstance(level, int) or not 1 <= level <= 6:
                logger.warning(
                    "ADF heading with invalid level %r rendered as paragraph", level
                )
                return [Paragraph(children=_parse_children(node))]
            return [Heading(level=level, children=_parse_children(node))]
        case "tableHeader" | "tableCell":
            return [
                Cell(header=node_type == "tableHeader", children=_parse_children(node))
            ]
        case "codeBlock":
            text = "".join(
                child.get("text", "")
                for child in node.get("content") or []
                if isinstance(child, Mapping)
            )
            return [CodeBlock(language=attrs.get("language") or None, text=text)]
        case "panel":
            return [Panel(title=None, children=_parse_children(node))]
        case "expand" | "nestedExpand":
            return [Panel(title=attrs.get("title") or None, children=_parse_children(node))]
        case "inlineCard" | "blockCard":
            url = attrs.get("url")
            if not url:
                logger.warning("Dropping ADF %s without url", node_type)
                return []
            return [Link(href=url)]
        case _ if node_type in _CONTAINERS:
            return [_CONTAINERS[node_type](children=_parse_children(node))]
        case _ if node_type in _DISPLAY_ATTRS:
            text = _display_text(node_type, attrs)
            logger.warning("ADF %s node degraded to plain text: %r", node_type, text)
            return [Text(value=text)] if text else []
        case _ if node.get("content"):
            logger.warning(
                "Unsupported ADF container %r flattened into parent", node_type
            )
            return list(_parse_children(node))
        case _:
            logger.warning("Unsupported ADF node %r dropped", node_type)
            return []


def _parse_text(node: Mapping) -> Node:
    marks: set[Mark] = set()
    href = None
    for mark in node.get("marks") or []:
        if not isinstance(mark, Mapping):
            continue
        mark_type = mark.get("type")
        if mark_type == "link":
            href = (mark.get("attrs") or {}).get("href")
        elif mark_type in _MARKS:
            marks.add(_MARKS[mark_type])
        else:
            logger.warning("Unsupported ADF mark %r ignored", mark_type)

    text = Text(value=node.get("text", ""), marks=frozenset(marks))
    if href:
        return Link(href=href, children=(text,))
    return text


def _display_text(node_type: str, attrs: Mapping) -> str:
    for name in _DISPLAY_ATTRS[node_type]:
        value = attrs.get(name)
        if value in (None, ""):
            continue
        if node_type == "date":
            # ADF dates are epoch milliseconds, as a string or number
            try:
                stamp = datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
            except (TypeError, ValueError, OverflowError):
                return str(value)
            return stamp.strftime("%Y-%m-%d")
        return str(value)
    return ""

"""Serialize an ADF document tree to Jira wiki markup."""

import logging
from typing import Any

from .adf_nodes import (
    Blockquote,
    BulletList,
    Cell,
    CodeBlock,
    Document,
    HardBreak,
    Heading,
    Item,
    Link,
    Mark,
    Node,
    OrderedList,
    Panel,
    Paragraph,
    Row,
    Rule,
    Table,
    Text,
    parse_adf,
)
from .jirawiki_to_markdown import to_markdown

logger = logging.getLogger(__name__)

# Innermost first: code is wrapped first, bold ends up outermost
_MARK_WRAPPERS: tuple[tuple[Mark, str, str], ...] = (
    (Mark.CODE, "{{", "}}"),
    (Mark.STRIKE, "-", "-"),
    (Mark.UNDERLINE, "+", "+"),
    (Mark.ITALIC, "_", "_"),
    (Mark.BOLD, "*", "*"),
)


class _Translator:
    """Recursive descent over the tree, writing into one buffer."""

    def __init__(self):
        self._out: list[str] = []

    def render(self, root: Node) -> str:
        self._block(root)
        return "".join(self._out).strip("\n")

    def _write(self, text: str) -> None:
        self._out.append(text)

    def _blocks(self, nodes: tuple[Node, ...]) -> None:
        for node in nodes:
            self._block(node)

    def _nested(self, nodes: tuple[Node, ...]) -> str:
        """Render blocks into a separate buffer and return the text."""
        inner = _Translator()
        inner._blocks(nodes)
        return "".join(inner._out).strip("\n")

    def _block(self, node: Node) -> None:
        match node:
            case Document(children=children):
                self._blocks(children)
            case Paragraph(children=children):
                self._write(self._inline(children) + "\n\n")
            case Heading(level=level, children=children):
                self._write(f"h{level}. {self._inline(children)}\n\n")
            case BulletList() | OrderedList():
                self._list(node, depth=1)
                self._write("\n")
            case Item(children=children):
                self._blocks(children)
            case Table(children=children):
                for row in children:
                    self._row(row)
                self._write("\n")
            case Row():
                self._row(node)
            case Cell(children=children):
                self._write(self._cell_text(children) + "\n\n")
            case CodeBlock(language=language, text=text):
                opener = f"{{code:{language}}}" if language else "{code}"
                self._write(f"{opener}\n{text.rstrip(chr(10))}\n{{code}}\n\n")
            case Panel(title=title, children=children):
                opener = f"{{panel:title={title}}}" if title else "{panel}"
                self._write(f"{opener}\n{self._nested(children)}\n{{panel}}\n\n")
            case Blockquote(children=children):
                self._write(f"{{quote}}\n{self._nested(children)}\n{{quote}}\n\n")
            case Rule():
                self._write("----\n\n")
            case Text() | HardBreak() | Link():
                self._write(self._inline((node,)) + "\n\n")
            case _:
                raise TypeError(f"Unknown document node: {type(node).__name__}")

    def _list(self, node: BulletList | OrderedList, depth: int) -> None:
        marker = ("#" if isinstance(node, OrderedList) else "*") * depth
        for item in node.children:
            children = item.children if isinstance(item, Item) else (item,)
            lines: list[str] = []
            nested: list[BulletList | OrderedList] = []
            for child in children:
                match child:
                    case BulletList() | OrderedList():
                        nested.append(child)
                    case Paragraph(children=inline) | Heading(children=inline):
                        lines.append(self._inline(inline))
                    case Text() | HardBreak() | Link():
                        lines.append(self._inline((child,)))
                    case _:
                        lines.append(self._nested((child,)))
            self._write(f"{marker} {chr(10).join(lines)}\n")
            for sub in nested:
                self._list(sub, depth + 1)

    def _row(self, row: Node) -> None:
        if not isinstance(row, Row):
            raise TypeError(f"Table row expected, got {type(row).__name__}")
        delimiter = "|"
        for cell in row.children:
            if not isinstance(cell, Cell):
                raise TypeError(f"Table cell expected, got {type(cell).__name__}")
            delimiter = "||" if cell.header else "|"
            self._write(delimiter + self._cell_text(cell.children))
        self._write(delimiter + "\n")

    def _cell_text(self, children: tuple[Node, ...]) -> str:
        parts = []
        for child in children:
            match child:
                case Paragraph(children=inline) | Heading(children=inline):
                    parts.append(self._inline(inline))
                case Text() | HardBreak() | Link():
                    parts.append(self._inline((child,)))
                case _:
                    parts.append(self._nested((child,)))
        # Jira needs content between delimiters
        return " ".join(p for p in parts if p) or " "

    def _inline(self, nodes: tuple[Node, ...]) -> str:
        parts = []
        for node in nodes:
            match node:
                case Text(value=value, marks=marks):
                    parts.append(_apply_marks(value, marks))
                case HardBreak():
                    parts.append("\n")
                case Link(href=href, children=children):
                    text = self._inline(children)
                    parts.append(f"[{text}|{href}]" if text else f"[{href}]")
                case _:
                    # Block nodes nested inline; unknown nodes raise in _block
                    parts.append(self._nested((node,)))
        return "".join(parts)


def _apply_marks(value: str, marks: frozenset[Mark]) -> str:
    """Wrap text in wiki markers, keeping edge whitespace outside them."""
    core = value.strip()
    if not marks or not core:
        return value
    leading = value[: len(value) - len(value.lstrip())]
    trailing = value[len(value.rstrip()) :]
    for mark, opener, closer in _MARK_WRAPPERS:
        if mark in marks:
            core = f"{opener}{core}{closer}"
    return f"{leading}{core}{trailing}"


def translate(root: Node) -> str:
    """
    Translate a document tree to Jira wiki markup.

    Args:
        root: Document (or any node) to serialize

    Returns:
        Wiki markup text

    Raises:
        TypeError: If the tree contains a node that is not a document node.
    """
    return _Translator().render(root)


def adf_to_jirawiki(data: Any) -> str:
    """
    Convert a JSON-decoded ADF document to Jira wiki markup.

    Raises:
        ValueError: If ``data`` is not an ADF document.
    """
    document = parse_adf(data)
    wiki = translate(document)
    logger.debug(
        "Translated ADF document (%d top-level nodes) to %d chars of wiki markup",
        len(document.children),
        len(wiki),
    )
    return wiki


def adf_to_markdown(data: Any) -> str:
    """Convert a JSON-decoded ADF document to Markdown via wiki markup."""
    return to_markdown(adf_to_jirawiki(data))

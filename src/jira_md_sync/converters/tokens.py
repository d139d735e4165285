"""Line tokenizer and line classifier for Jira wiki markup.

Jira markup is ambiguous at the character level: ``*`` opens bold text or
an unordered list item, ``#`` an ordered list item, ``-`` strike-through or
a bullet. Both helpers here look at a single line and decide, once, what
each marker means:

* ``classify_line`` assigns the line a block kind (heading, list level,
  plain) before any inline substitution runs.
* ``tokenize`` tags every markup span of the line with a ``TokenFamily``.

Indices are code point offsets into the ``str`` (``line[start:end]``), so
multi-byte characters never split.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class TokenFamily(str, Enum):
    """Coarse category of a matched markup span."""

    TEXT_EFFECT = "text-effect"
    HEADING = "heading"
    INLINE_QUOTE = "inline-quote"
    LIST = "list"
    FENCED_CODE = "code"
    REFERENCE_LINK = "link"
    TABLE = "table"
    OTHER = "other"


class LineKind(str, Enum):
    """Block kind of a single wiki line."""

    HEADING = "heading"
    ORDERED_LIST = "ordered-list"
    UNORDERED_LIST = "unordered-list"
    PLAIN = "plain"


class LineClass(NamedTuple):
    kind: LineKind
    level: int
    body: str
    # Full list prefix (``#*``) for list lines, one marker per level
    markers: str = ""


@dataclass(frozen=True)
class MarkupToken:
    """One markup span within a line.

    Attributes:
        tag: Normalized tag (``{panel}``, ``h2.``, ``**``) or the matched text
        family: Token family
        start: Code point index of the first character
        end: Code point index one past the last character
        attrs: Extra attributes (``title``, ``language``, ``effect``, ...)
    """

    tag: str
    family: TokenFamily
    start: int
    end: int
    attrs: dict[str, str] = field(default_factory=dict)


# Text effect marker -> effect name
EFFECTS: dict[str, str] = {
    "*": "bold",
    "_": "italic",
    "+": "underline",
    "-": "strike",
    "^": "superscript",
    "~": "subscript",
}

FENCED_MACROS: frozenset[str] = frozenset({"code", "noformat"})
KNOWN_MACROS: frozenset[str] = frozenset(
    {"code", "noformat", "panel", "quote"}
)

_HEADING_TAG_RE = re.compile(r"h([1-6])\.(?=\s|$)")
_QUOTE_TAG_RE = re.compile(r"bq\.(?=\s|$)")
_LIST_TAG_RE = re.compile(r"[*#]+(?= )")
_MONOSPACE_RE = re.compile(r"\{\{([^{}\n]+)\}\}")
_MACRO_RE = re.compile(r"\{(\w+)(?::([^}]*))?\}")
_LINK_RE = re.compile(r"\[([^\[\]\n]+)\]")

_HEADING_LINE_RE = re.compile(r"^h([1-6])\.[ \t]+(.+)$")
_LIST_LINE_RE = re.compile(r"^([*#]{1,3}) (.*)$")


def parse_macro_params(params: str | None) -> dict[str, str]:
    """Parse the parameter part of a Jira macro (``{panel:title=T|x=y}``).

    A bare parameter with no ``=`` is stored under ``"default"``; for
    ``{code:java}`` that is the language.

    Examples:
        >>> parse_macro_params("title=Note|borderStyle=dashed")
        {'title': 'Note', 'borderStyle': 'dashed'}
        >>> parse_macro_params("java")
        {'default': 'java'}
    """
    result: dict[str, str] = {}
    if not params:
        return result
    for piece in params.split("|"):
        piece = piece.strip()
        if not piece:
            continue
        key, sep, value = piece.partition("=")
        if sep:
            result[key.strip()] = value.strip()
        else:
            result.setdefault("default", key)
    return result


def classify_line(line: str) -> LineClass:
    """Classify a wiki line as heading, list item (levels 1-3) or plain text.

    Mixed list prefixes such as ``#*`` (a bullet inside a numbered item) are
    list lines too; ``markers`` keeps the whole prefix.

    Examples:
        >>> classify_line("h2. Title")
        LineClass(kind=<LineKind.HEADING: 'heading'>, level=2, body='Title', markers='')
        >>> classify_line("** nested").kind
        <LineKind.UNORDERED_LIST: 'unordered-list'>
        >>> classify_line("#* mixed").markers
        '#*'
        >>> classify_line("#### too deep").kind
        <LineKind.PLAIN: 'plain'>
    """
    match = _HEADING_LINE_RE.match(line)
    if match:
        return LineClass(LineKind.HEADING, int(match.group(1)), match.group(2))

    match = _LIST_LINE_RE.match(line)
    if match:
        markers = match.group(1)
        # The last marker is the item's own list type
        kind = (
            LineKind.ORDERED_LIST
            if markers[-1] == "#"
            else LineKind.UNORDERED_LIST
        )
        return LineClass(kind, len(markers), match.group(2), markers)

    return LineClass(LineKind.PLAIN, 0, line)


def _match_effect(line: str, pos: int) -> MarkupToken | None:
    marker = line[pos]
    if pos + 1 >= len(line):
        return None
    first = line[pos + 1]
    if first.isspace() or first == marker:
        return None
    # Markers glued to a word (snake_case, hyphen-ated) are literal
    if pos > 0 and line[pos - 1].isalnum():
        return None

    end = line.find(marker, pos + 2)
    while end != -1 and line[end - 1].isspace():
        end = line.find(marker, end + 1)
    if end == -1:
        return None

    return MarkupToken(
        tag=line[pos : end + 1],
        family=TokenFamily.TEXT_EFFECT,
        start=pos,
        end=end + 1,
        attrs={"effect": EFFECTS[marker]},
    )


def _match_inline(line: str, pos: int) -> MarkupToken | None:
    char = line[pos]

    if char == "{":
        match = _MONOSPACE_RE.match(line, pos)
        if match:
            return MarkupToken(
                tag=match.group(0),
                family=TokenFamily.TEXT_EFFECT,
                start=pos,
                end=match.end(),
                attrs={"effect": "monospace"},
            )
        match = _MACRO_RE.match(line, pos)
        if match is None:
            return None
        name = match.group(1)
        params = parse_macro_params(match.group(2))
        attrs: dict[str, str] = {}
        if name in FENCED_MACROS:
            language = params.get("language") or params.get("default")
            if language:
                attrs["language"] = language
        if "title" in params:
            attrs["title"] = params["title"]
        return MarkupToken(
            tag=f"{{{name}}}",
            family=(
                TokenFamily.FENCED_CODE
                if name in FENCED_MACROS
                else TokenFamily.OTHER
            ),
            start=pos,
            end=match.end(),
            attrs=attrs,
        )

    if char == "[":
        match = _LINK_RE.match(line, pos)
        if match is None:
            return None
        text, sep, href = match.group(1).partition("|")
        return MarkupToken(
            tag=match.group(0),
            family=TokenFamily.REFERENCE_LINK,
            start=pos,
            end=match.end(),
            attrs={"text": text, "href": href if sep else text},
        )

    if char in EFFECTS:
        return _match_effect(line, pos)

    return None


def tokenize(line: str) -> list[MarkupToken]:
    """Tag the markup spans of a single line, left to right.

    Block-level tags (headings, ``bq.``, table rows) are only recognized at
    the first non-blank character; headings, quotes and table rows end the
    scan because the rest of the line is their content. Tokens never
    overlap.

    Examples:
        >>> [t.family.value for t in tokenize("* *bold* and [x|http://y]")]
        ['list', 'text-effect', 'link']
    """
    tokens: list[MarkupToken] = []
    size = len(line)
    stripped = line.strip()
    pos = size - len(line.lstrip())

    match = _HEADING_TAG_RE.match(line, pos)
    if match:
        tokens.append(
            MarkupToken(
                tag=match.group(0),
                family=TokenFamily.HEADING,
                start=pos,
                end=match.end(),
                attrs={"level": match.group(1)},
            )
        )
        return tokens

    match = _QUOTE_TAG_RE.match(line, pos)
    if match:
        tokens.append(
            MarkupToken(
                tag=match.group(0),
                family=TokenFamily.INLINE_QUOTE,
                start=pos,
                end=match.end(),
            )
        )
        return tokens

    if len(stripped) > 1 and stripped[0] == "|" and stripped[-1] == "|":
        tokens.append(
            MarkupToken(
                tag=stripped,
                family=TokenFamily.TABLE,
                start=pos,
                end=pos + len(stripped),
            )
        )
        return tokens

    match = _LIST_TAG_RE.match(line, pos)
    if match:
        tokens.append(
            MarkupToken(
                tag=match.group(0),
                family=TokenFamily.LIST,
                start=pos,
                end=match.end(),
            )
        )
        pos = match.end()

    while pos < size:
        token = _match_inline(line, pos)
        if token is None:
            pos += 1
            continue
        tokens.append(token)
        pos = token.end

    return tokens

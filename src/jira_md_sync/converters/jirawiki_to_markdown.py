"""Jira wiki markup to Markdown conversion using regex patterns."""

import logging
import re

from .common import ConversionResult, jira_to_markdown_lang
from .tokens import (
    KNOWN_MACROS,
    LineKind,
    TokenFamily,
    classify_line,
    parse_macro_params,
    tokenize,
)

logger = logging.getLogger(__name__)

_CODE_BLOCK_RE = re.compile(
    r"\{code(?::([^}]*))?\}(.*?)\{code\}", re.DOTALL
)
_NOFORMAT_RE = re.compile(
    r"\{noformat(?::[^}]*)?\}(.*?)\{noformat\}", re.DOTALL
)
_UNTERMINATED_CODE_RE = re.compile(r"\{(?:code|noformat)(?::[^}]*)?\}")
_MONOSPACE_RE = re.compile(r"\{\{([^\n]+?)\}\}")
_PANEL_RE = re.compile(r"\{panel(?::([^}]*))?\}(.*?)\{panel\}", re.DOTALL)
_QUOTE_RE = re.compile(r"\{quote\}(.*?)\{quote\}", re.DOTALL)
_BQ_RE = re.compile(r"^bq\.[ \t]+(.+)$", re.MULTILINE)
_ALIASED_LINK_RE = re.compile(r"\[([^|\[\]\n]+)\|([^\[\]\n]+)\]")
# A bare [url] that is not already half of a Markdown [text](url) / [text][ref]
_BARE_LINK_RE = re.compile(r"(?<!\])\[([^\s|\[\]]+)\](?![(\[])")
_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")

# Markdown has ordered list content starting at column 3 ("1. "), so nested
# ordered items need three spaces per level to stay nested.
_ORDERED_INDENT = "   "
_UNORDERED_INDENT = "  "


def _effect_pattern(marker: str, word_guard: bool = True) -> re.Pattern[str]:
    """Build the pattern for a single-character text effect like ``*bold*``.

    The span must start and end with a non-blank character and stay on one
    line. The marker may not be doubled on either side, so ``**done**`` and
    ``~~done~~`` are left alone. With ``word_guard`` the marker may not be
    glued to a word either (``snake_case_name``, ``well-known-fact``).
    """
    m = re.escape(marker)
    if word_guard:
        before = rf"(?<![{m}\w/])"
        after = rf"(?![{m}\w])"
    else:
        before = rf"(?<!{m})"
        after = rf"(?!{m})"
    return re.compile(
        rf"{before}{m}(?=[^\s{m}])([^{m}\n]*?[^\s{m}]){m}{after}"
    )


_BOLD_RE = _effect_pattern("*")
_ITALIC_RE = _effect_pattern("_")
_UNDERLINE_RE = _effect_pattern("+")
_STRIKE_RE = _effect_pattern("-")
_SUPERSCRIPT_RE = _effect_pattern("^", word_guard=False)
_SUBSCRIPT_RE = _effect_pattern("~", word_guard=False)


def _fence_for(body: str) -> str:
    """Return a backtick fence longer than any backtick run in the body."""
    longest = max((len(run) for run in re.findall(r"`{3,}", body)), default=2)
    return "`" * (longest + 1)


def _trim_block(body: str) -> str:
    """Drop blank lines around a block body, keeping first-line indentation."""
    body = re.sub(r"^\s*\n", "", body)
    return body.rstrip()


class JiraWikiParser:
    """Parser for converting Jira wiki markup to Markdown format."""

    def __init__(self):
        """Initialize parser with empty warnings list and placeholder stash."""
        self.warnings: list[str] = []
        self._stash: list[str] = []

    def parse(self, wiki_text: str) -> ConversionResult:
        """
        Parse Jira wiki markup and convert to Markdown format.

        This is a best-effort conversion using regex replacements. Unknown
        macros and malformed markup pass through unchanged without errors.

        Args:
            wiki_text: Jira wiki formatted text

        Returns:
            ConversionResult with Markdown text and warnings about lossy conversions
        """
        self.warnings = []
        self._stash = []

        if not wiki_text:
            return ConversionResult(
                text="",
                source_format="jirawiki",
                target_format="markdown",
                converted=False,
            )

        text = self._normalize_newlines(wiki_text)
        text = self._convert_code_blocks(text)
        self._detect_lossy_elements(text)
        text = self._convert_block_lines(text)
        text = self._convert_formatting(text)
        text = self._convert_panels(text)
        text = self._convert_quotes(text)
        text = self._convert_links(text)
        text = self._convert_tables(text)
        text = self._restore_placeholders(text)

        logger.debug(
            "Converted %d chars of wiki markup to %d chars of Markdown",
            len(wiki_text),
            len(text),
        )

        return ConversionResult(
            text=text,
            source_format="jirawiki",
            target_format="markdown",
            converted=True,
            warnings=self.warnings,
        )

    def _stash_text(self, text: str) -> str:
        """Park already converted text behind a placeholder."""
        self._stash.append(text)
        return f"\x00{len(self._stash) - 1}\x00"

    def _restore_placeholders(self, text: str) -> str:
        """Put stashed code back; stashed text may itself hold placeholders."""
        while _PLACEHOLDER_RE.search(text):
            text = _PLACEHOLDER_RE.sub(
                lambda m: self._stash[int(m.group(1))], text
            )
        return text

    def _normalize_newlines(self, text: str) -> str:
        """Normalize line endings and drop NUL characters used as placeholders."""
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        return text.replace("\x00", "")

    def _convert_code_blocks(self, text: str) -> str:
        """Convert code blocks first so their bodies are never reinterpreted.

        {code:java}...{code} -> ```java ... ```
        {code:title=A.java|language=java}...{code} -> ```java ... ```
        {noformat}...{noformat} -> ``` ... ```

        The converted fences are stashed behind placeholders until the end.
        """

        def convert_code(match: re.Match[str]) -> str:
            params = parse_macro_params(match.group(1))
            language = params.get("language") or params.get("default") or ""
            if language:
                language = jira_to_markdown_lang(language)
            body = _trim_block(match.group(2))
            fence = _fence_for(body)
            return self._stash_text(f"{fence}{language}\n{body}\n{fence}")

        def convert_noformat(match: re.Match[str]) -> str:
            body = _trim_block(match.group(1))
            fence = _fence_for(body)
            return self._stash_text(f"{fence}\n{body}\n{fence}")

        text = _CODE_BLOCK_RE.sub(convert_code, text)
        text = _NOFORMAT_RE.sub(convert_noformat, text)

        if _UNTERMINATED_CODE_RE.search(text):
            self.warnings.append(
                "Unterminated {code}/{noformat} block - left as literal text"
            )
        return text

    def _detect_lossy_elements(self, text: str) -> None:
        """Detect lossy elements before conversion and add warnings."""
        effects: set[str] = set()
        unknown_macros: set[str] = set()

        for line in text.split("\n"):
            for token in tokenize(line):
                if token.family == TokenFamily.TEXT_EFFECT:
                    effects.add(token.attrs.get("effect", ""))
                elif (
                    token.family == TokenFamily.OTHER
                    and token.tag.strip("{}") not in KNOWN_MACROS
                ):
                    unknown_macros.add(token.tag)

        if effects & {"superscript", "subscript"}:
            self.warnings.append(
                "Superscript/subscript detected - markers dropped (Markdown has no equivalent)"
            )
        if "underline" in effects:
            self.warnings.append(
                "Underline detected - rendered as __text__, which reads back as bold"
            )
        if unknown_macros:
            self.warnings.append(
                "Unsupported macros detected ("
                + ", ".join(sorted(unknown_macros))
                + ") - passed through as literal text"
            )

    def _convert_block_lines(self, text: str) -> str:
        """Convert headings and lists in a single classified pass.

        Each line is classified once, so a heading turned into ``# Title``
        is never read again as an ordered list item. The output is therefore
        not fed back through this converter: a Markdown ``# Title`` line is
        Jira's ordered list syntax and comes out as ``1. Title``.

        h1. Title -> # Title
        # item / ## item / ### item -> 1. item
        * item / ** item / *** item -> - item
        #* item -> - item nested under the numbered item above

        A nested item is indented by the content width of each enclosing
        item: 3 spaces under ``1. ``, 2 under ``- ``. Enclosing items are
        taken from the list lines above, falling back to the line's own
        prefix. Deeper nesting is left unconverted.
        """
        lines = []
        # Markers of the previous list line, one per level
        chain = ""
        for line in text.split("\n"):
            kind, level, body, markers = classify_line(line)
            if kind == LineKind.HEADING:
                lines.append(f"{'#' * level} {body}")
                chain = ""
            elif kind in (LineKind.ORDERED_LIST, LineKind.UNORDERED_LIST):
                parents = "".join(
                    chain[i] if i < len(chain) else markers[i]
                    for i in range(level - 1)
                )
                indent = "".join(
                    _ORDERED_INDENT if p == "#" else _UNORDERED_INDENT
                    for p in parents
                )
                bullet = "1." if kind == LineKind.ORDERED_LIST else "-"
                lines.append(f"{indent}{bullet} {body}")
                chain = parents + markers[-1]
            else:
                lines.append(line)
                chain = ""
        return "\n".join(lines)

    def _convert_formatting(self, text: str) -> str:
        """Convert text effects (inline code first, then bold before italic).

        Monospace: {{text}} -> `text` (protected from the rules below)
        Bold: *text* -> **text**
        Italic: _text_ -> *text*
        Underline: +text+ -> __text__
        Strikethrough: -text- -> ~~text~~
        Superscript/subscript: ^text^ / ~text~ -> text
        """
        text = _MONOSPACE_RE.sub(
            lambda m: self._stash_text(f"`{m.group(1)}`"), text
        )
        text = _BOLD_RE.sub(r"**\1**", text)
        text = _ITALIC_RE.sub(r"*\1*", text)
        text = _UNDERLINE_RE.sub(r"__\1__", text)
        text = _STRIKE_RE.sub(r"~~\1~~", text)
        text = _SUPERSCRIPT_RE.sub(r"\1", text)
        text = _SUBSCRIPT_RE.sub(r"\1", text)
        return text

    def _convert_panels(self, text: str) -> str:
        """Convert panels.

        {panel:title=T}body{panel} -> ### T, blank line, body, blank line, ---
        """

        def convert_panel(match: re.Match[str]) -> str:
            title = parse_macro_params(match.group(1)).get("title")
            heading = f"### {title}\n\n" if title else ""
            return heading + match.group(2).strip() + "\n\n---"

        return _PANEL_RE.sub(convert_panel, text)

    def _convert_quotes(self, text: str) -> str:
        """Convert quotes.

        {quote}body{quote} -> every body line prefixed with '> '
        bq. text -> > text
        """

        def convert_quote(match: re.Match[str]) -> str:
            # Code inside the quote has to be quoted line by line too
            body = self._restore_placeholders(match.group(1)).strip()
            return "\n".join(
                f"> {line}" if line.strip() else ">"
                for line in body.split("\n")
            )

        text = _QUOTE_RE.sub(convert_quote, text)
        return _BQ_RE.sub(r"> \1", text)

    def _convert_links(self, text: str) -> str:
        """Convert links.

        Link with alias: [text|url] -> [text](url)
        Link without alias: [url] -> [url](url)
        """
        text = _ALIASED_LINK_RE.sub(r"[\1](\2)", text)
        return _BARE_LINK_RE.sub(r"[\1](\1)", text)

    def _convert_tables(self, text: str) -> str:
        """Convert tables: ||h1||h2|| header and |c1|c2| rows.

        A header row opens a table; data rows are only recognized while a
        table is open. Any other line closes it and passes through.
        """
        result = []
        in_table = False
        columns = 0
        mismatched = False

        for line in text.split("\n"):
            trimmed = line.strip()
            if (
                len(trimmed) >= 4
                and trimmed.startswith("||")
                and trimmed.endswith("||")
            ):
                headers = [
                    cell.strip() for cell in trimmed.strip("|").split("||")
                ]
                columns = len(headers)
                result.append("| " + " | ".join(headers) + " |")
                result.append("| " + " | ".join(["---"] * columns) + " |")
                in_table = True
            elif (
                in_table
                and len(trimmed) >= 2
                and trimmed.startswith("|")
                and trimmed.endswith("|")
            ):
                cells = [cell.strip() for cell in trimmed.strip("|").split("|")]
                if len(cells) != columns:
                    mismatched = True
                result.append("| " + " | ".join(cells) + " |")
            else:
                in_table = False
                result.append(line)

        if mismatched:
            self.warnings.append(
                "Table rows with a different cell count than the header - kept as-is"
            )
        return "\n".join(result)


def jirawiki_to_markdown(wiki_text: str) -> ConversionResult:
    """
    Convert Jira wiki markup to Markdown format.

    This is a best-effort conversion using regex replacements. Unknown
    macros and unsupported features pass through unchanged without errors.

    Args:
        wiki_text: Jira wiki formatted text

    Returns:
        ConversionResult with Markdown text and warnings about lossy conversions
    """
    parser = JiraWikiParser()
    return parser.parse(wiki_text)


def to_markdown(wiki_text: str) -> str:
    """Convert Jira wiki markup to Markdown, returning only the text."""
    return jirawiki_to_markdown(wiki_text).text

"""Markdown to Jira wiki markup conversion using mistune AST rendering."""

import logging
import re
from typing import Any

import mistune

from ..errors import MarkupConversionError
from .common import ConversionResult, markdown_to_jira_lang

logger = logging.getLogger(__name__)

_MACRO_BRACE_RE = re.compile(r"([{}])")

_LOSSY_WARNINGS: dict[str, str] = {
    "emphasis": "Italic text detected - converted to bold (*text*), Jira italics are not preserved",
    "html": "HTML detected - passed through, Jira will show it as literal text.",
    "image": "Images detected - converted to !url! references, alt text is dropped.",
}


class JiraWikiRenderer(mistune.BaseRenderer):
    """Renderer that converts Markdown AST to Jira wiki markup."""

    NAME = "jirawiki"

    def __init__(self, escape_macros: bool = False):
        """Initialize renderer.

        Args:
            escape_macros: Backslash-escape ``{`` and ``}`` in plain text so
                they cannot open a Jira macro.
        """
        super().__init__()
        self.escape_macros = escape_macros
        # Lossy constructs seen during the last render (see _LOSSY_WARNINGS)
        self.lossy: set[str] = set()
        self._bold_depth = 0

    def text(self, text: str) -> str:
        """Render plain text."""
        if self.escape_macros:
            return _MACRO_BRACE_RE.sub(r"\\\1", text)
        return text

    def emphasis(self, text: str) -> str:
        """Render italic text. Jira output collapses it into bold."""
        return f"*{text}*"

    def strong(self, text: str) -> str:
        """Render bold text."""
        return f"*{text}*"

    def strikethrough(self, text: str) -> str:
        """Render strike-through text."""
        return f"-{text}-"

    def codespan(self, text: str) -> str:
        """Render inline code."""
        return f"{{{{{text}}}}}"

    def linebreak(self) -> str:
        """Render hard line break."""
        return "\n"

    def softbreak(self) -> str:
        """Render soft break."""
        return "\n"

    def blank_line(self) -> str:
        """Render blank line."""
        return ""

    def heading(self, text: str, level: int, **attrs) -> str:
        """Render heading: h1. Title"""
        return f"h{level}. {text}\n\n"

    def paragraph(self, text: str) -> str:
        """Render paragraph."""
        return f"{text}\n\n"

    def block_text(self, text: str) -> str:
        """Render block text (tight list item content)."""
        return text

    def block_code(self, code: str, info: str | None = None, **attrs) -> str:
        """Render code block.

        Jira syntax:
        {code:language}
        code
        {code}

        Only the first word of the fence info string is used as language.
        """
        code = code.rstrip("\n")
        language = info.split()[0] if info and info.strip() else ""
        if language:
            return f"{{code:{markdown_to_jira_lang(language)}}}\n{code}\n{{code}}\n\n"
        return f"{{code}}\n{code}\n{{code}}\n\n"

    def block_quote(self, text: str) -> str:
        """Render blockquote as a {quote} macro."""
        return f"{{quote}}\n{text.strip(chr(10))}\n{{quote}}\n\n"

    def block_html(self, html: str) -> str:
        """Render block HTML (pass through)."""
        self.lossy.add("html")
        return html.rstrip("\n") + "\n\n"

    def block_error(self, text: str) -> str:
        """Render block error."""
        return text

    def thematic_break(self) -> str:
        """Render horizontal rule."""
        return "----\n\n"

    def list(self, text: str, ordered: bool, **attrs) -> str:
        """Render list. A top-level list is followed by a blank line."""
        if attrs.get("depth", 0) == 0:
            return text + "\n"
        return text

    def list_item(self, text: str) -> str:
        """Render list item (markers are added in render_token)."""
        return text.rstrip("\n") + "\n"

    def link(self, text: str, url: str, title=None) -> str:
        """Render link.

        Markdown: [text](url)
        Jira: [text|url], or [url] when the text is the URL itself.
        A ``|`` inside the text is written as ``&#124;``.
        """
        if not text or text == url:
            return f"[{url}]"
        # A bare | would end the link text early
        return f"[{text.replace('|', '&#124;')}|{url}]"

    def image(self, text: str, url: str, title=None) -> str:
        """Render image.

        Markdown: ![alt](url)
        Jira: !url!
        """
        self.lossy.add("image")
        return f"!{url}!"

    def inline_html(self, html: str) -> str:
        """Render inline HTML (pass through)."""
        self.lossy.add("html")
        return html

    # Table rendering methods for GFM tables
    def table(self, text: str) -> str:
        """Render complete table as a block element."""
        return text + "\n"

    def table_head(self, text: str) -> str:
        """Render the header row: ||h1||h2||"""
        return f"{text}||\n"

    def table_body(self, text: str) -> str:
        """Render table body section."""
        return text

    def table_row(self, text: str) -> str:
        """Render a data row: |c1|c2|"""
        return f"{text}|\n"

    def table_cell(
        self, text: str, align: str | None = None, head: bool = False
    ) -> str:
        """Render table cell with its leading delimiter.

        Jira has no column alignment, so ``align`` is ignored. The row
        renderers add the closing delimiter.
        """
        return ("||" if head else "|") + text.strip()

    def render_token(self, token: dict[str, Any], state) -> str:
        """Override token rendering to track list markers and bold nesting."""
        token_type: str = token.get("type") or ""
        func = self._get_method(token_type)
        attrs = token.get("attrs")

        if token_type == "list":
            ordered = (attrs or {}).get("ordered", False)
            # One marker per enclosing list: a bullet in a numbered item is #*
            markers = getattr(state, "list_markers", "")
            state.list_markers = markers + ("#" if ordered else "*")  # type: ignore[attr-defined]  # mistune BlockState dynamic attr
            try:
                text = self.render_tokens(token.get("children", []), state)
            finally:
                state.list_markers = markers  # type: ignore[attr-defined]  # mistune BlockState dynamic attr

            if attrs:
                return func(text, **attrs)
            return func(text, False)

        if token_type == "list_item":
            marker = getattr(state, "list_markers", "") or "*"

            inline_parts = []
            nested_lists = []
            for child in token.get("children", []):
                if child.get("type") == "list":
                    nested_lists.append(child)
                else:
                    inline_parts.append(child)

            # A loose item renders paragraphs; Jira items are single lines
            text = self.render_tokens(inline_parts, state).strip("\n")
            text = re.sub(r"\n{2,}", "\n", text)
            nested_text = self.render_tokens(nested_lists, state).rstrip("\n")

            item = func(f"{marker} {text}")
            if nested_text:
                return f"{item}{nested_text}\n"
            return item

        if token_type in ("emphasis", "strong"):
            if token_type == "emphasis":
                self.lossy.add("emphasis")
            # Jira cannot nest bold inside bold: only the outer span is wrapped
            self._bold_depth += 1
            try:
                text = self.render_tokens(token.get("children", []), state)
            finally:
                self._bold_depth -= 1
            if self._bold_depth:
                return text
            return func(text)

        # Default rendering: extract text from raw, text, or children, pass attrs
        if "raw" in token:
            text = token["raw"]
        elif "text" in token:
            text = token["text"]
        elif "children" in token:
            text = self.render_tokens(token["children"], state)
        else:
            if attrs:
                return func(**attrs)
            return func()

        if attrs:
            return func(text, **attrs)
        return func(text)


def _render(markdown_text: str | bytes, escape_macros: bool) -> tuple[str, set[str]]:
    if isinstance(markdown_text, bytes):
        try:
            markdown_text = markdown_text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MarkupConversionError(
                f"Markdown input is not valid UTF-8: {e}"
            ) from e

    if not markdown_text:
        return "", set()

    renderer = JiraWikiRenderer(escape_macros=escape_macros)
    markdown = mistune.create_markdown(
        renderer=renderer, plugins=["table", "strikethrough"]
    )

    try:
        result: str = markdown(markdown_text)  # type: ignore[assignment]
    except RecursionError as e:
        raise MarkupConversionError("Markdown nesting is too deep to convert") from e

    result = result.strip("\n")
    logger.debug(
        "Converted %d chars of Markdown to %d chars of wiki markup",
        len(markdown_text),
        len(result),
    )
    return result, renderer.lossy


def markdown_to_jirawiki(
    markdown_text: str | bytes, escape_macros: bool = False
) -> str:
    """
    Convert Markdown text to Jira wiki markup.

    Args:
        markdown_text: Markdown formatted text (bytes must be UTF-8)
        escape_macros: Backslash-escape braces in plain text

    Returns:
        Jira wiki formatted text

    Raises:
        MarkupConversionError: If the input cannot be decoded or parsed.
    """
    text, _ = _render(markdown_text, escape_macros)
    return text


def convert_with_warnings(
    markdown_text: str | bytes, escape_macros: bool = False
) -> ConversionResult:
    """
    Convert Markdown to Jira wiki markup and report lossy conversions.

    Args:
        markdown_text: Markdown formatted text
        escape_macros: Backslash-escape braces in plain text

    Returns:
        ConversionResult with wiki text and any warnings
    """
    text, lossy = _render(markdown_text, escape_macros)
    return ConversionResult(
        text=text,
        source_format="markdown",
        target_format="jirawiki",
        converted=bool(text),
        warnings=[_LOSSY_WARNINGS[key] for key in sorted(lossy)],
    )

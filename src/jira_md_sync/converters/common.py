"""Common types and utilities for format conversion."""

from dataclasses import dataclass, field

from .tokens import TokenFamily, parse_macro_params, tokenize  # noqa: F401

# =============================================================================
# Code Block Language Mapping
# =============================================================================
#
# Bidirectional mapping between Markdown code fence language identifiers and
# Jira {code} macro languages.
#
# Markdown: ```python
# Jira:     {code:python}
#
# Design:
# - Store Markdown->Jira as the canonical direction
# - Derive the Jira->Markdown form from an explicit canonical table
# - Unknown languages pass through unchanged for forward compatibility
# =============================================================================

# Markdown language identifier -> Jira {code} language
# Only include mappings where names differ or where we want to normalize
_MARKDOWN_TO_JIRA_MAP: dict[str, str] = {
    # Shell scripting: Jira highlights bash, not sh/zsh/shell
    "sh": "bash",
    "shell": "bash",
    "zsh": "bash",
    # Aliases Jira does not understand
    "py": "python",
    "js": "javascript",
    "ts": "typescript",
    "yml": "yaml",
    "golang": "go",
    "cs": "c#",
    "csharp": "c#",
    "c++": "cpp",
    # Plain text
    "text": "none",
    "plaintext": "none",
    "plain": "none",
}

# Jira {code} language -> Markdown language identifier (canonical form)
_JIRA_TO_MARKDOWN_CANONICAL: dict[str, str] = {
    "none": "text",
    "c#": "csharp",
    "objc": "objectivec",
    "visualbasic": "vb",
}


def markdown_to_jira_lang(lang: str) -> str:
    """
    Convert a Markdown code fence language to a Jira {code} language.

    Args:
        lang: Markdown language identifier (e.g., 'sh', 'python', 'js')

    Returns:
        Jira language name. Returns input unchanged if no mapping exists.

    Examples:
        >>> markdown_to_jira_lang("sh")
        'bash'
        >>> markdown_to_jira_lang("go")
        'go'
    """
    lang_lower = lang.lower()
    if lang_lower in _MARKDOWN_TO_JIRA_MAP:
        return _MARKDOWN_TO_JIRA_MAP[lang_lower]
    return lang


def jira_to_markdown_lang(lang: str) -> str:
    """
    Convert a Jira {code} language to a Markdown code fence language.

    Examples:
        >>> jira_to_markdown_lang("none")
        'text'
        >>> jira_to_markdown_lang("java")
        'java'
    """
    lang_lower = lang.lower()
    if lang_lower in _JIRA_TO_MARKDOWN_CANONICAL:
        return _JIRA_TO_MARKDOWN_CANONICAL[lang_lower]
    return lang


@dataclass
class ConversionResult:
    """Result of format conversion with metadata and warnings.

    Attributes:
        text: Converted text output
        source_format: Format of input text ('markdown', 'jirawiki', 'adf')
        target_format: Format of output text ('markdown' or 'jirawiki')
        converted: True if conversion performed, False if pass-through
        warnings: List of warnings about lossy conversions or unsupported features
    """

    text: str
    source_format: str = "unknown"
    target_format: str = "unknown"
    converted: bool = False
    warnings: list[str] = field(default_factory=list)


def detect_format_heuristic(text: str) -> str:
    """Heuristic format detection for ticket bodies.

    Priority:
    1. Unambiguous markers: ``h1.`` headings, ``bq.`` quotes and
       ``{code}``/``{noformat}`` macros mean wiki markup.
    2. Score wiki tokens per line against Markdown fences, links and ``**``.
    3. Default to 'markdown' if unclear.

    Returns 'markdown' or 'jirawiki'.
    """
    md_score = text.count("```") + text.count("](") + text.count("**")
    wiki_score = 0

    for line in text.splitlines():
        for token in tokenize(line):
            if token.family in (
                TokenFamily.HEADING,
                TokenFamily.INLINE_QUOTE,
                TokenFamily.FENCED_CODE,
            ):
                return "jirawiki"
            if token.family == TokenFamily.REFERENCE_LINK and (
                "|" in token.tag
            ):
                wiki_score += 1
            elif token.family == TokenFamily.TABLE and token.tag.startswith(
                "||"
            ):
                wiki_score += 1
            elif token.family == TokenFamily.OTHER:
                wiki_score += 1
            elif token.attrs.get("effect") == "monospace":
                wiki_score += 1

    return "jirawiki" if wiki_score > md_score else "markdown"

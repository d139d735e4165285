"""Format conversion between Jira wiki markup, Markdown and ADF."""

from .adf_nodes import parse_adf
from .adf_to_jirawiki import adf_to_jirawiki, adf_to_markdown, translate
from .common import (
    ConversionResult,
    detect_format_heuristic,
    jira_to_markdown_lang,
    markdown_to_jira_lang,
    parse_macro_params,
)
from .jirawiki_to_markdown import JiraWikiParser, jirawiki_to_markdown, to_markdown
from .markdown_to_jirawiki import (
    JiraWikiRenderer,
    convert_with_warnings,
    markdown_to_jirawiki,
)
from .tokens import MarkupToken, TokenFamily, tokenize

__all__ = [
    "ConversionResult",
    "JiraWikiParser",
    "JiraWikiRenderer",
    "MarkupToken",
    "TokenFamily",
    "adf_to_jirawiki",
    "adf_to_markdown",
    "convert_with_warnings",
    "detect_format_heuristic",
    "jira_to_markdown_lang",
    "jirawiki_to_markdown",
    "markdown_to_jira_lang",
    "markdown_to_jirawiki",
    "parse_adf",
    "parse_macro_params",
    "to_markdown",
    "tokenize",
    "translate",
]

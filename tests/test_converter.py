"""
Tests for Jira wiki to Markdown converter and Markdown to Jira wiki converter.
"""

import unittest
from unittest.mock import patch

from jira_md_sync.converters import (
    ConversionResult,
    convert_with_warnings,
    jirawiki_to_markdown,
    markdown_to_jirawiki,
    to_markdown,
)
from jira_md_sync.converters.common import (
    detect_format_heuristic,
    jira_to_markdown_lang,
    markdown_to_jira_lang,
)
from jira_md_sync.converters.markdown_to_jirawiki import JiraWikiRenderer
from jira_md_sync.errors import MarkupConversionError


class TestJiraWikiToMarkdown(unittest.TestCase):
    """Test Jira wiki to Markdown conversion."""

    def test_empty_input(self):
        """Empty input converts to empty output."""
        result = jirawiki_to_markdown("")
        self.assertIsInstance(result, ConversionResult)
        self.assertEqual(result.text, "")
        self.assertFalse(result.converted)

    def test_plain_text_identity(self):
        """Text without markup passes through unchanged."""
        for text in [
            "Hello world.",
            "Plain text, with punctuation: 42 and 7.",
            "Two lines\nof plain text",
            "Ünïcödé text 日本語",
        ]:
            with self.subTest(text=text):
                self.assertEqual(to_markdown(text), text)

    def test_clean_markdown_is_stable(self):
        """Markdown without wiki markup is left alone on a second pass."""
        for text in [
            "Some **bold** text and a [link](https://example.com)",
            "- item one\n- item two",
            "Use `code` and ~~old~~ words",
            "well-known snake_case_name",
        ]:
            with self.subTest(text=text):
                once = to_markdown(text)
                self.assertEqual(to_markdown(once), once)

    def test_heading_levels(self):
        """h1. .. h6. become # .. ######."""
        for level in range(1, 7):
            with self.subTest(level=level):
                self.assertEqual(
                    to_markdown(f"h{level}. Title"), "#" * level + " Title"
                )

    def test_heading_only_at_line_start(self):
        """Prose containing h2. mid-line is not a heading."""
        text = "See section h2. for details"
        self.assertEqual(to_markdown(text), text)

    def test_table(self):
        """Header and data rows become a Markdown table."""
        result = to_markdown("||A||B||\n|1|2|")
        self.assertEqual(result, "| A | B |\n| --- | --- |\n| 1 | 2 |")

    def test_table_cell_formatting(self):
        """Formatting inside table cells is converted."""
        result = to_markdown("||Name||Value||\n|*bold*|x|")
        self.assertEqual(
            result, "| Name | Value |\n| --- | --- |\n| **bold** | x |"
        )

    def test_table_mismatched_cells_warning(self):
        """Rows with a different cell count are kept and reported."""
        result = jirawiki_to_markdown("||A||B||\n|1|2|3|")
        self.assertIn("| 1 | 2 | 3 |", result.text)
        self.assertTrue(any("cell count" in w for w in result.warnings))

    def test_code_block_with_language(self):
        """{code:go} becomes a go fence."""
        result = to_markdown("{code:go}\nfmt.Println()\n{code}")
        self.assertEqual(result, "```go\nfmt.Println()\n```")

    def test_code_block_language_parameter(self):
        """language= parameter is used when the macro has several parameters."""
        result = to_markdown(
            "{code:title=A.java|language=java}\nclass A {}\n{code}"
        )
        self.assertEqual(result, "```java\nclass A {}\n```")

    def test_code_block_body_not_converted(self):
        """Markup inside code blocks is left alone."""
        result = to_markdown("{code}\n*not bold* and _not italic_\n{code}")
        self.assertEqual(result, "```\n*not bold* and _not italic_\n```")

    def test_noformat_block(self):
        """{noformat} becomes a fence without language."""
        result = to_markdown("{noformat}\nh1. raw\n{noformat}")
        self.assertEqual(result, "```\nh1. raw\n```")

    def test_code_language_mapping(self):
        """Jira 'none' language maps to text."""
        result = to_markdown("{code:none}\nplain\n{code}")
        self.assertEqual(result, "```text\nplain\n```")

    def test_unterminated_code_block(self):
        """An unterminated code macro stays literal and is reported."""
        result = jirawiki_to_markdown("{code}\nx = 1")
        self.assertIn("{code}", result.text)
        self.assertIn("x = 1", result.text)
        self.assertTrue(any("Unterminated" in w for w in result.warnings))

    def test_unordered_list_nesting(self):
        """Unordered lists nest with 0/2/4 spaces."""
        result = to_markdown("* a\n** b\n*** c")
        self.assertEqual(result, "- a\n  - b\n    - c")

    def test_ordered_list_nesting(self):
        """Ordered lists nest under the content column of the parent."""
        result = to_markdown("# one\n## two\n### three")
        self.assertEqual(result, "1. one\n   1. two\n      1. three")

    def test_list_deeper_than_three_levels(self):
        """Nesting beyond three levels is left unconverted."""
        self.assertEqual(to_markdown("**** deep"), "**** deep")

    def test_bullet_inside_numbered_item(self):
        """#* nests a bullet under the content column of the numbered item."""
        self.assertEqual(
            to_markdown("# a\n#* b\n# c"), "1. a\n   - b\n1. c"
        )

    def test_numbered_item_inside_bullet(self):
        """*# nests a numbered item two spaces under the bullet."""
        self.assertEqual(to_markdown("* a\n*# b"), "- a\n  1. b")

    def test_nested_indent_follows_list_above(self):
        """A ** line under a numbered item is indented past the 1. column."""
        self.assertEqual(to_markdown("# a\n** b"), "1. a\n   - b")

    def test_heading_output_is_not_idempotent(self):
        """Markdown # Title reads as a wiki ordered list when converted again."""
        once = to_markdown("h1. Title")
        self.assertEqual(once, "# Title")
        self.assertEqual(to_markdown(once), "1. Title")

    def test_bold_next_to_list_marker(self):
        """The list bullet is not taken for a bold marker."""
        self.assertEqual(
            to_markdown("* *important* item"), "- **important** item"
        )

    def test_bold(self):
        """*text* becomes **text**."""
        self.assertEqual(to_markdown("a *bold* word"), "a **bold** word")

    def test_multiple_bold_spans(self):
        """Several bold spans on one line are all converted."""
        self.assertEqual(
            to_markdown("*one* and *two*"), "**one** and **two**"
        )
        self.assertEqual(
            to_markdown("*a*, *b* and *c*"), "**a**, **b** and **c**"
        )

    def test_bold_spans_in_list_item(self):
        """Several bold spans in a list item keep the bullet intact."""
        self.assertEqual(
            to_markdown("* *one* then *two*"), "- **one** then **two**"
        )

    def test_italic(self):
        """_text_ becomes *text*."""
        self.assertEqual(to_markdown("an _emphasis_ here"), "an *emphasis* here")

    def test_snake_case_untouched(self):
        """Underscores inside words are not italics."""
        text = "call snake_case_name now"
        self.assertEqual(to_markdown(text), text)

    def test_underline(self):
        """+text+ becomes __text__ with a warning."""
        result = jirawiki_to_markdown("some +under+ text")
        self.assertEqual(result.text, "some __under__ text")
        self.assertTrue(any("Underline" in w for w in result.warnings))

    def test_strikethrough(self):
        """-text- becomes ~~text~~."""
        self.assertEqual(to_markdown("a -gone- word"), "a ~~gone~~ word")

    def test_hyphenated_words_untouched(self):
        """Hyphens inside words are not strike-through."""
        text = "a well-known-fact"
        self.assertEqual(to_markdown(text), text)

    def test_superscript_and_subscript_unwrapped(self):
        """^text^ and ~text~ keep only their content."""
        result = jirawiki_to_markdown("Brand ^TM^ and H~2~O")
        self.assertEqual(result.text, "Brand TM and H2O")
        self.assertTrue(any("Superscript" in w for w in result.warnings))

    def test_monospace(self):
        """{{text}} becomes `text` and its content is protected."""
        self.assertEqual(
            to_markdown("run {{make *all*}} now"), "run `make *all*` now"
        )

    def test_panel_with_title(self):
        """Titled panel becomes a heading, body and rule."""
        result = to_markdown("{panel:title=Note}\nbody\n{panel}")
        self.assertEqual(result, "### Note\n\nbody\n\n---")

    def test_panel_without_title(self):
        """Untitled panel keeps only body and rule."""
        result = to_markdown("{panel}\nbody\n{panel}")
        self.assertEqual(result, "body\n\n---")

    def test_quote_block(self):
        """Every line of a {quote} body is prefixed with '> '."""
        result = to_markdown("{quote}\nline one\nline two\n{quote}")
        self.assertEqual(result, "> line one\n> line two")

    def test_quote_with_code(self):
        """Code blocks inside a quote are quoted line by line."""
        result = to_markdown("{quote}\n{code}\nx\n{code}\n{quote}")
        self.assertEqual(result, "> ```\n> x\n> ```")

    def test_bq_line(self):
        """bq. text becomes > text."""
        self.assertEqual(to_markdown("bq. quoted"), "> quoted")

    def test_link_with_alias(self):
        """[text|url] becomes [text](url)."""
        self.assertEqual(
            to_markdown("[Example|https://example.com]"),
            "[Example](https://example.com)",
        )

    def test_link_without_alias(self):
        """[url] becomes [url](url)."""
        self.assertEqual(
            to_markdown("[https://example.com]"),
            "[https://example.com](https://example.com)",
        )

    def test_link_with_underscores_in_url(self):
        """Underscores in URLs are not italics."""
        self.assertEqual(
            to_markdown("[doc|https://a.com/some_path_here]"),
            "[doc](https://a.com/some_path_here)",
        )

    def test_unknown_macro_passthrough(self):
        """Unsupported macros are kept literally and reported."""
        result = jirawiki_to_markdown("{color:red}text{color}")
        self.assertEqual(result.text, "{color:red}text{color}")
        self.assertTrue(any("{color}" in w for w in result.warnings))

    def test_windows_line_endings(self):
        """CRLF input is normalized."""
        self.assertEqual(to_markdown("h1. T\r\nbody"), "# T\nbody")

    def test_result_metadata(self):
        """ConversionResult reports formats."""
        result = jirawiki_to_markdown("h1. T")
        self.assertEqual(result.source_format, "jirawiki")
        self.assertEqual(result.target_format, "markdown")
        self.assertTrue(result.converted)
        self.assertEqual(result.warnings, [])


class TestMarkdownToJiraWiki(unittest.TestCase):
    """Test Markdown to Jira wiki conversion."""

    def test_empty_input(self):
        """Empty input converts to empty output."""
        self.assertEqual(markdown_to_jirawiki(""), "")

    def test_plain_paragraph(self):
        """Plain text passes through."""
        self.assertEqual(markdown_to_jirawiki("Hello world."), "Hello world.")

    def test_paragraphs(self):
        """Paragraphs are separated by a blank line."""
        self.assertEqual(markdown_to_jirawiki("one\n\ntwo"), "one\n\ntwo")

    def test_heading_levels(self):
        """# .. ###### become h1. .. h6."""
        for level in range(1, 7):
            with self.subTest(level=level):
                self.assertEqual(
                    markdown_to_jirawiki("#" * level + " Title"), f"h{level}. Title"
                )

    def test_heading_then_paragraph(self):
        """A heading is followed by a blank line."""
        self.assertEqual(markdown_to_jirawiki("# T\n\nbody"), "h1. T\n\nbody")

    def test_bold(self):
        """**text** becomes *text*."""
        self.assertEqual(markdown_to_jirawiki("**bold text**"), "*bold text*")

    def test_italic_collapses_to_bold(self):
        """*text* also becomes *text* (Jira bold)."""
        self.assertEqual(markdown_to_jirawiki("*italic text*"), "*italic text*")

    def test_bold_italic_not_double_wrapped(self):
        """Nested emphasis is wrapped once."""
        self.assertEqual(markdown_to_jirawiki("***both***"), "*both*")

    def test_strikethrough(self):
        """~~text~~ becomes -text-."""
        self.assertEqual(markdown_to_jirawiki("~~gone~~"), "-gone-")

    def test_inline_code(self):
        """`code` becomes {{code}}."""
        self.assertEqual(markdown_to_jirawiki("`x = 1`"), "{{x = 1}}")

    def test_code_block_with_language(self):
        """Fenced block keeps its language."""
        self.assertEqual(
            markdown_to_jirawiki("```go\nfmt.Println()\n```"),
            "{code:go}\nfmt.Println()\n{code}",
        )

    def test_code_block_language_mapped(self):
        """Markdown language aliases map to Jira names."""
        self.assertEqual(
            markdown_to_jirawiki("```sh\nls\n```"), "{code:bash}\nls\n{code}"
        )

    def test_code_block_info_first_word(self):
        """Only the first word of the info string is the language."""
        self.assertEqual(
            markdown_to_jirawiki("```python title=x\nprint(1)\n```"),
            "{code:python}\nprint(1)\n{code}",
        )

    def test_code_block_without_language(self):
        """Fenced block without language becomes {code}."""
        self.assertEqual(
            markdown_to_jirawiki("```\nplain code\n```"),
            "{code}\nplain code\n{code}",
        )

    def test_nested_unordered_list(self):
        """Nested bullets repeat the marker per level."""
        self.assertEqual(
            markdown_to_jirawiki("- a\n  - b\n    - c"), "* a\n** b\n*** c"
        )

    def test_ordered_list(self):
        """Ordered lists use #."""
        self.assertEqual(markdown_to_jirawiki("1. one\n2. two"), "# one\n# two")

    def test_bullet_inside_ordered_item(self):
        """Each enclosing list contributes its own marker."""
        self.assertEqual(
            markdown_to_jirawiki("1. a\n   - b\n2. c"), "# a\n#* b\n# c"
        )

    def test_loose_list(self):
        """Blank lines between items do not leak into the output."""
        self.assertEqual(markdown_to_jirawiki("- a\n\n- b"), "* a\n* b")

    def test_list_then_paragraph(self):
        """A list is separated from the next block."""
        self.assertEqual(
            markdown_to_jirawiki("- a\n- b\n\nafter"), "* a\n* b\n\nafter"
        )

    def test_link(self):
        """[text](url) becomes [text|url]."""
        self.assertEqual(
            markdown_to_jirawiki("[Example](https://example.com)"),
            "[Example|https://example.com]",
        )

    def test_link_text_with_pipe(self):
        """A | in the link text cannot end the text early."""
        self.assertEqual(
            markdown_to_jirawiki("[a|b](http://u)"), "[a&#124;b|http://u]"
        )

    def test_autolink(self):
        """A link whose text is the URL becomes [url]."""
        self.assertEqual(
            markdown_to_jirawiki("<https://example.com>"), "[https://example.com]"
        )

    def test_image(self):
        """![alt](url) becomes !url!."""
        self.assertEqual(
            markdown_to_jirawiki("![alt](https://x.org/a.png)"), "!https://x.org/a.png!"
        )

    def test_blockquote(self):
        """> text becomes a {quote} macro."""
        self.assertEqual(markdown_to_jirawiki("> quoted"), "{quote}\nquoted\n{quote}")

    def test_thematic_break(self):
        """*** becomes ----."""
        self.assertEqual(markdown_to_jirawiki("***"), "----")

    def test_hard_break(self):
        """Hard line breaks become newlines."""
        self.assertEqual(
            markdown_to_jirawiki("line one  \nline two"), "line one\nline two"
        )

    def test_table(self):
        """GFM table becomes ||header|| and |cell| rows."""
        self.assertEqual(
            markdown_to_jirawiki("| A | B |\n| --- | --- |\n| 1 | 2 |"),
            "||A||B||\n|1|2|",
        )

    def test_escape_macros(self):
        """Braces in plain text are escaped only when requested."""
        self.assertEqual(markdown_to_jirawiki("use {braces}"), "use {braces}")
        self.assertEqual(
            markdown_to_jirawiki("use {braces}", escape_macros=True),
            "use \\{braces\\}",
        )

    def test_bytes_input(self):
        """UTF-8 bytes are accepted."""
        self.assertEqual(markdown_to_jirawiki("**x**".encode("utf-8")), "*x*")

    def test_invalid_utf8_raises(self):
        """Undecodable input is reported, not swallowed."""
        with self.assertRaises(MarkupConversionError):
            markdown_to_jirawiki(b"\xff\xfe\xfa")

    def test_renderer_errors_propagate(self):
        """A failing render method is not reported as a conversion error."""
        with patch.object(
            JiraWikiRenderer, "heading", side_effect=TypeError("bad render")
        ):
            with self.assertRaises(TypeError):
                markdown_to_jirawiki("# Title")

    def test_too_deep_nesting_raises(self):
        """Running out of recursion depth is a conversion error."""
        with patch.object(JiraWikiRenderer, "heading", side_effect=RecursionError):
            with self.assertRaises(MarkupConversionError):
                markdown_to_jirawiki("# Title")

    def test_warnings_for_italic(self):
        """Italic collapse is reported."""
        result = convert_with_warnings("*italic*")
        self.assertEqual(result.text, "*italic*")
        self.assertTrue(any("Italic" in w for w in result.warnings))

    def test_warnings_for_html(self):
        """HTML pass-through is reported."""
        result = convert_with_warnings("<div>x</div>")
        self.assertIn("<div>x</div>", result.text)
        self.assertTrue(any("HTML" in w for w in result.warnings))

    def test_no_warnings_for_clean_input(self):
        """Bold and code produce no warnings."""
        result = convert_with_warnings("**bold** and `code`")
        self.assertEqual(result.warnings, [])
        self.assertEqual(result.source_format, "markdown")
        self.assertEqual(result.target_format, "jirawiki")


class TestRoundTrip(unittest.TestCase):
    """Wiki -> Markdown -> wiki round trips on structural elements."""

    def test_round_trips(self):
        for wiki in [
            "h2. Title",
            "{code:go}\nfmt.Println()\n{code}",
            "* a\n** b\n*** c",
            "* *important* item",
            "||A||B||\n|1|2|",
            "[Example|https://example.com]",
            "# one\n# two",
            "# one\n## two\n### three",
            "# a\n#* b\n# c",
            "* a\n*# b",
        ]:
            with self.subTest(wiki=wiki):
                self.assertEqual(markdown_to_jirawiki(to_markdown(wiki)), wiki)

    def test_italic_round_trip_is_lossy(self):
        """Italic comes back as bold."""
        self.assertEqual(markdown_to_jirawiki(to_markdown("_word_")), "*word*")

    def test_underline_round_trip_is_lossy(self):
        """Underline comes back as bold."""
        self.assertEqual(markdown_to_jirawiki(to_markdown("+word+")), "*word*")


class TestLanguageMapping(unittest.TestCase):
    """Code language name mapping."""

    def test_markdown_to_jira(self):
        self.assertEqual(markdown_to_jira_lang("sh"), "bash")
        self.assertEqual(markdown_to_jira_lang("PY"), "python")
        self.assertEqual(markdown_to_jira_lang("text"), "none")
        self.assertEqual(markdown_to_jira_lang("rust"), "rust")

    def test_jira_to_markdown(self):
        self.assertEqual(jira_to_markdown_lang("none"), "text")
        self.assertEqual(jira_to_markdown_lang("c#"), "csharp")
        self.assertEqual(jira_to_markdown_lang("java"), "java")


class TestFormatDetection(unittest.TestCase):
    """Heuristic format detection."""

    def test_wiki_heading(self):
        self.assertEqual(detect_format_heuristic("h1. Title\nbody"), "jirawiki")

    def test_wiki_code_macro(self):
        self.assertEqual(detect_format_heuristic("{code:java}\nx\n{code}"), "jirawiki")

    def test_wiki_table(self):
        self.assertEqual(detect_format_heuristic("||A||B||\n|1|2|"), "jirawiki")

    def test_markdown(self):
        self.assertEqual(
            detect_format_heuristic("# Title\n\n**bold** and [a](https://b)"),
            "markdown",
        )

    def test_empty_defaults_to_markdown(self):
        self.assertEqual(detect_format_heuristic(""), "markdown")


if __name__ == "__main__":
    unittest.main()

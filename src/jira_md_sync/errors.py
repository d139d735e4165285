"""Exception hierarchy for jira-md-sync."""


class JiraMdError(Exception):
    """Base class for errors reported to the user."""


class MarkupConversionError(JiraMdError):
    """Markdown input could not be decoded or parsed."""


class TicketFormatError(JiraMdError):
    """A ticket file has malformed front matter."""

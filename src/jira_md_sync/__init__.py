"""Synchronize Jira tickets with local Markdown files."""

__version__ = "0.1.0"

"""Shared pytest fixtures for jira-md-sync tests."""

import pytest
from dotenv import load_dotenv

from jira_md_sync.config import Config
from jira_md_sync.ticket import Ticket

load_dotenv()

_ENV_VARS = (
    "JIRA_MD_CONFIG",
    "JIRA_MD_DIRECTORY",
    "JIRA_MD_CACHE_DIRECTORY",
    "JIRA_MD_ESCAPE_MACROS",
    "JIRA_MD_DEBUG",
    "JIRA_MD_MAX_WORKERS",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every jira-md-sync environment variable for the test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_config(tmp_path):
    """Config rooted in a temporary directory."""
    return Config(
        directory=str(tmp_path / "tickets"),
        cache_directory=str(tmp_path / "cache"),
    )


@pytest.fixture
def sample_ticket():
    """A fetched ticket with both editable and server-owned fields."""
    return Ticket(
        key="PROJ-1",
        type="bug",
        status="Open",
        assignee="Jane Doe",
        reporter="John Roe",
        created_at="2024-01-02T10:00:00.000+0000",
        updated_at="2024-01-03T10:00:00.000+0000",
        title="Fix the login page",
        body="The login button does **nothing**.\n\n* step one\n* step two",
    )


@pytest.fixture
def ticket_dirs(tmp_path):
    """Empty ``(local_dir, cache_dir)`` directories under tmp_path."""
    local_dir = tmp_path / "tickets"
    cache_dir = tmp_path / "cache"
    local_dir.mkdir()
    cache_dir.mkdir()
    return local_dir, cache_dir

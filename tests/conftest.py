import pytest
import structlog

from markovia.config import Settings


@pytest.fixture(autouse=True)
def _restore_structlog_config():
    """Undo logging configuration done by a test (e.g. the CLI binding a captured stderr)."""
    saved = structlog.get_config()
    yield
    structlog.configure(**saved)


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def tagged_document():
    """A document whose front matter tags its first two body lines."""
    return (
        "---\n"
        "title: Notes\n"
        "authorship:\n"
        "  external:\n"
        "    - start: 0\n"
        "      end: 1\n"
        "---\n"
        "pasted one\n"
        "pasted two\n"
        "my own words\n"
    )


@pytest.fixture
def markdown_file(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text("# Notes\n\nfirst\nsecond\nthird\n", encoding="utf-8")
    return path

from typing import Dict, Iterator, List, Optional, Sequence

import structlog
from pydantic import BaseModel

from markovia.config import Settings, get_settings
from markovia.diff import delta_from_change, deltas_from_texts
from markovia.exceptions import SessionError
from markovia.frontmatter import (
    content_start_line,
    extract_frontmatter,
    parse_authorship,
    update_frontmatter,
)
from markovia.models import AuthorshipData, LineRange, Span
from markovia.parser import parse
from markovia.tracker import AnnotationTracker, remove_range

logger = structlog.get_logger(__name__)


class TextChange(BaseModel):
    """
    One replacement reported by the host.
    `end_line` is the line of the replaced range's end position.
    """
    start_line: int
    end_line: int
    text: str


def _shift(ranges: Sequence[LineRange], offset: int) -> List[LineRange]:
    return [LineRange(start=r.start + offset, end=r.end + offset) for r in ranges]


class DocumentSession:
    """
    Per-document state: the current text snapshot and its external-authorship ranges.
    Tracker ranges are absolute document lines (front matter included).
    """

    def __init__(self, uri: str, text: str, version: int = 0, settings: Optional[Settings] = None):
        self.uri = uri
        self.text = text
        self.version = version
        self.settings = settings or get_settings()

        frontmatter = extract_frontmatter(text)
        if frontmatter:
            authorship = parse_authorship(frontmatter.data)
            offset = frontmatter.content_start_line
        else:
            authorship = AuthorshipData()
            offset = 0

        self.tracker = AnnotationTracker(_shift(authorship.external, offset))
        logger.info(f"Opened {uri} with {len(self.tracker)} external ranges")

    def _accept_version(self, version: int) -> bool:
        if version <= self.version:
            logger.warning(
                f"Ignoring change for {self.uri}: version {version} already applied (current {self.version})"
            )
            return False
        return True

    def apply_changes(self, new_text: str, changes: Sequence[TextChange], version: int) -> bool:
        """
        Applies one host notification. Stale or duplicate versions are ignored
        so every edit reaches the tracker once, in order.
        """
        if not self._accept_version(version):
            return False

        for change in changes:
            self.tracker.adjust_for_edit(delta_from_change(change.start_line, change.end_line, change.text))

        self.text = new_text
        self.version = version
        return True

    def replace_text(self, new_text: str, version: int) -> bool:
        """Like apply_changes, for hosts that only report the new full text."""
        if not self._accept_version(version):
            return False

        for delta in deltas_from_texts(self.text, new_text):
            self.tracker.adjust_for_edit(delta)

        self.text = new_text
        self.version = version
        return True

    def spans(self) -> List[Span]:
        if not self.settings.enable_wysiwym:
            return []
        return parse(self.text, link_exclusion=self.settings.link_exclusion)

    def tag(self, start_line: int, end_line: int):
        self.tracker.add(LineRange(start=start_line, end=end_line))

    def untag(self, start_line: int, end_line: int):
        self.tracker.remove(LineRange(start=start_line, end=end_line))

    def is_external(self, line: int) -> bool:
        return self.tracker.query(line)

    @property
    def external_ranges(self) -> List[LineRange]:
        return self.tracker.ranges

    def save(self) -> str:
        """
        Writes the ranges into the front matter and returns the resulting text.

        The session adopts the returned text, re-basing its ranges onto the new
        front matter. Ranges covering front matter lines are not persisted.
        """
        offset = content_start_line(self.text)
        ranges = self.tracker.ranges
        if offset:
            ranges = _shift(remove_range(ranges, LineRange(start=0, end=offset - 1)), -offset)

        new_text = update_frontmatter(self.text, AuthorshipData(external=ranges))
        self.text = new_text
        self.tracker = AnnotationTracker(_shift(ranges, content_start_line(new_text)))
        logger.info(f"Saved {len(ranges)} external ranges for {self.uri}")
        return new_text


class SessionRegistry:
    """
    Owns the sessions of all open documents. Lifecycle follows the host's
    open/close notifications.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings
        self._sessions: Dict[str, DocumentSession] = {}

    def open(self, uri: str, text: str, version: int = 0) -> DocumentSession:
        if uri in self._sessions:
            raise SessionError(f"Document already open: {uri}")
        session = DocumentSession(uri, text, version=version, settings=self.settings)
        self._sessions[uri] = session
        return session

    def close(self, uri: str):
        if uri not in self._sessions:
            raise SessionError(f"Document not open: {uri}")
        del self._sessions[uri]
        logger.info(f"Closed {uri}")

    def get(self, uri: str) -> DocumentSession:
        try:
            return self._sessions[uri]
        except KeyError:
            raise SessionError(f"Document not open: {uri}") from None

    def __contains__(self, uri: str) -> bool:
        return uri in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))

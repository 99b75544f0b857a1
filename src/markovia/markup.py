# FILE: src/markovia/markup.py

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Pattern, Tuple

from markovia.models import Span, SpanKind

LINK_EXCLUSION_EMPHASIS = "emphasis"
LINK_EXCLUSION_ALL = "all"

LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")

# Task metadata glyphs: calendar, label, priority arrows
DATE_PATTERN = re.compile(r"\U0001F4C5\s*(\d{4}-\d{2}-\d{2})")
RECURRENCE_PATTERN = re.compile(
    r"\U0001F501\uFE0F?\s*(.+?)(?=\s*[\U0001F4C5\U0001F3F7\u23EB\u23EC\U0001F53C\U0001F53D]|\s*$)"
)


@dataclass(frozen=True)
class InlineMatch:
    start: int
    end: int
    content_start: int
    content_end: int


@dataclass(frozen=True)
class InlineRule:
    """
    One delimiter-pair construct (e.g. **bold**).
    The content is always the last participating group of the pattern.
    """
    name: str
    pattern: Pattern
    marker_kind: SpanKind
    content_kind: SpanKind
    # Whether a match touching a link is dropped
    excluded_by_links: bool

    def matches(self, line: str) -> Iterator[InlineMatch]:
        for m in self.pattern.finditer(line):
            content_start, content_end = m.span(m.lastindex)
            yield InlineMatch(m.start(), m.end(), content_start, content_end)


INLINE_RULES: List[InlineRule] = [
    InlineRule(
        name="bold",
        pattern=re.compile(r"(\*\*|__)([^*_]+)\1"),
        marker_kind=SpanKind.BOLD_MARKER,
        content_kind=SpanKind.BOLD_CONTENT,
        excluded_by_links=True,
    ),
    InlineRule(
        name="italic",
        # Lookarounds keep **x** from also matching as two italics
        pattern=re.compile(r"(?<!\*)\*(?!\*)([^*]+)\*(?!\*)|(?<!_)_(?!_)([^_]+)_(?!_)"),
        marker_kind=SpanKind.ITALIC_MARKER,
        content_kind=SpanKind.ITALIC_CONTENT,
        excluded_by_links=True,
    ),
    InlineRule(
        name="strike",
        pattern=re.compile(r"~~([^~]+)~~"),
        marker_kind=SpanKind.STRIKE_MARKER,
        content_kind=SpanKind.STRIKE_CONTENT,
        excluded_by_links=False,
    ),
    InlineRule(
        name="underline",
        pattern=re.compile(r"<u>([^<]+)</u>"),
        marker_kind=SpanKind.UNDERLINE_MARKER,
        content_kind=SpanKind.UNDERLINE_CONTENT,
        excluded_by_links=False,
    ),
    InlineRule(
        name="code",
        pattern=re.compile(r"`([^`]+)`"),
        marker_kind=SpanKind.CODE_MARKER,
        content_kind=SpanKind.CODE_CONTENT,
        excluded_by_links=False,
    ),
]


def _intersects(start: int, end: int, excluded: List[Tuple[int, int]]) -> bool:
    return any(start < ex_end and end > ex_start for ex_start, ex_end in excluded)


class _LineSpans:
    """Collects spans for one line, shifting local columns by the line offset."""

    def __init__(self, line_no: int, offset: int):
        self.line_no = line_no
        self.offset = offset
        self.spans: List[Span] = []

    def add(self, kind: SpanKind, start: int, end: int, level: Optional[int] = None):
        if end <= start:
            return
        self.spans.append(
            Span(
                kind=kind,
                line_start=self.line_no,
                col_start=self.offset + start,
                line_end=self.line_no,
                col_end=self.offset + end,
                level=level,
            )
        )


def find_links(line: str) -> List[Tuple[int, int, int, int]]:
    """
    Returns (start, end, text_end, url_start) for every [text](url) in the line.
    """
    links = []
    for m in LINK_PATTERN.finditer(line):
        links.append((m.start(), m.end(), m.end(1), m.start(2)))
    return links


def parse_inline(
    line: str,
    line_no: int,
    offset: int = 0,
    link_exclusion: str = LINK_EXCLUSION_EMPHASIS,
) -> List[Span]:
    """
    Matches inline constructs in `line` and returns their spans.

    `line` may be the remainder of a source line after a container prefix;
    `offset` is the column at which it starts in the source line.
    Links are located first and recorded in an exclusion set. Rules flagged
    `excluded_by_links` (or every rule, when link_exclusion == "all") drop
    matches intersecting a link. Metadata glyphs ignore the exclusion set.
    """
    out = _LineSpans(line_no, offset)
    excluded: List[Tuple[int, int]] = []

    # 1. Links
    for start, end, text_end, url_start in find_links(line):
        excluded.append((start, end))
        url_end = end - 1
        out.add(SpanKind.LINK_MARKER, start, start + 1)
        out.add(SpanKind.LINK_TEXT, start + 1, text_end)
        out.add(SpanKind.LINK_MARKER, text_end, url_start)
        out.add(SpanKind.LINK_URL, url_start, url_end)
        out.add(SpanKind.LINK_MARKER, url_end, end)

    # 2. Delimited constructs
    exclude_all = link_exclusion == LINK_EXCLUSION_ALL
    for rule in INLINE_RULES:
        for match in rule.matches(line):
            if (rule.excluded_by_links or exclude_all) and _intersects(match.start, match.end, excluded):
                continue
            out.add(rule.marker_kind, match.start, match.content_start)
            out.add(rule.content_kind, match.content_start, match.content_end)
            out.add(rule.marker_kind, match.content_end, match.end)

    # 3. Task metadata
    out.spans.extend(parse_metadata(line, line_no, offset))

    return out.spans


def parse_metadata(line: str, line_no: int, offset: int = 0) -> List[Span]:
    """Spans for the calendar glyph (when followed by an ISO date) and recurrence rules."""
    out = _LineSpans(line_no, offset)

    for m in DATE_PATTERN.finditer(line):
        out.add(SpanKind.META_EMOJI, m.start(), m.start() + 1)

    for m in RECURRENCE_PATTERN.finditer(line):
        text_start = m.start(1)
        out.add(SpanKind.META_EMOJI, m.start(), text_start)
        out.add(SpanKind.META_TEXT, text_start, m.end(1))

    return out.spans

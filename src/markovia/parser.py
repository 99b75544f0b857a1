"""
Span parser for the "what you see is what you mean" view.

A single top-to-bottom line scan. Each line is classified by the scan state
(normal or inside a fenced block) and, in normal state, by the first matching
container rule. Inline constructs are matched afterwards on the part of the
line the container leaves over.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

import structlog

from markovia.markup import LINK_EXCLUSION_EMPHASIS, parse_inline
from markovia.models import Span, SpanKind

logger = structlog.get_logger(__name__)

FENCE_PATTERN = re.compile(r"^(`{3,}|~{3,})")
HEADING_PATTERN = re.compile(r"^(#{1,6})[ \t]+(\S.*)$")
RULE_PATTERN = re.compile(r"^(-{3,}|\*{3,}|_{3,})$")
BLOCKQUOTE_PATTERN = re.compile(r"^> ?")
TASK_PATTERN = re.compile(r"^(\s*)([-*+])\s+\[([ xX])\]\s+")
LIST_PATTERN = re.compile(r"^(\s*)([-*+]|\d+\.)\s")


class ScanState(str, Enum):
    NORMAL = "normal"
    IN_FENCED_BLOCK = "in-fenced-block"


def is_fence(line: str) -> bool:
    return FENCE_PATTERN.match(line) is not None


def transition(state: ScanState, line: str) -> ScanState:
    """Next scan state after `line`. Only fence lines change state."""
    if not is_fence(line):
        return state
    if state == ScanState.NORMAL:
        return ScanState.IN_FENCED_BLOCK
    return ScanState.NORMAL


@dataclass(frozen=True)
class ContainerMatch:
    marker_kind: SpanKind
    marker_start: int
    marker_end: int
    # Column where inline matching starts
    inline_start: int
    content_kind: Optional[SpanKind] = None
    level: Optional[int] = None
    task_done: Optional[bool] = None


ContainerRule = Callable[[str], Optional[ContainerMatch]]


def match_heading(line: str) -> Optional[ContainerMatch]:
    m = HEADING_PATTERN.match(line)
    if not m:
        return None
    content_start = m.start(2)
    return ContainerMatch(
        marker_kind=SpanKind.HEADING_MARKER,
        marker_start=0,
        marker_end=content_start,
        inline_start=content_start,
        content_kind=SpanKind.HEADING_CONTENT,
        level=len(m.group(1)),
    )


def match_rule(line: str) -> Optional[ContainerMatch]:
    if not RULE_PATTERN.match(line):
        return None
    return ContainerMatch(
        marker_kind=SpanKind.RULE,
        marker_start=0,
        marker_end=len(line),
        inline_start=0,
    )


def match_blockquote(line: str) -> Optional[ContainerMatch]:
    m = BLOCKQUOTE_PATTERN.match(line)
    if not m:
        return None
    return ContainerMatch(
        marker_kind=SpanKind.BLOCKQUOTE_MARKER,
        marker_start=0,
        marker_end=m.end(),
        inline_start=m.end(),
        content_kind=SpanKind.BLOCKQUOTE_CONTENT,
    )


def match_task_item(line: str) -> Optional[ContainerMatch]:
    m = TASK_PATTERN.match(line)
    if not m:
        return None
    return ContainerMatch(
        marker_kind=SpanKind.LIST_MARKER,
        marker_start=len(m.group(1)),
        marker_end=m.end(),
        inline_start=m.end(),
        task_done=m.group(3).lower() == "x",
    )


def match_list_item(line: str) -> Optional[ContainerMatch]:
    m = LIST_PATTERN.match(line)
    if not m:
        return None
    marker_start = len(m.group(1))
    marker_end = marker_start + len(m.group(2)) + 1
    return ContainerMatch(
        marker_kind=SpanKind.LIST_MARKER,
        marker_start=marker_start,
        marker_end=marker_end,
        inline_start=marker_end,
    )


# First match wins. Task items precede list items: their pattern is a superset.
CONTAINER_RULES: List[Tuple[str, ContainerRule]] = [
    ("heading", match_heading),
    ("rule", match_rule),
    ("blockquote", match_blockquote),
    ("task", match_task_item),
    ("list", match_list_item),
]


def match_container(line: str) -> Optional[ContainerMatch]:
    for _name, rule in CONTAINER_RULES:
        match = rule(line)
        if match is not None:
            return match
    return None


@dataclass
class ParseResult:
    spans: List[Span] = field(default_factory=list)
    final_state: ScanState = ScanState.NORMAL
    # (line, done) for every task-list item outside fenced blocks
    tasks: List[Tuple[int, bool]] = field(default_factory=list)

    @property
    def unterminated_block(self) -> bool:
        return self.final_state == ScanState.IN_FENCED_BLOCK


def _split_lines(text: str) -> List[str]:
    lines = text.split("\n")
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _line_span(kind: SpanKind, line_no: int, start: int, end: int, level: Optional[int] = None) -> Span:
    return Span(kind=kind, line_start=line_no, col_start=start, line_end=line_no, col_end=end, level=level)


def _parse_normal_line(
    line: str,
    line_no: int,
    link_exclusion: str,
    result: ParseResult,
):
    container = match_container(line)

    if container is None:
        result.spans.extend(parse_inline(line, line_no, 0, link_exclusion))
        return

    if container.marker_end > container.marker_start:
        result.spans.append(
            _line_span(container.marker_kind, line_no, container.marker_start, container.marker_end, container.level)
        )
    if container.content_kind is not None and container.inline_start < len(line):
        result.spans.append(
            _line_span(container.content_kind, line_no, container.inline_start, len(line), container.level)
        )
    if container.task_done is not None:
        result.tasks.append((line_no, container.task_done))
        if container.task_done and container.inline_start < len(line):
            # Completed items are struck through after the checkbox
            result.spans.append(_line_span(SpanKind.STRIKE_CONTENT, line_no, container.inline_start, len(line)))

    remainder = line[container.inline_start:]
    result.spans.extend(parse_inline(remainder, line_no, container.inline_start, link_exclusion))


def parse_document(text: str, link_exclusion: str = LINK_EXCLUSION_EMPHASIS) -> ParseResult:
    """
    Scans the whole document and returns its spans plus the terminal scan state.
    Never raises: malformed markup simply produces no span.
    """
    result = ParseResult()
    state = ScanState.NORMAL
    lines = _split_lines(text)

    for line_no, line in enumerate(lines):
        if is_fence(line):
            result.spans.append(_line_span(SpanKind.FENCE_MARKER, line_no, 0, len(line)))
        elif state == ScanState.IN_FENCED_BLOCK:
            # Exactly one span per block line, even when empty
            result.spans.append(_line_span(SpanKind.BLOCK_CONTENT, line_no, 0, len(line)))
        else:
            _parse_normal_line(line, line_no, link_exclusion, result)
        state = transition(state, line)

    result.final_state = state
    if result.unterminated_block:
        logger.debug("Fenced block not closed before end of document")
    logger.debug(f"Parsed {len(lines)} lines into {len(result.spans)} spans")
    return result


def parse(text: str, link_exclusion: str = LINK_EXCLUSION_EMPHASIS) -> List[Span]:
    return parse_document(text, link_exclusion).spans

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class SpanKind(str, Enum):
    HEADING_MARKER = "heading-marker"
    HEADING_CONTENT = "heading-content"
    BOLD_MARKER = "bold-marker"
    BOLD_CONTENT = "bold-content"
    ITALIC_MARKER = "italic-marker"
    ITALIC_CONTENT = "italic-content"
    STRIKE_MARKER = "strike-marker"
    STRIKE_CONTENT = "strike-content"
    UNDERLINE_MARKER = "underline-marker"
    UNDERLINE_CONTENT = "underline-content"
    CODE_MARKER = "code-marker"
    CODE_CONTENT = "code-content"
    LINK_MARKER = "link-marker"
    LINK_TEXT = "link-text"
    LINK_URL = "link-url"
    LIST_MARKER = "list-marker"
    BLOCKQUOTE_MARKER = "blockquote-marker"
    BLOCKQUOTE_CONTENT = "blockquote-content"
    FENCE_MARKER = "fence-marker"
    BLOCK_CONTENT = "block-content"
    RULE = "rule"
    META_EMOJI = "meta-emoji"
    META_TEXT = "meta-text"


@dataclass(frozen=True)
class Span:
    """
    One styled region of a single line.
    Columns are end-exclusive offsets into the line string.
    """
    kind: SpanKind
    line_start: int
    col_start: int
    line_end: int
    col_end: int
    # Heading level (1..6) for heading kinds, None otherwise
    level: Optional[int] = None

    @property
    def style_key(self) -> str:
        if self.level is not None:
            return f"{self.kind.value}-{self.level}"
        return self.kind.value


class LineRange(BaseModel):
    """
    Inclusive, 0-indexed range of lines.
    Not validated on construction: the tracker drops malformed ranges instead of raising.
    """
    start: int
    end: int

    @property
    def is_valid(self) -> bool:
        return 0 <= self.start <= self.end

    def contains(self, line: int) -> bool:
        return self.start <= line <= self.end


class EditDelta(BaseModel):
    """
    Line-granular description of one text replacement.
    """
    edit_start_line: int
    # Line where the replaced region ends; lines in [start, end_exclusive) are consumed
    edit_end_line_exclusive: int
    inserted_line_count: int

    @property
    def line_delta(self) -> int:
        return self.inserted_line_count - (self.edit_end_line_exclusive - self.edit_start_line)


class AuthorshipData(BaseModel):
    external: List[LineRange] = []

"""
Line-range bookkeeping for externally authored content.

Ranges are kept normalized: sorted by start, with at least one untagged line
between any two ranges. They are adjusted incrementally from edit deltas and
never re-derived from document content.
"""
from bisect import bisect_right
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set

import structlog
from pydantic import ValidationError

from markovia.models import EditDelta, LineRange

logger = structlog.get_logger(__name__)


def merge_ranges(ranges: Iterable[LineRange]) -> List[LineRange]:
    """
    Sorts ranges and folds overlapping or adjacent ones together.
    Invalid ranges (negative start, start > end) are dropped.
    """
    valid = sorted((r for r in ranges if r.is_valid), key=lambda r: (r.start, r.end))
    if not valid:
        return []

    merged = [LineRange(start=valid[0].start, end=valid[0].end)]
    for current in valid[1:]:
        last = merged[-1]
        if current.start <= last.end + 1:
            last.end = max(last.end, current.end)
        else:
            merged.append(LineRange(start=current.start, end=current.end))

    return merged


def add_range(ranges: List[LineRange], new_range: LineRange) -> List[LineRange]:
    if not new_range.is_valid:
        logger.debug(f"Ignoring invalid range {new_range.start}-{new_range.end}")
        return merge_ranges(ranges)
    return merge_ranges([*ranges, new_range])


def remove_range(ranges: List[LineRange], removed: LineRange) -> List[LineRange]:
    """
    Subtracts `removed` from every range, splitting a range that strictly contains it.
    """
    if not removed.is_valid:
        logger.debug(f"Ignoring invalid range {removed.start}-{removed.end}")
        return merge_ranges(ranges)

    result: List[LineRange] = []
    for r in ranges:
        if removed.end < r.start or removed.start > r.end:
            result.append(LineRange(start=r.start, end=r.end))
            continue

        if removed.start > r.start:
            result.append(LineRange(start=r.start, end=min(r.end, removed.start - 1)))
        if removed.end < r.end:
            result.append(LineRange(start=max(r.start, removed.end + 1), end=r.end))

    return result


def _adjust_range(r: LineRange, delta: EditDelta) -> Optional[LineRange]:
    edit_start = delta.edit_start_line
    edit_end = delta.edit_end_line_exclusive
    shift = delta.line_delta
    start, end = r.start, r.end

    if edit_start > end:
        # Edit after the range
        pass
    elif edit_end <= start:
        # Edit before the range
        start += shift
        end += shift
    elif edit_start <= start and edit_end >= end + 1:
        # Edit swallows the range
        return None
    elif edit_start >= start and edit_end <= end:
        # Edit inside the range
        end += shift
    elif edit_start < start:
        # Edit crosses the leading boundary
        start = edit_start + delta.inserted_line_count
        end += shift
    else:
        # Edit crosses the trailing boundary
        end = edit_start

    adjusted = LineRange(start=start, end=end)
    return adjusted if adjusted.is_valid else None


def adjust_ranges(ranges: List[LineRange], delta: EditDelta) -> List[LineRange]:
    """
    Moves, trims or drops each range in response to one edit, then re-merges.
    Deltas must be applied exactly once and in the order the edits happened.
    """
    if not ranges:
        return []

    adjusted = []
    for r in ranges:
        new_range = _adjust_range(r, delta)
        if new_range is None:
            logger.debug(f"Dropping range {r.start}-{r.end} after edit")
            continue
        adjusted.append(new_range)

    return merge_ranges(adjusted)


def is_line_in_ranges(line: int, ranges: List[LineRange]) -> bool:
    """Binary search membership test. `ranges` must be normalized."""
    idx = bisect_right(ranges, line, key=lambda r: r.start) - 1
    return idx >= 0 and ranges[idx].end >= line


def lines_in_ranges(ranges: Iterable[LineRange]) -> Set[int]:
    lines: Set[int] = set()
    for r in ranges:
        lines.update(range(r.start, r.end + 1))
    return lines


class AnnotationTracker:
    """
    Owns the normalized range set of one document.
    """

    def __init__(self, ranges: Optional[Iterable[LineRange]] = None):
        self._ranges: List[LineRange] = merge_ranges(ranges or [])

    @property
    def ranges(self) -> List[LineRange]:
        return [r.model_copy() for r in self._ranges]

    def __len__(self) -> int:
        return len(self._ranges)

    def __iter__(self) -> Iterator[LineRange]:
        return iter(self.ranges)

    def add(self, new_range: LineRange):
        self._ranges = add_range(self._ranges, new_range)
        logger.debug(f"Tagged lines {new_range.start}-{new_range.end}; {len(self._ranges)} ranges")

    def remove(self, removed: LineRange):
        self._ranges = remove_range(self._ranges, removed)
        logger.debug(f"Untagged lines {removed.start}-{removed.end}; {len(self._ranges)} ranges")

    def adjust_for_edit(self, delta: EditDelta):
        self._ranges = adjust_ranges(self._ranges, delta)

    def query(self, line: int) -> bool:
        return is_line_in_ranges(line, self._ranges)

    def to_payload(self) -> Optional[List[Dict[str, int]]]:
        """Serialized form for persistence; None when there is nothing to store."""
        if not self._ranges:
            return None
        return [r.model_dump() for r in self._ranges]

    @classmethod
    def from_payload(cls, payload: Optional[List[Any]]) -> "AnnotationTracker":
        ranges = []
        for entry in payload or []:
            try:
                ranges.append(LineRange.model_validate(entry, strict=True))
            except ValidationError:
                logger.warning(f"Discarding malformed range entry: {entry!r}")
        return cls(ranges)

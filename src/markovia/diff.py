from typing import List

import structlog
from diff_match_patch import diff_match_patch

from markovia.models import EditDelta

logger = structlog.get_logger(__name__)


def delta_from_change(start_line: int, end_line: int, inserted_text: str) -> EditDelta:
    """
    Translates a host change notification into an EditDelta.

    `start_line` / `end_line` are the lines of the replaced range's start and
    end positions (the end line is where the replaced region stops).
    """
    return EditDelta(
        edit_start_line=start_line,
        edit_end_line_exclusive=end_line,
        inserted_line_count=inserted_text.count("\n"),
    )


def _ensure_trailing_newline(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"


def deltas_from_texts(original_text: str, modified_text: str) -> List[EditDelta]:
    """
    Derives line deltas from two snapshots of a document.

    Used when the host reports only the new full text. Each delta is expressed
    in the coordinates of the document after the preceding deltas were applied,
    so feeding them in order to a tracker is equivalent to the whole edit.
    A hunk that replaces lines is reported the way a host reports typing over
    them: it starts and ends on lines that survive the edit.
    """
    dmp = diff_match_patch()

    # 1. Line-Level Encoding
    # Each line becomes one character so the diff never splits a line.
    # Both texts end in a newline so the last line tokenizes the same on each side.
    chars1, chars2, line_array = dmp.diff_linesToChars(
        _ensure_trailing_newline(original_text), _ensure_trailing_newline(modified_text)
    )

    # 2. Diff on the encoded strings, then decode back to line text
    diffs = dmp.diff_main(chars1, chars2, False)
    dmp.diff_charsToLines(diffs, line_array)

    deltas: List[EditDelta] = []

    # Line cursor in the partially edited document
    current_line = 0
    deleted_lines = 0
    inserted_lines = 0

    def flush():
        nonlocal current_line, deleted_lines, inserted_lines
        if not deleted_lines and not inserted_lines:
            return
        if deleted_lines and inserted_lines:
            # Replacement: the first and last replaced lines are rewritten in place
            delta = EditDelta(
                edit_start_line=current_line,
                edit_end_line_exclusive=current_line + deleted_lines - 1,
                inserted_line_count=inserted_lines - 1,
            )
        else:
            delta = EditDelta(
                edit_start_line=current_line,
                edit_end_line_exclusive=current_line + deleted_lines,
                inserted_line_count=inserted_lines,
            )
        deltas.append(delta)
        current_line += inserted_lines
        deleted_lines = 0
        inserted_lines = 0

    for op, text in diffs:
        if op == 0:  # Equal
            flush()
            current_line += text.count("\n")
        elif op == -1:  # Delete
            deleted_lines += text.count("\n")
        elif op == 1:  # Insert
            inserted_lines += text.count("\n")

    flush()

    logger.debug(f"Derived {len(deltas)} line deltas from text snapshots")
    return deltas

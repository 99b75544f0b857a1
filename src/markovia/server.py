import json
import logging
import sys
from pathlib import Path

import structlog
from mcp.server.fastmcp import FastMCP

# --- LOGGING CONFIGURATION ---
# CRITICAL: Redirect all logs to stderr.
# Any output to stdout will break the MCP JSON-RPC protocol.
logging.basicConfig(stream=sys.stderr, level=logging.INFO, force=True)

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)
# -----------------------------

from markovia.render import group_spans, span_to_dict
from markovia.session import DocumentSession

mcp = FastMCP("Markovia Markup Service")


def _read_text(path: str) -> str:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(p, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: str, text: str):
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


@mcp.tool()
def highlight_markdown(file_path: str) -> str:
    """
    Returns the styled spans of a local Markdown file as JSON, grouped by kind.

    Each span is {kind, line, start, end} with 0-indexed lines and end-exclusive columns.
    Marker kinds (e.g. "bold-marker") are the syntax characters; content kinds are the text they format.
    """
    try:
        session = DocumentSession(file_path, _read_text(file_path))
        groups = group_spans(session.spans())
        return json.dumps({k: [span_to_dict(s) for s in v] for k, v in groups.items()}, ensure_ascii=False)
    except Exception as e:
        return f"Error highlighting file: {str(e)}"


@mcp.tool()
def list_external_lines(file_path: str) -> str:
    """
    Lists the line ranges of a Markdown file that are tagged as externally authored (e.g. pasted).
    Ranges are inclusive and 0-indexed over the whole file, front matter included.
    """
    try:
        session = DocumentSession(file_path, _read_text(file_path))
        ranges = session.external_ranges
        if not ranges:
            return "No external ranges."
        return "\n".join(f"{r.start}-{r.end}" for r in ranges)
    except Exception as e:
        return f"Error reading ranges: {str(e)}"


@mcp.tool()
def tag_external_lines(file_path: str, start_line: int, end_line: int) -> str:
    """
    Tags lines start_line..end_line (inclusive, 0-indexed) as externally authored and saves
    the ranges into the file's YAML front matter. Adjacent or overlapping ranges are merged.
    """
    try:
        session = DocumentSession(file_path, _read_text(file_path))
        session.tag(start_line, end_line)
        _write_text(file_path, session.save())
        return f"Tagged lines {start_line}-{end_line}. Ranges now: {_describe(session)}"
    except Exception as e:
        return f"Error tagging lines: {str(e)}"


@mcp.tool()
def untag_lines(file_path: str, start_line: int, end_line: int) -> str:
    """
    Removes the external-authorship tag from lines start_line..end_line (inclusive, 0-indexed).
    A tagged range that strictly contains the given lines is split in two.
    """
    try:
        session = DocumentSession(file_path, _read_text(file_path))
        session.untag(start_line, end_line)
        _write_text(file_path, session.save())
        return f"Untagged lines {start_line}-{end_line}. Ranges now: {_describe(session)}"
    except Exception as e:
        return f"Error untagging lines: {str(e)}"


def _describe(session: DocumentSession) -> str:
    ranges = session.external_ranges
    return ", ".join(f"{r.start}-{r.end}" for r in ranges) if ranges else "none"


if __name__ == "__main__":
    # Runs the server over stdio
    mcp.run()

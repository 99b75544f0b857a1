"""
YAML front matter storage for authorship ranges.

Ranges are stored under ``authorship.external`` as ``{start, end}`` pairs,
counted from the first line after the front matter block.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
import yaml

from markovia.exceptions import FrontmatterError
from markovia.models import AuthorshipData, LineRange

logger = structlog.get_logger(__name__)

DELIMITER = "---"


@dataclass
class FrontmatterResult:
    data: Dict[str, Any]
    # First line after the closing delimiter
    content_start_line: int
    raw: str


def _find_block(lines: List[str]) -> int:
    """Index of the closing delimiter line, or -1 when there is no block."""
    if len(lines) < 3 or lines[0].strip() != DELIMITER:
        return -1
    for i in range(1, len(lines)):
        if lines[i].strip() == DELIMITER:
            return i
    return -1


def extract_frontmatter(text: str) -> Optional[FrontmatterResult]:
    lines = text.split("\n")
    end_line = _find_block(lines)
    if end_line == -1:
        return None

    body = "\n".join(lines[1:end_line])
    try:
        data = yaml.safe_load(body)
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse front matter: {e}")
        return None

    if data is None:
        data = {}
    if not isinstance(data, dict):
        logger.warning(f"Front matter is not a mapping (got {type(data).__name__})")
        return None

    return FrontmatterResult(
        data=data,
        content_start_line=end_line + 1,
        raw="\n".join(lines[: end_line + 1]),
    )


def content_start_line(text: str) -> int:
    result = extract_frontmatter(text)
    return result.content_start_line if result else 0


def _is_line_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_authorship(data: Dict[str, Any]) -> AuthorshipData:
    """
    Reads authorship ranges from front matter, discarding malformed entries.
    """
    authorship = data.get("authorship")
    if not isinstance(authorship, dict) or not isinstance(authorship.get("external"), list):
        return AuthorshipData()

    external = []
    for entry in authorship["external"]:
        if not isinstance(entry, dict):
            continue
        start, end = entry.get("start"), entry.get("end")
        if not (_is_line_number(start) and _is_line_number(end)):
            continue
        if start < 0 or end < start:
            continue
        external.append(LineRange(start=start, end=end))

    return AuthorshipData(external=external)


def serialize_authorship(authorship: AuthorshipData) -> str:
    if not authorship.external:
        return ""
    return yaml.safe_dump(
        {"authorship": authorship.model_dump()},
        sort_keys=False,
        default_flow_style=False,
        width=float("inf"),
    )


def update_frontmatter(text: str, authorship: AuthorshipData) -> str:
    """
    Returns `text` with its front matter rewritten to hold `authorship`.

    Other keys are preserved. The authorship key is dropped when there are no
    ranges, and the whole block is dropped when nothing else is left.
    """
    lines = text.split("\n")
    end_line = _find_block(lines)

    existing = extract_frontmatter(text)
    if end_line != -1 and existing is None:
        raise FrontmatterError("Existing front matter is not valid YAML; refusing to overwrite it")

    data: Dict[str, Any] = dict(existing.data) if existing else {}
    body_lines = lines[end_line + 1 :] if existing else lines

    if authorship.external:
        data["authorship"] = authorship.model_dump()
    else:
        data.pop("authorship", None)

    body = "\n".join(body_lines)
    if not data:
        return body

    yaml_content = yaml.safe_dump(
        data,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=float("inf"),
    ).strip()
    return f"{DELIMITER}\n{yaml_content}\n{DELIMITER}\n{body}"

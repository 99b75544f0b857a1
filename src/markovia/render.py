from collections import defaultdict
from typing import Dict, Iterable, List

from markovia.models import Span

_DIM = {"opacity": "0.3"}

DEFAULT_STYLES: Dict[str, Dict[str, str]] = {
    "heading-content-1": {"font-weight": "bold", "letter-spacing": "0.5px"},
    "heading-content-2": {"font-weight": "bold", "letter-spacing": "0.3px"},
    "heading-content-3": {"font-weight": "bold", "letter-spacing": "0.2px"},
    "heading-content-4": {"font-weight": "bold"},
    "heading-content-5": {"font-weight": "bold"},
    "heading-content-6": {"font-weight": "bold"},
    **{f"heading-marker-{level}": _DIM for level in range(1, 7)},
    "bold-content": {"font-weight": "bold"},
    "bold-marker": _DIM,
    "italic-content": {"font-style": "italic"},
    "italic-marker": _DIM,
    "strike-content": {"text-decoration": "line-through"},
    "strike-marker": _DIM,
    "underline-content": {"text-decoration": "underline"},
    "underline-marker": _DIM,
    "code-content": {"background-color": "inline-code", "border-radius": "3px"},
    "code-marker": _DIM,
    "link-text": {"color": "link", "text-decoration": "underline"},
    "link-marker": _DIM,
    "link-url": {"opacity": "0.3", "font-style": "italic"},
    "list-marker": {"opacity": "0.4"},
    "blockquote-marker": _DIM,
    "blockquote-content": {"font-style": "italic", "opacity": "0.9"},
    "fence-marker": _DIM,
    "block-content": {"background-color": "code-block"},
    "rule": _DIM,
    "meta-emoji": {"opacity": "0.8"},
    "meta-text": {"opacity": "0.6", "font-style": "italic"},
}


def group_spans(spans: Iterable[Span]) -> Dict[str, List[Span]]:
    """Groups spans by style key, keeping parse order within each group."""
    groups: Dict[str, List[Span]] = defaultdict(list)
    for span in spans:
        groups[span.style_key].append(span)
    return dict(groups)


def style_for(span: Span) -> Dict[str, str]:
    return dict(DEFAULT_STYLES.get(span.style_key, {}))


def span_to_dict(span: Span) -> Dict:
    return {
        "kind": span.style_key,
        "line": span.line_start,
        "start": span.col_start,
        "end": span.col_end,
    }

from importlib.metadata import PackageNotFoundError, version

from markovia.diff import delta_from_change, deltas_from_texts
from markovia.models import EditDelta, LineRange, Span, SpanKind
from markovia.parser import parse, parse_document
from markovia.session import DocumentSession, SessionRegistry
from markovia.tracker import AnnotationTracker

try:
    __version__ = version("markovia")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source/dev)
    __version__ = "0.0.0-dev"

__all__ = [
    "AnnotationTracker",
    "DocumentSession",
    "EditDelta",
    "LineRange",
    "SessionRegistry",
    "Span",
    "SpanKind",
    "delta_from_change",
    "deltas_from_texts",
    "parse",
    "parse_document",
    "__version__",
]

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from markovia.config import get_settings
from markovia.exceptions import MarkoviaError
from markovia.parser import parse_document
from markovia.render import group_spans, span_to_dict
from markovia.session import DocumentSession


def _configure_logging(level: str):
    # Logs go to stderr; stdout carries command output only
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _read_text(path: Path) -> str:
    if not path.exists():
        print(f"❌ Error: File {path} not found.", file=sys.stderr)
        sys.exit(1)
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, text: str):
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def handle_spans(args):
    text = _read_text(args.file)
    settings = get_settings()
    result = parse_document(text, link_exclusion=settings.link_exclusion)

    if args.group:
        payload = {key: [span_to_dict(s) for s in spans] for key, spans in group_spans(result.spans).items()}
    else:
        payload = [span_to_dict(s) for s in result.spans]

    print(json.dumps(payload, indent=2, ensure_ascii=False))
    if result.unterminated_block:
        print("⚠️  Warning: fenced code block is never closed.", file=sys.stderr)


def handle_ranges(args):
    session = DocumentSession(str(args.file), _read_text(args.file))
    ranges = session.external_ranges
    if not ranges:
        print("No external ranges.")
        return
    for r in ranges:
        print(f"{r.start}-{r.end}")


def _update_tags(args, tag: bool):
    if args.start < 0 or args.end < args.start:
        print(f"❌ Error: invalid line range {args.start}-{args.end}.", file=sys.stderr)
        sys.exit(1)

    session = DocumentSession(str(args.file), _read_text(args.file))
    if tag:
        session.tag(args.start, args.end)
    else:
        session.untag(args.start, args.end)

    try:
        new_text = session.save()
    except MarkoviaError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)

    _write_text(args.file, new_text)
    verb = "Tagged" if tag else "Untagged"
    print(f"✅ {verb} lines {args.start}-{args.end} in {args.file}")


def handle_tag(args):
    _update_tags(args, tag=True)


def handle_untag(args):
    _update_tags(args, tag=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="markovia", description="Markovia: markup spans and external-authorship ranges")
    sub = parser.add_subparsers(dest="command", required=True)

    spans = sub.add_parser("spans", help="Print styled spans for a Markdown file as JSON")
    spans.add_argument("file", type=Path)
    spans.add_argument("--group", action="store_true", help="Group spans by kind")
    spans.set_defaults(func=handle_spans)

    ranges = sub.add_parser("ranges", help="List line ranges tagged as externally authored")
    ranges.add_argument("file", type=Path)
    ranges.set_defaults(func=handle_ranges)

    for name, func, help_text in (
        ("tag", handle_tag, "Tag lines as externally authored"),
        ("untag", handle_untag, "Remove the external tag from lines"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("file", type=Path)
        p.add_argument("start", type=int, help="First line (0-indexed, absolute)")
        p.add_argument("end", type=int, help="Last line (inclusive)")
        p.set_defaults(func=func)

    return parser


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    _configure_logging(get_settings().log_level)
    args.func(args)


if __name__ == "__main__":
    main()

from markovia.parser import parse
from markovia.render import DEFAULT_STYLES, group_spans, span_to_dict, style_for
from markovia.models import SpanKind


def test_group_spans_by_style_key():
    groups = group_spans(parse("# A **b**\n## C"))
    assert [s.line_start for s in groups["heading-marker-1"]] == [0]
    assert [s.line_start for s in groups["heading-marker-2"]] == [1]
    assert len(groups["bold-marker"]) == 2


def test_every_kind_has_a_style():
    keys = set(DEFAULT_STYLES)
    for kind in SpanKind:
        if kind in (SpanKind.HEADING_MARKER, SpanKind.HEADING_CONTENT):
            assert all(f"{kind.value}-{level}" in keys for level in range(1, 7))
        else:
            assert kind.value in keys


def test_markers_are_dimmed():
    marker = parse("**b**")[0]
    assert style_for(marker) == {"opacity": "0.3"}


def test_span_to_dict():
    assert span_to_dict(parse("`x`")[1]) == {"kind": "code-content", "line": 0, "start": 1, "end": 2}

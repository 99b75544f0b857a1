import pytest

from markovia.config import Settings
from markovia.exceptions import SessionError
from markovia.frontmatter import extract_frontmatter
from markovia.models import LineRange, SpanKind
from markovia.session import DocumentSession, SessionRegistry, TextChange


def R(start, end):
    return LineRange(start=start, end=end)


class TestDocumentSession:
    def test_seeds_absolute_ranges_from_frontmatter(self, tagged_document, settings):
        session = DocumentSession("notes.md", tagged_document, settings=settings)
        assert session.external_ranges == [R(7, 8)]
        lines = tagged_document.split("\n")
        assert [lines[i] for i in range(7, 9)] == ["pasted one", "pasted two"]
        assert session.is_external(7)
        assert not session.is_external(9)

    def test_plain_document_starts_empty(self, settings):
        session = DocumentSession("a.md", "hello", settings=settings)
        assert session.external_ranges == []

    def test_change_adjusts_ranges(self, tagged_document, settings):
        session = DocumentSession("notes.md", tagged_document, version=1, settings=settings)
        # Two new lines typed at the start of the body
        lines = tagged_document.split("\n")
        new_text = "\n".join(lines[:7] + ["new", "lines"] + lines[7:])
        applied = session.apply_changes(new_text, [TextChange(start_line=7, end_line=7, text="new\nlines\n")], version=2)

        assert applied
        assert session.version == 2
        assert session.text == new_text
        assert session.external_ranges == [R(9, 10)]

    def test_stale_and_duplicate_versions_are_ignored(self, tagged_document, settings):
        session = DocumentSession("notes.md", tagged_document, version=3, settings=settings)
        change = [TextChange(start_line=0, end_line=0, text="\n")]

        assert not session.apply_changes("x", change, version=3)
        assert not session.apply_changes("x", change, version=2)
        assert session.external_ranges == [R(7, 8)]
        assert session.text == tagged_document

    def test_replace_text_derives_deltas(self, tagged_document, settings):
        session = DocumentSession("notes.md", tagged_document, settings=settings)
        new_text = tagged_document.replace("pasted one\n", "")
        assert session.replace_text(new_text, version=1)
        assert session.external_ranges == [R(7, 7)]

    def test_replace_text_appending_keeps_tag_in_place(self, settings):
        session = DocumentSession("a.md", "a\nb", settings=settings)
        session.tag(1, 1)
        assert session.replace_text("a\nb\nc", version=1)
        assert session.external_ranges == [R(1, 1)]

    def test_replace_text_and_apply_changes_agree_on_typing(self, settings):
        typed = DocumentSession("a.md", "a\nb\nc\n", settings=settings)
        snapshot = DocumentSession("a.md", "a\nb\nc\n", settings=settings)
        typed.tag(1, 1)
        snapshot.tag(1, 1)

        typed.apply_changes("a\nbb\nc\n", [TextChange(start_line=1, end_line=1, text="b")], version=1)
        snapshot.replace_text("a\nbb\nc\n", version=1)

        assert typed.external_ranges == snapshot.external_ranges == [R(1, 1)]

    def test_tag_and_untag(self, settings):
        session = DocumentSession("a.md", "0\n1\n2\n3\n4\n5", settings=settings)
        session.tag(1, 4)
        session.untag(2, 2)
        assert session.external_ranges == [R(1, 1), R(3, 4)]

    def test_spans(self, settings):
        session = DocumentSession("a.md", "# Title", settings=settings)
        assert [s.kind for s in session.spans()] == [SpanKind.HEADING_MARKER, SpanKind.HEADING_CONTENT]

    def test_spans_disabled(self):
        session = DocumentSession("a.md", "# Title", settings=Settings(_env_file=None, enable_wysiwym=False))
        assert session.spans() == []

    def test_link_exclusion_setting(self):
        session = DocumentSession("a.md", "[~~a~~](u)", settings=Settings(_env_file=None, link_exclusion="all"))
        assert SpanKind.STRIKE_CONTENT not in [s.kind for s in session.spans()]

    def test_save_round_trip(self, settings):
        session = DocumentSession("a.md", "a\nb\nc", settings=settings)
        session.tag(1, 2)
        saved = session.save()

        assert saved.startswith("---\n")
        assert session.text == saved

        reopened = DocumentSession("a.md", saved, settings=settings)
        lines = saved.split("\n")
        (r,) = reopened.external_ranges
        assert [lines[i] for i in range(r.start, r.end + 1)] == ["b", "c"]
        # The saving session was re-based onto the new front matter
        assert session.external_ranges == reopened.external_ranges

    def test_save_stores_body_relative_lines(self, tagged_document, settings):
        session = DocumentSession("notes.md", tagged_document, settings=settings)
        session.tag(9, 9)
        saved = session.save()
        data = extract_frontmatter(saved).data
        assert data["authorship"]["external"] == [{"start": 0, "end": 2}]
        assert data["title"] == "Notes"

    def test_save_drops_tags_on_frontmatter_lines(self, tagged_document, settings):
        session = DocumentSession("notes.md", tagged_document, settings=settings)
        session.untag(7, 8)
        session.tag(0, 2)
        saved = session.save()
        assert "authorship" not in extract_frontmatter(saved).data

    def test_save_without_ranges_removes_block(self, settings):
        text = "---\nauthorship:\n  external:\n    - start: 0\n      end: 0\n---\nbody"
        session = DocumentSession("a.md", text, settings=settings)
        session.untag(0, 100)
        assert session.save() == "body"
        assert session.external_ranges == []


class TestSessionRegistry:
    def test_open_get_close(self, settings):
        registry = SessionRegistry(settings)
        session = registry.open("a.md", "text")
        assert "a.md" in registry
        assert registry.get("a.md") is session
        assert len(registry) == 1
        assert list(registry) == ["a.md"]

        registry.close("a.md")
        assert "a.md" not in registry

    def test_open_twice(self, settings):
        registry = SessionRegistry(settings)
        registry.open("a.md", "text")
        with pytest.raises(SessionError):
            registry.open("a.md", "text")

    def test_unknown_document(self, settings):
        registry = SessionRegistry(settings)
        with pytest.raises(SessionError):
            registry.get("missing.md")
        with pytest.raises(SessionError):
            registry.close("missing.md")

    def test_sessions_are_independent(self, settings):
        registry = SessionRegistry(settings)
        a = registry.open("a.md", "x\ny")
        b = registry.open("b.md", "x\ny")
        a.tag(0, 1)
        assert b.external_ranges == []

"""Unit tests for the document emitter."""

import pytest
import yaml

from orgpost.export.emitter import DocumentEmitter, render_document, render_front_matter
from orgpost.models.export import ExportRecord
from orgpost.models.front_matter import FrontMatter
from orgpost.services.exceptions import WriteFailure


def make_record(output_path="posts/hello.md", body="Hello.\n", **front_matter):
    front_matter.setdefault("title", "Hello")
    return ExportRecord(
        heading="Blog / Hello",
        output_path=output_path,
        front_matter=FrontMatter(**front_matter),
        body=body,
    )


class TestRenderDocument:
    """Tests for document rendering."""

    def test_layout(self):
        """Test the document is delimited front matter, blank line, body."""
        document = render_document(make_record())

        assert document == "---\ntitle: Hello\ntags: []\ndraft: false\n---\n\nHello.\n"

    def test_empty_body_has_only_front_matter(self):
        """Test a record without body ends right after the closing delimiter."""
        document = render_document(make_record(body=""))

        assert document.endswith("draft: false\n---\n")

    def test_front_matter_round_trips_through_yaml(self):
        """Test dates stay strings and custom fields keep their order."""
        fm = FrontMatter(
            title="Ünïcode: a title",
            date="2020-01-15T10:30:00+00:00",
            tags=["python", "go"],
            custom={"series": "Learning", "weight": "10"},
        )

        text = render_front_matter(fm)
        loaded = yaml.safe_load(text)

        assert loaded["title"] == "Ünïcode: a title"
        assert loaded["date"] == "2020-01-15T10:30:00+00:00"
        assert loaded["weight"] == "10"
        assert list(loaded) == ["title", "date", "tags", "draft", "series", "weight"]
        assert "Ünïcode" in text

    def test_long_values_are_not_wrapped(self):
        """Test long summaries stay on one line."""
        summary = "word " * 60
        text = render_front_matter(FrontMatter(title="T", summary=summary.strip()))

        assert len([line for line in text.splitlines() if line.startswith("summary:")]) == 1
        assert len(text.splitlines()) == 4


class TestDocumentEmitter:
    """Tests for writing records to disk."""

    def test_emit_creates_directories(self, tmp_path):
        """Test intermediate directories are created."""
        emitter = DocumentEmitter(tmp_path / "content")

        path = emitter.emit(make_record(output_path="notes/deep/hello.md"))

        assert path == tmp_path / "content" / "notes" / "deep" / "hello.md"
        assert path.read_text(encoding="utf-8").startswith("---\ntitle: Hello\n")

    def test_emit_overwrites_existing_file(self, tmp_path):
        """Test existing output is replaced unconditionally."""
        target = tmp_path / "posts" / "hello.md"
        target.parent.mkdir(parents=True)
        target.write_text("hand edited", encoding="utf-8")

        DocumentEmitter(tmp_path).emit(make_record())

        assert "hand edited" not in target.read_text(encoding="utf-8")

    def test_emit_writes_exact_bytes(self, tmp_path):
        """Test no newline translation happens on write."""
        path = DocumentEmitter(tmp_path).emit(make_record(body="line\r\nnext\n"))

        assert path.read_bytes().endswith(b"line\r\nnext\n")

    def test_emit_wraps_os_errors(self, tmp_path):
        """Test an unwritable target becomes a WriteFailure with the cause chained."""
        blocker = tmp_path / "posts"
        blocker.write_text("a file where a directory should be", encoding="utf-8")

        with pytest.raises(WriteFailure) as exc_info:
            DocumentEmitter(tmp_path).emit(make_record())

        error = exc_info.value
        assert error.heading == "Blog / Hello"
        assert error.path == str(tmp_path / "posts" / "hello.md")
        assert isinstance(error.__cause__, OSError)

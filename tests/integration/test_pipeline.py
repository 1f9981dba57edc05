"""Integration tests for the full export pipeline."""

import time
from textwrap import dedent

import pytest
import yaml

from org_outline.parser import MalformedOutline
from orgpost.export.pipeline import export_outline, load_outline, run_export
from orgpost.models.config import Config, ExportConfig, FrontMatterConfig, ProjectConfig
from orgpost.services.exceptions import DuplicateExportTarget, InvalidDateFormat, WriteFailure
from orgpost.services.manifest import MANIFEST_NAME


def make_config(tmp_path, **export):
    return Config(
        project=ProjectConfig(base_dir=str(tmp_path), source="all-posts.org"),
        export=ExportConfig(**export),
    )


def write_source(tmp_path, text):
    source = tmp_path / "all-posts.org"
    source.write_text(text, encoding="utf-8")
    return source


def split_document(text):
    """Split a generated document into (front matter dict, body)."""
    assert text.startswith("---\n")
    front, _, body = text[4:].partition("---\n")
    return yaml.safe_load(front), body


def snapshot(directory):
    return {
        str(path.relative_to(directory)): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


class TestExportPipeline:
    """End-to-end runs from org text to markdown files."""

    def test_two_posts(self, tmp_path, blog_org):
        """Test the typical blog outline produces two documents with expected metadata."""
        write_source(tmp_path, blog_org)

        report = run_export(make_config(tmp_path))

        content = tmp_path / "content"
        assert report.ok
        assert report.written == [
            content / "posts" / "hello-world.md",
            content / "posts" / "second-post.md",
        ]

        front, body = split_document((content / "posts" / "hello-world.md").read_text(encoding="utf-8"))
        assert front == {
            "title": "Hello World",
            "date": "2020-01-15T10:30:00+00:00",
            "tags": ["go", "python"],
            "categories": ["programming"],
            "draft": False,
        }
        assert body == (
            "\nFirst post with **bold** text.\n\n"
            "```python\n"
            "def greet():\n"
            '    return "=not code=  *not bold*"\n'
            "```\n"
        )

        front, body = split_document((content / "posts" / "second-post.md").read_text(encoding="utf-8"))
        assert front["tags"] == ["rust"]
        assert front["categories"] == ["programming"]
        assert front["draft"] is True
        assert front["summary"] == "Still writing this one"
        assert body == "\nWork in progress.\n"

        assert not (content / "posts" / "private.md").exists()

    def test_file_level_settings_apply_to_posts(self, tmp_path, parse):
        """Test #+PROPERTY section and #+FILETAGS reach every exported post."""
        outline = parse(
            """\
            #+PROPERTY: EXPORT_HUGO_SECTION blog
            #+FILETAGS: :emacs:
            * Hello :python:
            :PROPERTIES:
            :EXPORT_FILE_NAME: hello
            :END:
            """
        )
        content = tmp_path / "content"

        report = export_outline(outline, make_config(tmp_path), content)

        assert report.written == [content / "blog" / "hello.md"]
        front, _ = split_document((content / "blog" / "hello.md").read_text(encoding="utf-8"))
        assert front["tags"] == ["emacs", "python"]

    def test_rerun_is_byte_identical(self, tmp_path, blog_org):
        """Test two runs over unchanged input produce identical bytes."""
        write_source(tmp_path, blog_org)
        config = make_config(tmp_path)

        run_export(config)
        first = snapshot(tmp_path / "content")
        run_export(config)
        second = snapshot(tmp_path / "content")

        assert first == second
        assert MANIFEST_NAME in first

    def test_output_independent_of_machine_timezone(self, tmp_path, blog_org, monkeypatch):
        """Test the host TZ setting does not leak into dates."""
        if not hasattr(time, "tzset"):
            pytest.skip("time.tzset not available")
        write_source(tmp_path, blog_org)
        config = make_config(tmp_path)
        outputs = []

        for zone in ("UTC", "Asia/Tokyo", "America/Los_Angeles"):
            monkeypatch.setenv("TZ", zone)
            time.tzset()
            run_export(config)
            outputs.append(snapshot(tmp_path / "content"))

        monkeypatch.delenv("TZ")
        time.tzset()
        assert outputs[0] == outputs[1] == outputs[2]

    def test_duplicate_target_writes_nothing(self, tmp_path):
        """Test a path collision aborts before any document is written."""
        write_source(
            tmp_path,
            dedent(
                """\
                * First
                :PROPERTIES:
                :EXPORT_FILE_NAME: same
                :END:
                * Unique
                :PROPERTIES:
                :EXPORT_FILE_NAME: unique
                :END:
                * Second
                :PROPERTIES:
                :EXPORT_FILE_NAME: same
                :END:
                """
            ),
        )

        with pytest.raises(DuplicateExportTarget):
            run_export(make_config(tmp_path))

        assert not (tmp_path / "content").exists()

    def test_depth_jump_writes_nothing(self, tmp_path):
        """Test a malformed outline aborts before any document is written."""
        write_source(
            tmp_path,
            dedent(
                """\
                * Post
                :PROPERTIES:
                :EXPORT_FILE_NAME: post
                :END:
                *** Too deep
                """
            ),
        )

        with pytest.raises(MalformedOutline) as exc_info:
            run_export(make_config(tmp_path))

        assert exc_info.value.line_number == 5
        assert not (tmp_path / "content").exists()

    def test_record_failures_are_collected(self, tmp_path):
        """Test one bad record does not stop the others."""
        write_source(
            tmp_path,
            dedent(
                """\
                * Good one
                :PROPERTIES:
                :EXPORT_FILE_NAME: good-one
                :END:
                * Bad date
                :PROPERTIES:
                :EXPORT_FILE_NAME: bad-date
                :EXPORT_DATE: not a date
                :END:
                * Good two
                :PROPERTIES:
                :EXPORT_FILE_NAME: good-two
                :END:
                """
            ),
        )

        report = run_export(make_config(tmp_path))

        assert not report.ok
        assert [path.name for path in report.written] == ["good-one.md", "good-two.md"]
        assert len(report.failures) == 1
        assert isinstance(report.failures[0], InvalidDateFormat)
        assert report.failures[0].heading == "Bad date"

    def test_write_failure_is_collected(self, tmp_path, parse):
        """Test an unwritable section directory becomes a WriteFailure."""
        outline = parse(
            """\
            * Blocked
            :PROPERTIES:
            :EXPORT_HUGO_SECTION: blocked
            :EXPORT_FILE_NAME: post
            :END:
            * Fine
            :PROPERTIES:
            :EXPORT_FILE_NAME: fine
            :END:
            """
        )
        content = tmp_path / "content"
        content.mkdir()
        (content / "blocked").write_text("a file, not a directory", encoding="utf-8")

        report = export_outline(outline, make_config(tmp_path), content)

        assert [path.name for path in report.written] == ["fine.md"]
        assert len(report.failures) == 1
        assert isinstance(report.failures[0], WriteFailure)
        assert isinstance(report.failures[0].__cause__, OSError)

    def test_draft_flag_is_recorded_not_filtered(self, tmp_path, parse):
        """Test drafts are still exported, and posts default to draft=false."""
        outline = parse(
            """\
            * Draft
            :PROPERTIES:
            :EXPORT_FILE_NAME: draft
            :EXPORT_HUGO_DRAFT: t
            :END:
            * Plain
            :PROPERTIES:
            :EXPORT_FILE_NAME: plain
            :END:
            """
        )
        content = tmp_path / "content"

        export_outline(outline, make_config(tmp_path), content)

        draft, _ = split_document((content / "posts" / "draft.md").read_text(encoding="utf-8"))
        plain, _ = split_document((content / "posts" / "plain.md").read_text(encoding="utf-8"))
        assert draft["draft"] is True
        assert plain["draft"] is False

    def test_custom_front_matter_field(self, tmp_path, parse):
        """Test custom properties appear after the fixed fields."""
        outline = parse(
            """\
            * Post
            :PROPERTIES:
            :EXPORT_FILE_NAME: post
            :EXPORT_HUGO_CUSTOM_FRONT_MATTER: :series Rust Basics
            :END:
            """
        )
        content = tmp_path / "content"

        export_outline(outline, make_config(tmp_path), content)

        front, _ = split_document((content / "posts" / "post.md").read_text(encoding="utf-8"))
        assert list(front) == ["title", "tags", "draft", "series"]
        assert front["series"] == "Rust Basics"

    def test_stale_outputs_are_removed(self, tmp_path):
        """Test documents from a previous run that are no longer produced are deleted."""
        source = write_source(
            tmp_path,
            dedent(
                """\
                * Kept
                :PROPERTIES:
                :EXPORT_FILE_NAME: kept
                :END:
                * Renamed
                :PROPERTIES:
                :EXPORT_HUGO_SECTION: notes
                :EXPORT_FILE_NAME: old-name
                :END:
                """
            ),
        )
        config = make_config(tmp_path)
        content = tmp_path / "content"
        (content / "posts").mkdir(parents=True)
        (content / "posts" / "handwritten.md").write_text("mine", encoding="utf-8")

        run_export(config)
        source.write_text(source.read_text(encoding="utf-8").replace("old-name", "new-name"), encoding="utf-8")
        report = run_export(config)

        assert report.removed == [content / "notes" / "old-name.md"]
        assert not (content / "notes" / "old-name.md").exists()
        assert (content / "notes" / "new-name.md").exists()
        assert (content / "posts" / "kept.md").exists()
        assert (content / "posts" / "handwritten.md").read_text(encoding="utf-8") == "mine"

    def test_stale_directory_is_pruned(self, tmp_path):
        """Test a section directory emptied by stale removal is deleted."""
        source = write_source(
            tmp_path,
            "* Post\n:PROPERTIES:\n:EXPORT_HUGO_SECTION: gone\n:EXPORT_FILE_NAME: post\n:END:\n",
        )
        config = make_config(tmp_path)

        run_export(config)
        source.write_text("* Nothing exported\n", encoding="utf-8")
        run_export(config)

        assert not (tmp_path / "content" / "gone").exists()
        assert (tmp_path / "content" / MANIFEST_NAME).exists()

    def test_workers_match_sequential_output(self, tmp_path):
        """Test the worker pool produces the same files and failure order."""
        posts = []
        for i in range(12):
            date = "bogus" if i % 5 == 0 else f"2021-01-{i + 1:02d}"
            posts.append(
                f"* Post {i}\n:PROPERTIES:\n:EXPORT_FILE_NAME: post-{i}\n"
                f":EXPORT_DATE: {date}\n:END:\nBody of *post* {i}.\n"
            )
        text = "".join(posts)

        sequential_dir = tmp_path / "sequential"
        parallel_dir = tmp_path / "parallel"
        for directory, workers in ((sequential_dir, 1), (parallel_dir, 4)):
            directory.mkdir()
            write_source(directory, text)

        sequential = run_export(make_config(sequential_dir, workers=1))
        parallel = run_export(make_config(parallel_dir, workers=4))

        assert [f.heading for f in parallel.failures] == [f.heading for f in sequential.failures]
        assert [f.heading for f in parallel.failures] == ["Post 0", "Post 5", "Post 10"]
        assert [p.name for p in parallel.written] == [p.name for p in sequential.written]
        seq_files = snapshot(sequential_dir / "content")
        par_files = snapshot(parallel_dir / "content")
        seq_files.pop(MANIFEST_NAME)
        par_files.pop(MANIFEST_NAME)
        assert seq_files == par_files


class TestLoadOutline:
    """Tests for reading the source file."""

    def test_bom_and_config_keywords(self, tmp_path):
        """Test a UTF-8 BOM is ignored and configured TODO states apply."""
        source = tmp_path / "all-posts.org"
        source.write_bytes("\ufeff* WIP Post\n".encode("utf-8"))
        config = Config(front_matter=FrontMatterConfig(todo_keywords=["WIP"], done_keywords=["SHIPPED"]))

        outline = load_outline(source, config)

        assert outline.nodes[0].todo == "WIP"
        assert outline.nodes[0].title == "Post"

    def test_missing_source(self, tmp_path):
        """Test a missing source file raises OSError."""
        with pytest.raises(OSError):
            load_outline(tmp_path / "missing.org", Config())

"""Unit tests for atomic writes and directory cleanup."""

import os

import pytest

from orgpost.services.file_operations import atomic_write, remove_empty_parents


class TestAtomicWrite:
    """Test atomic_write temp-file-rename behaviour."""

    def test_atomic_write_creates_new_file(self, tmp_path):
        """Test that atomic_write creates a new file successfully."""
        target = tmp_path / "new_file.md"
        content = "---\ntitle: Test\n---\n\nBody\n"

        atomic_write(target, content)

        assert target.read_text(encoding="utf-8") == content

    def test_atomic_write_overwrites_existing_file(self, tmp_path):
        """Test that atomic_write overwrites existing file."""
        target = tmp_path / "existing.md"
        target.write_text("Old content")

        atomic_write(target, "New content")

        assert target.read_text() == "New content"

    def test_atomic_write_leaves_no_temp_files(self, tmp_path):
        """Test the temporary file is renamed away on success."""
        target = tmp_path / "post.md"

        atomic_write(target, "content")

        assert [p.name for p in tmp_path.iterdir()] == ["post.md"]

    def test_atomic_write_cleans_up_on_failure(self, tmp_path, monkeypatch):
        """Test a failed write removes the temp file and keeps the old content."""
        target = tmp_path / "post.md"
        target.write_text("original", encoding="utf-8")

        def failing_fsync(fd):
            raise OSError("disk full")

        monkeypatch.setattr(os, "fsync", failing_fsync)

        with pytest.raises(OSError, match="disk full"):
            atomic_write(target, "replacement")

        assert target.read_text(encoding="utf-8") == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["post.md"]

    def test_atomic_write_cleans_up_on_interrupt(self, tmp_path, monkeypatch):
        """Test KeyboardInterrupt between write and rename leaves no debris."""
        target = tmp_path / "post.md"

        def interrupted_fsync(fd):
            raise KeyboardInterrupt

        monkeypatch.setattr(os, "fsync", interrupted_fsync)

        with pytest.raises(KeyboardInterrupt):
            atomic_write(target, "content")

        assert list(tmp_path.iterdir()) == []


class TestRemoveEmptyParents:
    """Tests for pruning directories left empty by stale file removal."""

    def test_removes_empty_chain_up_to_stop(self, tmp_path):
        """Test empty directories are removed but the stop directory is kept."""
        leaf = tmp_path / "content" / "a" / "b" / "post.md"
        leaf.parent.mkdir(parents=True)

        remove_empty_parents(leaf, tmp_path / "content")

        assert not (tmp_path / "content" / "a").exists()
        assert (tmp_path / "content").is_dir()

    def test_keeps_non_empty_directories(self, tmp_path):
        """Test a directory with other files is left alone."""
        content = tmp_path / "content"
        (content / "posts").mkdir(parents=True)
        (content / "posts" / "keep.md").write_text("keep")

        remove_empty_parents(content / "posts" / "gone.md", content)

        assert (content / "posts" / "keep.md").exists()

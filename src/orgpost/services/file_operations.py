"""File operations for the document emitter.

Every output file is written with the temp-file-rename pattern so that an
interrupted run never leaves a truncated document behind.
"""

import os
import threading
from pathlib import Path

import structlog

logger = structlog.get_logger()


def atomic_write(path: Path, content: str) -> None:
    """
    Replace ``path`` with ``content`` in one rename.

    The text goes to a hidden sibling file first, is flushed and fsynced,
    then renamed over the target. Content is written as UTF-8 without
    newline translation, so the bytes on disk are exactly
    ``content.encode("utf-8")``.

    Args:
        path: Target file path (parent directory must exist)
        content: Full document text

    Raises:
        OSError: On file I/O errors (the temporary file is removed first)
    """
    # Same directory keeps the rename on one filesystem; pid and thread keep
    # concurrent writers apart
    temp_path = path.parent / f".{path.name}.tmp.{os.getpid()}.{threading.get_ident()}"

    try:
        with open(temp_path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        temp_path.replace(path)
    except BaseException as e:
        # Also covers KeyboardInterrupt between write and rename
        if temp_path.exists():
            temp_path.unlink()
        logger.error("output_write_failed", path=str(path), error=str(e) or type(e).__name__)
        raise

    logger.debug("output_written", path=str(path), bytes=len(content.encode("utf-8")))


def remove_empty_parents(path: Path, stop: Path) -> None:
    """Remove empty directories from path's parent up to (not including) stop."""
    directory = path.parent
    while directory != stop and stop in directory.parents:
        try:
            directory.rmdir()
        except OSError:
            return
        directory = directory.parent

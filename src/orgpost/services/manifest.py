"""Output manifest for tracking generated documents.

The manifest records which files the previous export run generated inside
the content directory. A new run deletes listed files it no longer
produces, so each build is a full regeneration while hand-written content
next to the generated files is left alone.
"""

import json
from pathlib import Path
from typing import Optional

from orgpost.services.file_operations import atomic_write

MANIFEST_NAME = ".orgpost-manifest.json"


class OutputManifest:
    """Set of generated files, relative to the content directory.

    Stored as JSON:
    {
        "files": ["posts/a.md", "posts/b.md"],
        "source": "/abs/path/to/all-posts.org"
    }
    """

    def __init__(self, manifest_path: Path, load: bool = True):
        """
        Args:
            manifest_path: Location of the JSON file
            load: Read an existing manifest file (False starts empty)
        """
        self.manifest_path = manifest_path
        self.source: Optional[str] = None
        self.files: set[str] = set()

        if load and manifest_path.exists():
            self.load()

    @classmethod
    def for_content_dir(cls, content_dir: Path, load: bool = True) -> "OutputManifest":
        return cls(content_dir / MANIFEST_NAME, load=load)

    def load(self) -> None:
        """Read the file list written by the previous run.

        Raises:
            ValueError: If the file is not a JSON object with a "files" list
        """
        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Malformed manifest file {self.manifest_path}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("files", []), list):
            raise ValueError(f"Malformed manifest file {self.manifest_path}: expected a files list")
        self.source = data.get("source")
        self.files = set(data.get("files", []))

    def save(self) -> None:
        """Write the manifest atomically, creating the content directory if needed.

        Raises:
            OSError: If the file cannot be written
        """
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        document = {"source": self.source, "files": sorted(self.files)}
        atomic_write(self.manifest_path, json.dumps(document, indent=2, sort_keys=True) + "\n")

    def stale(self, current: set[str]) -> list[str]:
        """Files listed by the previous run that the current run does not produce."""
        return sorted(self.files - current)

    def replace(self, files: set[str], source: Optional[str] = None) -> None:
        self.files = set(files)
        self.source = source

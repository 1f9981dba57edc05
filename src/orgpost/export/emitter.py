"""Document emitter: front matter plus body, written atomically."""

from pathlib import Path

import yaml

from orgpost.models.export import ExportRecord
from orgpost.models.front_matter import FrontMatter
from orgpost.services.exceptions import WriteFailure
from orgpost.services.file_operations import atomic_write
from orgpost.utils.logging import get_logger


logger = get_logger(__name__)


def render_front_matter(front_matter: FrontMatter) -> str:
    """Serialize front matter as a YAML block (keys in fixed order)."""
    return yaml.safe_dump(
        front_matter.to_mapping(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=4096,
    )


def render_document(record: ExportRecord) -> str:
    """Full output document text.

    Examples:
        >>> render_document(record)
        '---\\ntitle: Hello\\ntags: []\\ndraft: false\\n---\\n\\nBody.\\n'
    """
    document = f"---\n{render_front_matter(record.front_matter)}---\n"
    if record.body:
        document += f"\n{record.body}"
    return document


class DocumentEmitter:
    """Writes export records below a content directory."""

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def target_path(self, record: ExportRecord) -> Path:
        return self.content_dir.joinpath(*record.output_path.split("/"))

    def emit(self, record: ExportRecord) -> Path:
        """Write one record.

        Returns:
            Absolute path of the written file

        Raises:
            WriteFailure: If the directory or file cannot be written
        """
        path = self.target_path(record)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write(path, render_document(record))
        except OSError as e:
            raise WriteFailure(record.heading, str(path), e) from e

        logger.info("record_written", heading=record.heading, path=str(path))
        return path

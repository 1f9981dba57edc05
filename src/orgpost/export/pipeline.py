"""Export pipeline orchestration.

Stages run in a fixed order against an explicit ``ExportContext``:

1. Parse the whole outline (fatal on malformed input)
2. Select exportable headings and resolve every output path (fatal on
   duplicates or invalid targets, before anything is written)
3. For each candidate: synthesize front matter, transform the body, emit
   the document; failures are collected per record
4. Remove files the previous run produced that this run did not, then
   record the new set in the output manifest
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional

from org_outline.parser import OrgOutline

from orgpost.export.emitter import DocumentEmitter
from orgpost.export.front_matter import FrontMatterSynthesizer
from orgpost.export.selector import ExportCandidate, select_candidates
from orgpost.export.transformer import BodyTransformer
from orgpost.models.config import Config
from orgpost.models.export import ExportRecord, ExportReport
from orgpost.services.exceptions import RecordError, WriteFailure
from orgpost.services.file_operations import remove_empty_parents
from orgpost.services.manifest import OutputManifest
from orgpost.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass
class ExportContext:
    """State shared by the stages of one export run.

    Attributes:
        config: Run configuration
        outline: Parsed source outline
        content_dir: Directory receiving generated documents
        source: Source file path (recorded in the manifest)
        failures: (candidate index, error) pairs collected from workers
    """

    config: Config
    outline: OrgOutline
    content_dir: Path
    source: Optional[Path] = None
    failures: list[tuple[int, RecordError]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_failure(self, index: int, error: RecordError) -> None:
        with self._lock:
            self.failures.append((index, error))

    def sorted_failures(self) -> list[RecordError]:
        with self._lock:
            return [error for _, error in sorted(self.failures, key=lambda item: item[0])]


def load_outline(source: Path, config: Config) -> OrgOutline:
    """Read and parse the source outline.

    Raises:
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not valid UTF-8
        MalformedOutline: If the outline structure is invalid
    """
    text = source.read_text(encoding="utf-8")
    outline = OrgOutline.parse(
        text,
        todo_keywords=config.front_matter.todo_keywords,
        done_keywords=config.front_matter.done_keywords,
    )
    logger.info("outline_parsed", source=str(source), headings=len(outline.nodes))
    return outline


class ExportRunner:
    """Runs the per-record stages for every candidate of one context."""

    def __init__(self, context: ExportContext):
        self.context = context
        config = context.config
        self.synthesizer = FrontMatterSynthesizer(
            config.front_matter,
            marker=config.export.marker,
            exclude_tags=tuple(config.export.exclude_tags),
            done_keywords=context.outline.done_keywords,
            file_tags=context.outline.file_tags,
        )
        self.transformer = BodyTransformer(config.export)
        self.emitter = DocumentEmitter(context.content_dir)

    def build_record(self, candidate: ExportCandidate) -> ExportRecord:
        node = candidate.node
        return ExportRecord(
            heading=node.outline_path,
            output_path=candidate.output_path.as_posix(),
            front_matter=self.synthesizer.synthesize(node),
            body=self.transformer.transform(node),
        )

    def export_one(self, candidate: ExportCandidate) -> Optional[Path]:
        """Export one candidate; a RecordError is recorded rather than raised."""
        try:
            return self.emitter.emit(self.build_record(candidate))
        except RecordError as e:
            logger.warning(
                "record_failed",
                heading=e.heading,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.context.record_failure(candidate.index, e)
            return None

    def run(self, candidates: list[ExportCandidate]) -> list[Optional[Path]]:
        """Export all candidates; results follow candidate order."""
        workers = self.context.config.export.workers
        if workers <= 1 or len(candidates) <= 1:
            return [self.export_one(candidate) for candidate in candidates]

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="orgpost-export") as executor:
            return list(executor.map(self.export_one, candidates))


def export_outline(
    outline: OrgOutline,
    config: Config,
    content_dir: Path,
    source: Optional[Path] = None,
) -> ExportReport:
    """Export every marked heading of a parsed outline.

    Args:
        outline: Parsed outline
        config: Run configuration
        content_dir: Output directory
        source: Source path recorded in the manifest

    Returns:
        Report of written files, removed stale files and per-record failures

    Raises:
        DuplicateExportTarget: If two headings resolve to the same path
        InvalidExportTarget: If a heading's path cannot be resolved
    """
    context = ExportContext(config=config, outline=outline, content_dir=content_dir, source=source)
    candidates = select_candidates(outline, config.project, config.export)

    runner = ExportRunner(context)
    results = runner.run(candidates)

    report = ExportReport()
    report.written = [path for path in results if path is not None]
    report.failures = context.sorted_failures()

    # Failed records keep their previous output, so they stay in the manifest
    produced = {candidate.output_path.as_posix() for candidate in candidates}
    report.removed = _remove_stale(context, produced)

    manifest = OutputManifest.for_content_dir(content_dir, load=False)
    manifest.replace(produced, str(source) if source is not None else None)
    try:
        manifest.save()
    except OSError as e:
        report.failures.append(WriteFailure("(manifest)", str(manifest.manifest_path), e))
        logger.error("manifest_save_failed", path=str(manifest.manifest_path), error=str(e))

    logger.info(
        "export_finished",
        written=len(report.written),
        removed=len(report.removed),
        failures=len(report.failures),
    )
    return report


def _remove_stale(context: ExportContext, produced: set[str]) -> list[Path]:
    try:
        manifest = OutputManifest.for_content_dir(context.content_dir)
    except ValueError as e:
        logger.warning("manifest_unreadable", error=str(e))
        return []

    removed = []
    for relative in manifest.stale(produced):
        parts = PurePosixPath(relative).parts
        if not parts or parts[0] == "/" or ".." in parts:
            logger.warning("stale_entry_ignored", entry=relative)
            continue
        path = context.content_dir.joinpath(*relative.split("/"))
        if not path.is_file():
            continue
        try:
            path.unlink()
        except OSError as e:
            logger.warning("stale_file_not_removed", path=str(path), error=str(e))
            continue
        remove_empty_parents(path, context.content_dir)
        removed.append(path)
        logger.info("stale_file_removed", path=str(path))
    return removed


def run_export(config: Config) -> ExportReport:
    """Export the configured source outline into the configured content directory.

    Raises:
        OSError: If the source cannot be read
        MalformedOutline: If the outline structure is invalid
        ExportTargetError: If output paths are ambiguous or invalid
    """
    source = config.project.source_path
    logger.info("export_started", source=str(source))
    outline = load_outline(source, config)
    return export_outline(outline, config, config.project.content_path, source=source)

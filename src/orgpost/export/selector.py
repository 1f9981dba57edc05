"""Subtree selection and output path resolution.

Walks the outline in document order, picks every heading that carries the
export marker property and resolves where its document goes. All paths are
resolved and checked for collisions before anything is written.
"""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterator

from org_outline.parser import OrgNode, OrgOutline

from orgpost.models.config import ExportConfig, ProjectConfig
from orgpost.services.exceptions import DuplicateExportTarget, InvalidExportTarget
from orgpost.utils.logging import get_logger


logger = get_logger(__name__)

SECTION_PROPERTY = "EXPORT_HUGO_SECTION"
BUNDLE_PROPERTY = "EXPORT_HUGO_BUNDLE"
SECTION_KEYWORD = "hugo_section"

_SLUG_STRIP_RE = re.compile(r"[^\w]+|_")


@dataclass(frozen=True)
class ExportCandidate:
    """An exportable heading with its resolved output path.

    Attributes:
        node: Source heading (body = its own segments only)
        output_path: Path relative to the content directory
        index: Position among candidates, in document order
    """

    node: OrgNode
    output_path: PurePosixPath
    index: int


def slugify(text: str) -> str:
    """Lower-case, collapse non-word runs to single dashes.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'
    """
    return _SLUG_STRIP_RE.sub("-", text.lower()).strip("-")


def iter_exportable(outline: OrgOutline, config: ExportConfig) -> Iterator[OrgNode]:
    """Yield exportable headings in document order.

    Subtrees under a COMMENT heading or a heading with an excluded tag are
    skipped entirely. Exportable headings nested under other exportable
    headings are yielded on their own.
    """
    excluded = set(config.exclude_tags)
    stack = list(reversed(outline.nodes))
    while stack:
        node = stack.pop()
        if node.commented or node.tags & excluded:
            logger.debug("subtree_skipped", heading=node.title, line=node.line_number)
            continue
        if node.is_exportable(config.marker):
            yield node
        stack.extend(reversed(node.children))


def resolve_output_path(
    node: OrgNode,
    outline: OrgOutline,
    project: ProjectConfig,
    marker: str,
) -> PurePosixPath:
    """Resolve a heading's output path relative to the content directory.

    ``<section>/[<bundle>/]<file name>.md`` where section comes from the
    closest EXPORT_HUGO_SECTION (headings first, then file-level properties
    and ``#+PROPERTY`` lines), then the file's ``#+HUGO_SECTION``, then the
    configured default. An empty marker value falls back to ``index`` inside
    a bundle and to the slugified heading title otherwise.

    Raises:
        InvalidExportTarget: If the name is empty or the path leaves the
            content directory
    """
    heading = node.outline_path
    file_name = (node.get_property(marker) or "").strip()
    bundle = (outline.inherited_property(node, BUNDLE_PROPERTY) or "").strip()
    if not file_name:
        file_name = "index" if bundle else slugify(node.title)
    if not file_name:
        raise InvalidExportTarget(heading, "file name is empty and the title has no usable characters")
    if not file_name.endswith(".md"):
        file_name = f"{file_name}.md"

    section = (
        outline.inherited_property(node, SECTION_PROPERTY)
        or outline.keywords.get(SECTION_KEYWORD)
        or project.default_section
    ).strip()

    path = PurePosixPath(*[part for part in (section, bundle) if part], file_name)
    if path.is_absolute() or any(part in ("..", ".") for part in path.parts):
        raise InvalidExportTarget(heading, f"path {path} escapes the content directory")
    return path


def select_candidates(
    outline: OrgOutline,
    project: ProjectConfig,
    config: ExportConfig,
) -> list[ExportCandidate]:
    """Select exportable headings and resolve their output paths.

    Args:
        outline: Parsed outline
        project: Project layout (default section)
        config: Export settings (marker, excluded tags)

    Returns:
        Candidates in document order

    Raises:
        DuplicateExportTarget: If two headings resolve to the same path
        InvalidExportTarget: If a heading's path cannot be resolved
    """
    candidates: list[ExportCandidate] = []
    by_path: dict[PurePosixPath, list[OrgNode]] = {}

    for node in iter_exportable(outline, config):
        path = resolve_output_path(node, outline, project, config.marker)
        by_path.setdefault(path, []).append(node)
        candidates.append(ExportCandidate(node=node, output_path=path, index=len(candidates)))
        logger.debug("export_target_resolved", heading=node.title, path=str(path))

    for path, nodes in by_path.items():
        if len(nodes) > 1:
            headings = [f"{n.outline_path} (line {n.line_number})" for n in nodes]
            logger.error("duplicate_export_target", path=str(path), headings=headings)
            raise DuplicateExportTarget(str(path), headings)

    logger.info("candidates_selected", count=len(candidates))
    return candidates

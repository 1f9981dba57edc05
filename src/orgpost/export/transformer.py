"""Body transformation from org markup to markdown.

Source and example blocks are re-fenced with their content copied
byte-for-byte. Everything else is rewritten line by line: emphasis, links,
list bullets, tables and quote blocks. Drawers, planning lines, comments and
keyword lines never reach the output. Link targets are passed through as
written.
"""

import re
from typing import Optional

from org_outline.parser import (
    Block,
    CodeBlock,
    Comment,
    Drawer,
    HorizontalRule,
    Keyword,
    LIST_ITEM_RE,
    OrgNode,
    Paragraph,
    PlainList,
    Table,
    parse_segments,
)

from orgpost.models.config import ExportConfig


_LINK_RE = re.compile(r"\[\[(?P<target>[^\[\]]+)\](?:\[(?P<desc>[^\[\]]*)\])?\]")
_PRE = r"(?:(?<=[\s\-({'\"*/_+])|^)"
_POST = r"(?=[\s\-.,;:!?')}\"\\*/_+]|$)"
_VERBATIM_RE = re.compile(_PRE + r"(?P<mark>[=~])(?P<body>[^\s]|[^\s].*?[^\s])(?P=mark)" + _POST)
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")
_CHECKBOX_RE = re.compile(r"^\[(?P<state>[ xX\-])\](?:[ \t]+|$)")
_DESCRIPTION_RE = re.compile(r"^(?P<term>.*?\S)[ \t]+::(?:[ \t]+(?P<rest>.*)|$)")
_TABLE_RULE_RE = re.compile(r"^\|-[-+|]*$")
_PLACEHOLDER_RE = re.compile("\x00(\\d+)\x00")

# Italic renders with underscores, so underline runs before italic
_EMPHASIS = [
    (mark, re.compile(_PRE + re.escape(mark) + r"(?P<body>[^\s]|[^\s].*?[^\s])" + re.escape(mark) + _POST))
    for mark in "*_+/"
]
_EMPHASIS_FORMAT = {
    "*": "**{}**",
    "/": "_{}_",
    "+": "~~{}~~",
    "_": '<span class="underline">{}</span>',
}
_RAW_EXPORT_BACKENDS = {"markdown", "md", "html", "hugo"}


def code_span(text: str) -> str:
    """Markdown inline code that survives backticks inside ``text``."""
    longest = max((len(run) for run in re.findall(r"`+", text)), default=0)
    fence = "`" * (longest + 1)
    if text.startswith("`") or text.endswith("`"):
        return f"{fence} {text} {fence}"
    return f"{fence}{text}{fence}"


def code_fence(content: str) -> str:
    """Backtick fence longer than any backtick run in ``content`` (min 3)."""
    longest = max((len(run) for run in re.findall(r"`+", content)), default=0)
    return "`" * max(3, longest + 1)


def render_link(target: str, description: Optional[str]) -> str:
    if description is None:
        if _SCHEME_RE.match(target) and not any(ch.isspace() for ch in target):
            return f"<{target}>"
        description = target
    else:
        description = convert_inline(description)
    if any(ch.isspace() for ch in target):
        return f"[{description}](<{target}>)"
    return f"[{description}]({target})"


def convert_inline(text: str) -> str:
    """Convert org inline markup in one line of text to markdown.

    Links and verbatim/code spans are replaced by placeholders first so that
    emphasis rules never touch their contents.

    Examples:
        >>> convert_inline("*bold* and /italic/ with =code=")
        '**bold** and _italic_ with `code`'
    """
    protected: list[str] = []

    def protect(rendered: str) -> str:
        protected.append(rendered)
        return f"\x00{len(protected) - 1}\x00"

    text = _LINK_RE.sub(lambda m: protect(render_link(m.group("target"), m.group("desc"))), text)
    text = _VERBATIM_RE.sub(lambda m: protect(code_span(m.group("body"))), text)

    for mark, pattern in _EMPHASIS:
        template = _EMPHASIS_FORMAT[mark]
        text = pattern.sub(lambda m, t=template: t.format(m.group("body")), text)

    if text.endswith("\\\\"):
        text = text[:-2].rstrip() + "\\"

    return _PLACEHOLDER_RE.sub(lambda m: protected[int(m.group(1))], text)


class BodyTransformer:
    """Renders an exportable heading's body as markdown.

    Example:
        >>> transformer = BodyTransformer(ExportConfig())
        >>> transformer.transform(node)
        'Some **bold** text.\\n'
    """

    def __init__(self, config: ExportConfig):
        self.config = config
        self.exclude_tags = frozenset(config.exclude_tags)

    def transform(self, node: OrgNode) -> str:
        """Render the node's own body (plus sub-headings when enabled).

        Returns:
            Markdown text ending with a single newline, or "" for an empty body
        """
        chunks = self.render_segments(node.body)
        if self.config.include_subheadings:
            chunks.extend(self._render_subheadings(node))
        if not chunks:
            return ""
        return "\n\n".join(chunks) + "\n"

    def render_segments(self, segments) -> list[str]:
        """Render body segments; stripped segment types produce nothing."""
        chunks = []
        for segment in segments:
            rendered = self.render_segment(segment)
            if rendered:
                chunks.append(rendered)
        return chunks

    def render_segment(self, segment) -> Optional[str]:
        if isinstance(segment, CodeBlock):
            return self._render_code_block(segment)
        if isinstance(segment, Paragraph):
            return "\n".join(convert_inline(line.strip()) for line in segment.lines)
        if isinstance(segment, PlainList):
            return self._render_list(segment.lines)
        if isinstance(segment, Table):
            return self._render_table(segment.lines)
        if isinstance(segment, Block):
            return self._render_block(segment)
        if isinstance(segment, HorizontalRule):
            return "---"
        if isinstance(segment, (Drawer, Keyword, Comment)):
            return None
        raise TypeError(f"Unknown body segment: {segment!r}")

    def _render_code_block(self, block: CodeBlock) -> str:
        fence = code_fence(block.content)
        info = block.language if block.kind == "src" and block.language else ""
        return f"{fence}{info}\n{block.content}{fence}"

    def _render_list(self, lines: tuple) -> str:
        base = min(
            (len(line) - len(line.lstrip()) for line in lines if line.strip()),
            default=0,
        )
        rendered = []
        for line in lines:
            if not line.strip():
                rendered.append("")
                continue
            item = LIST_ITEM_RE.match(line)
            if item is None:
                indent = line[base: len(line) - len(line.lstrip())]
                rendered.append(indent + convert_inline(line.strip()))
                continue
            indent = item.group("indent")[base:]
            bullet = item.group("bullet")
            rest = line[item.end():]
            if bullet in ("+", "*"):
                bullet = "-"
            elif bullet.endswith(")"):
                bullet = bullet[:-1] + "."
            checkbox = ""
            box = _CHECKBOX_RE.match(rest)
            if box:
                checkbox = "[x] " if box.group("state") in "xX" else "[ ] "
                rest = rest[box.end():]
            description = _DESCRIPTION_RE.match(rest)
            if description:
                term = convert_inline(description.group("term"))
                text = convert_inline(description.group("rest") or "")
                rest_md = f"**{term}**: {text}".rstrip()
            else:
                rest_md = convert_inline(rest.strip())
            rendered.append(f"{indent}{bullet} {checkbox}{rest_md}".rstrip())
        return "\n".join(rendered)

    def _render_table(self, lines: tuple) -> str:
        rows = []
        for line in lines:
            stripped = line.strip()
            if _TABLE_RULE_RE.match(stripped):
                rows.append(None)
            else:
                cells = stripped.strip("|").split("|")
                rows.append([convert_inline(cell.strip()) for cell in cells])

        data_rows = [row for row in rows if row is not None]
        if not data_rows:
            return ""
        width = max(len(row) for row in data_rows)

        def render_row(cells):
            cells = cells + [""] * (width - len(cells))
            return "| " + " | ".join(cells) + " |"

        separator = "|" + "|".join(["---"] * width) + "|"
        first_data = next(i for i, row in enumerate(rows) if row is not None)
        has_header = first_data + 1 < len(rows) and rows[first_data + 1] is None

        rendered = []
        if has_header:
            rendered.append(render_row(data_rows[0]))
            body = data_rows[1:]
        else:
            rendered.append(render_row([""] * width))
            body = data_rows
        rendered.append(separator)
        rendered.extend(render_row(row) for row in body)
        return "\n".join(rendered)

    def _render_block(self, block: Block) -> Optional[str]:
        if block.name == "export":
            backend = block.parameters.split()[0].lower() if block.parameters else ""
            if backend in _RAW_EXPORT_BACKENDS:
                return "\n".join(block.lines)
            return None
        if block.name == "comment":
            return None
        if block.name == "verse":
            lines = [convert_inline(line.strip()) for line in block.lines if line.strip()]
            return "  \n".join(lines)

        inner = "\n\n".join(self.render_segments(parse_segments(list(block.lines))))
        if block.name == "quote":
            return "\n".join(f"> {line}" if line else ">" for line in inner.split("\n"))
        return inner or None

    def _render_subheadings(self, node: OrgNode) -> list[str]:
        """Render non-exported descendants as markdown headings, in document order."""
        chunks = []
        stack = list(reversed(node.children))
        while stack:
            child = stack.pop()
            if child.commented or child.tags & self.exclude_tags:
                continue
            if child.is_exportable(self.config.marker):
                continue
            level = min(child.depth - node.depth + 1, 6)
            chunks.append(f"{'#' * level} {convert_inline(child.title)}")
            chunks.extend(self.render_segments(child.body))
            stack.extend(reversed(child.children))
        return chunks

"""Org-mode parser for outline-based documents.

This module turns a single org document into an immutable tree of headings.
Heading depth comes from the number of leading stars and nothing else; the
lines between two headings form the body of the first one and are split into
typed segments (paragraphs, lists, tables, source blocks, drawers, ...).
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Union


DEFAULT_TODO_KEYWORDS = ("TODO",)
DEFAULT_DONE_KEYWORDS = ("DONE",)

_HEADING_RE = re.compile(r"^(\*+)(?:[ \t]+(.*?))?\s*$")
_TAGS_RE = re.compile(r"(?:^|[ \t]+)(:[\w@#%:]+:)$")
_PRIORITY_RE = re.compile(r"^\[#([A-Za-z0-9])\](?:[ \t]+|$)")
_BEGIN_RE = re.compile(r"^[ \t]*#\+begin_(\S+)(?:[ \t]+(.*?))?\s*$", re.IGNORECASE)
_END_RE = re.compile(r"^[ \t]*#\+end_(\S+)\s*$", re.IGNORECASE)
_PLANNING_LINE_RE = re.compile(r"^\s*(?:SCHEDULED|DEADLINE|CLOSED):")
_PLANNING_ITEM_RE = re.compile(r"(SCHEDULED|DEADLINE|CLOSED):\s*([<\[][^>\]]*[>\]])")
_PROPERTY_RE = re.compile(r"^:(?P<key>[^\s:]+?)(?P<plus>\+)?:(?:\s+(?P<value>.*?))?\s*$")
_DRAWER_RE = re.compile(r"^:([\w-]+):$")
_KEYWORD_RE = re.compile(r"^#\+(\w[\w-]*):(?:\s+(.*?))?\s*$")
_COMMENT_RE = re.compile(r"^\s*#(?:\s|$)")
_RULE_RE = re.compile(r"^\s*-{5,}\s*$")
LIST_ITEM_RE = re.compile(
    r"^(?P<indent>[ \t]*)(?P<bullet>[-+]|\d+[.)]|(?<=[ \t])\*)(?:[ \t]+|$)"
)


class MalformedOutline(ValueError):
    """Raised when the outline structure cannot be parsed.

    Attributes:
        line_number: 1-based line where the problem was detected
        message: Human-readable description
    """

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.message = message
        self.line_number = line_number
        if line_number is not None:
            super().__init__(f"line {line_number}: {message}")
        else:
            super().__init__(message)


@dataclass(frozen=True)
class Paragraph:
    lines: tuple[str, ...]


@dataclass(frozen=True)
class PlainList:
    """Consecutive list items including their continuation lines."""

    lines: tuple[str, ...]


@dataclass(frozen=True)
class Table:
    lines: tuple[str, ...]


@dataclass(frozen=True)
class CodeBlock:
    """A ``#+BEGIN_SRC`` or ``#+BEGIN_EXAMPLE`` block.

    Attributes:
        kind: "src" or "example"
        language: Language tag (first parameter of a src block), None if absent
        content: Exact text between the delimiter lines, line endings included
        switches: Remaining header parameters (e.g. "-n :results output")
        indent: Leading whitespace of the BEGIN line
    """

    kind: str
    language: Optional[str]
    content: str
    switches: str = ""
    indent: str = ""


@dataclass(frozen=True)
class Block:
    """Any other ``#+BEGIN_<NAME>`` block (quote, verse, export, ...)."""

    name: str
    parameters: str
    lines: tuple[str, ...]


@dataclass(frozen=True)
class Drawer:
    name: str
    lines: tuple[str, ...]


@dataclass(frozen=True)
class Keyword:
    key: str
    value: str


@dataclass(frozen=True)
class Comment:
    lines: tuple[str, ...]


@dataclass(frozen=True)
class HorizontalRule:
    pass


Segment = Union[Paragraph, PlainList, Table, CodeBlock, Block, Drawer, Keyword, Comment, HorizontalRule]


@dataclass(frozen=True, eq=False)
class OrgNode:
    """Single heading with its body and child headings.

    Nodes are built bottom-up once the whole document has been scanned and
    never change afterwards. Each node holds a reference to its parent, so a
    heading taken out of a parsed outline still sees its ancestors.

    Attributes:
        depth: Number of stars in the heading marker (>= 1)
        title: Heading text without TODO keyword, priority, COMMENT or tags
        todo: TODO keyword if the heading has one
        priority: Priority cookie letter ("A" for [#A])
        tags: Heading tags
        properties: Property drawer entries (read-only, keys as written)
        planning: SCHEDULED/DEADLINE/CLOSED raw timestamps
        body: Body segments belonging to this heading only
        children: Direct sub-headings
        commented: True if the heading carries the COMMENT keyword
        line_number: 1-based line of the heading
    """

    depth: int
    title: str
    todo: Optional[str] = None
    priority: Optional[str] = None
    tags: frozenset = frozenset()
    properties: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    planning: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    body: tuple = ()
    children: tuple = ()
    commented: bool = False
    line_number: int = 0
    _parent: Optional["OrgNode"] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        for child in self.children:
            object.__setattr__(child, "_parent", self)

    @property
    def parent(self) -> Optional["OrgNode"]:
        """Enclosing heading, or None for top-level headings."""
        return self._parent

    def get_property(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get property value by key (case-insensitive, as in org).

        Examples:
            >>> node.get_property("export_file_name")
            'my-post'
        """
        wanted = key.casefold()
        for name, value in self.properties.items():
            if name.casefold() == wanted:
                return value
        return default

    def has_property(self, key: str) -> bool:
        return self.get_property(key) is not None

    def inherited_property(self, key: str) -> Optional[str]:
        """Get property from this node or the closest ancestor that sets it."""
        node: Optional[OrgNode] = self
        while node is not None:
            value = node.get_property(key)
            if value is not None:
                return value
            node = node.parent
        return None

    def is_exportable(self, marker: str) -> bool:
        return self.has_property(marker)

    def ancestors(self) -> list["OrgNode"]:
        """Ancestors from the top-level heading down to the direct parent."""
        chain = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        chain.reverse()
        return chain

    @property
    def outline_path(self) -> str:
        """Heading titles from the root, joined with " / " (for messages)."""
        return " / ".join([a.title for a in self.ancestors()] + [self.title])

    def inherited_tags(self) -> frozenset:
        """Own tags plus the tags of every ancestor (org tag inheritance)."""
        tags = set(self.tags)
        for ancestor in self.ancestors():
            tags.update(ancestor.tags)
        return frozenset(tags)


@dataclass(frozen=True, eq=False)
class OrgOutline:
    """Parsed representation of an org document.

    Attributes:
        nodes: Top-level headings
        keywords: File-level ``#+KEY: value`` lines before the first heading
                  (keys lower-cased, last occurrence wins)
        properties: File-level properties: ``#+PROPERTY:`` lines and the
                    property drawer before the first heading (drawer wins)
        preamble: Body segments before the first heading
        todo_keywords: Not-done TODO states in effect for this file
        done_keywords: Done TODO states in effect for this file
        source_text: Original text for debugging
    """

    nodes: tuple
    keywords: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    properties: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    preamble: tuple = ()
    todo_keywords: tuple = DEFAULT_TODO_KEYWORDS
    done_keywords: tuple = DEFAULT_DONE_KEYWORDS
    source_text: str = field(default="", repr=False)

    @classmethod
    def parse(
        cls,
        text: str,
        todo_keywords: Optional[tuple] = None,
        done_keywords: Optional[tuple] = None,
    ) -> "OrgOutline":
        """Parse org text into an outline.

        The scan is a single left-to-right pass that keeps the currently open
        headings on an explicit stack (index = depth - 1), so arbitrarily deep
        documents never grow the call stack.

        Args:
            text: Org document text
            todo_keywords: Not-done TODO states (default: TODO). A ``#+TODO:``
                line in the file replaces both sets.
            done_keywords: Done TODO states (default: DONE)

        Returns:
            Parsed OrgOutline

        Raises:
            MalformedOutline: On a heading more than one level deeper than its
                parent, an unterminated block or an unterminated property drawer
        """
        source = text
        if text.startswith("\ufeff"):
            text = text[1:]
        lines = text.split("\n")

        preamble_lines, roots = _scan(lines)

        drawer_properties, preamble = _split_preamble(preamble_lines)
        keywords = {}
        file_properties: dict[str, str] = {}
        for segment in preamble:
            if isinstance(segment, Keyword):
                keywords[segment.key.lower()] = segment.value
                if segment.key.lower() == "property":
                    _add_keyword_property(file_properties, segment.value)
        for key, value in drawer_properties.items():
            _set_property(file_properties, key, value)

        todo, done = _todo_sequence(
            preamble,
            tuple(todo_keywords) if todo_keywords is not None else DEFAULT_TODO_KEYWORDS,
            tuple(done_keywords) if done_keywords is not None else DEFAULT_DONE_KEYWORDS,
        )
        nodes = _build_tree(roots, todo + done)

        return cls(
            nodes=nodes,
            keywords=MappingProxyType(keywords),
            properties=MappingProxyType(file_properties),
            preamble=preamble,
            todo_keywords=todo,
            done_keywords=done,
            source_text=source,
        )

    def walk(self) -> Iterator[OrgNode]:
        """Yield every heading in document order."""
        stack = list(reversed(self.nodes))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def get_property(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a file-level property by key (case-insensitive)."""
        wanted = key.casefold()
        for name, value in self.properties.items():
            if name.casefold() == wanted:
                return value
        return default

    def inherited_property(self, node: OrgNode, key: str) -> Optional[str]:
        """Property of ``node``, its closest ancestor, or else the file."""
        value = node.inherited_property(key)
        if value is None:
            value = self.get_property(key)
        return value

    @property
    def file_tags(self) -> frozenset:
        """Tags from ``#+FILETAGS:``, inherited by every heading."""
        value = self.keywords.get("filetags", "")
        return frozenset(tag for tag in re.split(r"[:\s]+", value) if tag)


class _PendingHeading:
    """Mutable heading used while scanning, frozen into an OrgNode later."""

    __slots__ = ("depth", "text", "line_number", "body_lines", "children")

    def __init__(self, depth: int, text: str, line_number: int):
        self.depth = depth
        self.text = text
        self.line_number = line_number
        self.body_lines: list[str] = []
        self.children: list["_PendingHeading"] = []


def _scan(lines: list[str]) -> tuple[list[str], list[_PendingHeading]]:
    """Split lines into preamble and a tree of pending headings.

    Returns:
        Tuple of (preamble_lines, root_headings)
    """
    preamble: list[str] = []
    roots: list[_PendingHeading] = []
    stack: list[_PendingHeading] = []
    body = preamble
    open_block: Optional[tuple[str, int]] = None

    for line_number, line in enumerate(lines, start=1):
        if open_block is not None:
            body.append(line)
            end = _END_RE.match(line)
            if end and end.group(1).lower() == open_block[0]:
                open_block = None
            continue

        heading = _HEADING_RE.match(line)
        if heading:
            depth = len(heading.group(1))
            while stack and stack[-1].depth >= depth:
                stack.pop()
            parent_depth = stack[-1].depth if stack else 0
            if depth > parent_depth + 1:
                raise MalformedOutline(
                    f"heading of depth {depth} directly under depth {parent_depth}",
                    line_number,
                )
            pending = _PendingHeading(depth, heading.group(2) or "", line_number)
            if stack:
                stack[-1].children.append(pending)
            else:
                roots.append(pending)
            stack.append(pending)
            body = pending.body_lines
            continue

        begin = _BEGIN_RE.match(line)
        if begin:
            open_block = (begin.group(1).lower(), line_number)
        body.append(line)

    if open_block is not None:
        name, line_number = open_block
        raise MalformedOutline(f"unterminated #+BEGIN_{name.upper()} block", line_number)

    return preamble, roots


def _build_tree(roots: list[_PendingHeading], keywords: tuple) -> tuple:
    """Freeze pending headings into OrgNodes, children before parents."""
    built: dict[int, OrgNode] = {}
    stack: list[tuple[_PendingHeading, bool]] = [(p, False) for p in reversed(roots)]
    while stack:
        pending, expanded = stack.pop()
        if expanded:
            children = tuple(built.pop(id(child)) for child in pending.children)
            built[id(pending)] = _make_node(pending, children, keywords)
        else:
            stack.append((pending, True))
            stack.extend((child, False) for child in reversed(pending.children))
    return tuple(built.pop(id(p)) for p in roots)


def _make_node(pending: _PendingHeading, children: tuple, keywords: tuple) -> OrgNode:
    todo, priority, commented, title, tags = _parse_heading_text(pending.text, keywords)
    planning, properties, body = _split_section(pending.body_lines, pending.line_number + 1)
    return OrgNode(
        depth=pending.depth,
        title=title,
        todo=todo,
        priority=priority,
        tags=tags,
        properties=MappingProxyType(properties),
        planning=MappingProxyType(planning),
        body=body,
        children=children,
        commented=commented,
        line_number=pending.line_number,
    )


def _parse_heading_text(text: str, keywords: tuple):
    """Split heading text into (todo, priority, commented, title, tags)."""
    tags: frozenset = frozenset()
    match = _TAGS_RE.search(text)
    if match:
        tags = frozenset(tag for tag in match.group(1).split(":") if tag)
        text = text[: match.start()]

    todo = None
    first, _, rest = text.partition(" ")
    if first in keywords:
        todo = first
        text = rest.lstrip()

    priority = None
    match = _PRIORITY_RE.match(text)
    if match:
        priority = match.group(1)
        text = text[match.end():]

    commented = False
    first, _, rest = text.partition(" ")
    if first == "COMMENT":
        commented = True
        text = rest

    return todo, priority, commented, text.strip(), tags


def _split_section(lines: list[str], first_line: int):
    """Separate planning line and property drawer from body segments.

    Both must come directly after the heading: planning first, then the
    property drawer.

    Returns:
        Tuple of (planning, properties, segments)
    """
    planning: dict[str, str] = {}
    properties: dict[str, str] = {}
    i = 0

    if i < len(lines) and _PLANNING_LINE_RE.match(lines[i]):
        for keyword, timestamp in _PLANNING_ITEM_RE.findall(lines[i]):
            planning[keyword] = timestamp
        i += 1

    if i < len(lines) and lines[i].strip().upper() == ":PROPERTIES:":
        drawer_line = first_line + i
        i += 1
        while True:
            if i >= len(lines):
                raise MalformedOutline("unterminated property drawer", drawer_line)
            stripped = lines[i].strip()
            i += 1
            if stripped.upper() == ":END:":
                break
            if not stripped:
                continue
            match = _PROPERTY_RE.match(stripped)
            if not match:
                raise MalformedOutline(
                    f"invalid property line {stripped!r}", first_line + i - 1
                )
            _set_property(
                properties,
                match.group("key"),
                match.group("value") or "",
                append=match.group("plus") is not None,
            )

    return planning, properties, parse_segments(lines[i:])


def _split_preamble(lines: list[str]):
    """File-level property drawer (first non-blank lines) plus segments."""
    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1
    if start < len(lines) and lines[start].strip().upper() == ":PROPERTIES:":
        _planning, properties, segments = _split_section(lines[start:], start + 1)
        return properties, segments
    return {}, parse_segments(lines)


def _set_property(properties: dict, key: str, value: str, append: bool = False) -> None:
    """Store a property, merging keys that differ only in case.

    ``append`` implements org's ``:KEY+:`` syntax (value joined with a space).
    """
    for existing in properties:
        if existing.casefold() == key.casefold():
            if append and properties[existing]:
                value = f"{properties[existing]} {value}".strip()
            properties[existing] = value
            return
    properties[key] = value


def _add_keyword_property(properties: dict, value: str) -> None:
    """Apply one ``#+PROPERTY: KEY value`` line (``KEY+`` appends)."""
    parts = value.split(None, 1)
    if not parts:
        return
    key = parts[0]
    rest = parts[1] if len(parts) > 1 else ""
    append = key.endswith("+")
    if append:
        key = key[:-1]
    _set_property(properties, key, rest.strip(), append=append)


def _todo_sequence(preamble: tuple, todo: tuple, done: tuple) -> tuple[tuple, tuple]:
    """Apply ``#+TODO:`` / ``#+SEQ_TODO:`` / ``#+TYP_TODO:`` lines.

    Words before ``|`` are not-done states, words after it are done states.
    Without ``|`` the last word is the only done state.
    """
    file_todo: list[str] = []
    file_done: list[str] = []
    for segment in preamble:
        if not isinstance(segment, Keyword):
            continue
        if segment.key.lower() not in ("todo", "seq_todo", "typ_todo"):
            continue
        words = [re.sub(r"\(.*\)$", "", w) for w in segment.value.split()]
        if "|" in words:
            split = words.index("|")
            file_todo.extend(words[:split])
            file_done.extend(words[split + 1:])
        elif words:
            file_todo.extend(words[:-1])
            file_done.append(words[-1])
    if file_todo or file_done:
        return tuple(file_todo), tuple(file_done)
    return todo, done


def parse_segments(lines: list[str]) -> tuple:
    """Split body lines into typed segments.

    Every ``#+BEGIN_`` line is expected to have its matching END line in
    ``lines``; the document scan guarantees this for heading bodies.

    Args:
        lines: Body lines (no headings)

    Returns:
        Tuple of segments in source order

    Raises:
        MalformedOutline: If a block is not terminated within lines
    """
    segments: list = []
    paragraph: list[str] = []

    def flush_paragraph():
        if paragraph:
            segments.append(Paragraph(tuple(paragraph)))
            paragraph.clear()

    i = 0
    while i < len(lines):
        line = lines[i]
        stripped = line.strip()

        if not stripped:
            flush_paragraph()
            i += 1
            continue

        begin = _BEGIN_RE.match(line)
        if begin:
            flush_paragraph()
            name = begin.group(1).lower()
            end = _find_block_end(lines, i + 1, name)
            if end is None:
                raise MalformedOutline(f"unterminated #+BEGIN_{name.upper()} block")
            segments.append(_make_block(line, begin, lines[i + 1:end]))
            i = end + 1
            continue

        drawer = _DRAWER_RE.match(stripped)
        if drawer and drawer.group(1).upper() != "END":
            end = _find_drawer_end(lines, i + 1)
            if end is not None:
                flush_paragraph()
                segments.append(Drawer(drawer.group(1), tuple(lines[i + 1:end])))
                i = end + 1
                continue

        if stripped.startswith("#+"):
            flush_paragraph()
            keyword = _KEYWORD_RE.match(stripped)
            if keyword:
                segments.append(Keyword(keyword.group(1), keyword.group(2) or ""))
            else:
                segments.append(Comment((line,)))
            i += 1
            continue

        if _COMMENT_RE.match(line):
            flush_paragraph()
            j = i
            while j < len(lines) and _COMMENT_RE.match(lines[j]):
                j += 1
            segments.append(Comment(tuple(lines[i:j])))
            i = j
            continue

        if stripped.startswith("|"):
            flush_paragraph()
            j = i
            while j < len(lines) and lines[j].strip().startswith("|"):
                j += 1
            segments.append(Table(tuple(lines[i:j])))
            i = j
            continue

        if _RULE_RE.match(line):
            flush_paragraph()
            segments.append(HorizontalRule())
            i += 1
            continue

        item = LIST_ITEM_RE.match(line)
        if item:
            flush_paragraph()
            end = _find_list_end(lines, i, len(item.group("indent")))
            segments.append(PlainList(tuple(lines[i:end])))
            i = end
            continue

        paragraph.append(line)
        i += 1

    flush_paragraph()
    return tuple(segments)


def _find_block_end(lines: list[str], start: int, name: str) -> Optional[int]:
    for j in range(start, len(lines)):
        end = _END_RE.match(lines[j])
        if end and end.group(1).lower() == name:
            return j
    return None


def _find_drawer_end(lines: list[str], start: int) -> Optional[int]:
    for j in range(start, len(lines)):
        if lines[j].strip().upper() == ":END:":
            return j
    return None


def _find_list_end(lines: list[str], start: int, base_indent: int) -> int:
    """Index just past the last line of the list starting at ``start``.

    The list continues through items indented at least as much as the first
    one and through lines indented deeper than it. Two blank lines in a row,
    a block or a less-indented line end it.
    """
    last = start
    blank_run = 0
    j = start + 1
    while j < len(lines):
        line = lines[j]
        if not line.strip():
            blank_run += 1
            if blank_run >= 2:
                break
            j += 1
            continue
        if _BEGIN_RE.match(line):
            break
        indent = len(line) - len(line.lstrip())
        item = LIST_ITEM_RE.match(line)
        if (item and indent >= base_indent) or indent > base_indent:
            blank_run = 0
            last = j
            j += 1
            continue
        break
    return last + 1


def _make_block(begin_line: str, begin: re.Match, body: list[str]):
    name = begin.group(1).lower()
    parameters = (begin.group(2) or "").strip()
    indent = begin_line[: len(begin_line) - len(begin_line.lstrip())]

    if name in ("src", "example"):
        language = None
        switches = parameters
        if name == "src" and parameters:
            parts = parameters.split(None, 1)
            language = parts[0]
            switches = parts[1] if len(parts) > 1 else ""
        content = "".join(f"{line}\n" for line in body)
        return CodeBlock(
            kind=name,
            language=language,
            content=content,
            switches=switches,
            indent=indent,
        )

    return Block(name=name, parameters=parameters, lines=tuple(body))

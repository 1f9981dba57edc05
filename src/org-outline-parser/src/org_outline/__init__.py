"""Org outline parser - Parse org-mode documents into heading trees.

This package parses a single org-mode file into an immutable tree of
headings with their properties, planning timestamps and body segments.

Key features:
- Heading depth taken from star count only, validated on the fly
- Explicit-stack scan (no recursion, safe on deeply nested files)
- Property drawers exposed as read-only, case-insensitive mappings
- Source and example blocks kept verbatim
- Org timestamp parsing

Example:
    >>> from org_outline import OrgOutline
    >>> outline = OrgOutline.parse("* My post\\n:PROPERTIES:\\n:EXPORT_FILE_NAME: my-post\\n:END:\\nHello")
    >>> outline.nodes[0].get_property("export_file_name")
    'my-post'
"""

from org_outline.parser import (
    Block,
    CodeBlock,
    Comment,
    Drawer,
    HorizontalRule,
    Keyword,
    MalformedOutline,
    OrgNode,
    OrgOutline,
    Paragraph,
    PlainList,
    Table,
    parse_segments,
)
from org_outline.timestamp import parse_timestamp, parse_utc_offset

__version__ = "0.1.0"

__all__ = [
    "Block",
    "CodeBlock",
    "Comment",
    "Drawer",
    "HorizontalRule",
    "Keyword",
    "MalformedOutline",
    "OrgNode",
    "OrgOutline",
    "Paragraph",
    "PlainList",
    "Table",
    "parse_segments",
    "parse_timestamp",
    "parse_utc_offset",
]

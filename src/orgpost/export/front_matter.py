"""Front-matter synthesis.

Each field is resolved by consulting value sources in the configured
precedence order (by default: explicit property, value inferred from the
heading, configured default). The first source that yields a value wins.
Properties outside the fixed schema are passed through as custom fields.
"""

from typing import Any, Callable, Optional

from org_outline.parser import OrgNode

from orgpost.export.properties import PropertyBag, parse_date
from orgpost.models.config import FrontMatterConfig
from orgpost.models.front_matter import FIXED_KEYS, FrontMatter
from orgpost.utils.logging import get_logger


logger = get_logger(__name__)

TITLE_PROPERTY = "EXPORT_TITLE"
DATE_PROPERTY = "EXPORT_DATE"
TAGS_PROPERTY = "EXPORT_HUGO_TAGS"
CATEGORIES_PROPERTY = "EXPORT_HUGO_CATEGORIES"
DRAFT_PROPERTY = "EXPORT_HUGO_DRAFT"
SUMMARY_PROPERTY = "EXPORT_DESCRIPTION"
CUSTOM_PROPERTY = "EXPORT_HUGO_CUSTOM_FRONT_MATTER"

# Consumed by path resolution or by the fixed fields, never passed through
RESERVED_PROPERTIES = {
    "EXPORT_HUGO_SECTION",
    "EXPORT_HUGO_BUNDLE",
    TITLE_PROPERTY,
    DATE_PROPERTY,
    TAGS_PROPERTY,
    CATEGORIES_PROPERTY,
    DRAFT_PROPERTY,
    SUMMARY_PROPERTY,
    CUSTOM_PROPERTY,
}


class FrontMatterSynthesizer:
    """Maps a heading and its properties to a FrontMatter record.

    Example:
        >>> synthesizer = FrontMatterSynthesizer(FrontMatterConfig(), marker="EXPORT_FILE_NAME")
        >>> synthesizer.synthesize(node).title
        'Hello World'
    """

    def __init__(
        self,
        config: FrontMatterConfig,
        marker: str = "EXPORT_FILE_NAME",
        exclude_tags: tuple = ("noexport",),
        done_keywords: Optional[tuple] = None,
        file_tags: frozenset = frozenset(),
    ):
        """
        Args:
            config: Front matter rules (offset, precedence, defaults)
            marker: Export marker property (never passed through)
            exclude_tags: Tags that never appear in output
            done_keywords: Done TODO states in effect for the outline
                (default: config.done_keywords)
            file_tags: ``#+FILETAGS`` of the outline, inherited by every heading
        """
        self.config = config
        self.marker = marker
        self.exclude_tags = frozenset(exclude_tags)
        self.done_keywords = tuple(done_keywords if done_keywords is not None else config.done_keywords)
        self.file_tags = frozenset(file_tags)
        self.tz = config.tzinfo
        self._reserved = {key.casefold() for key in RESERVED_PROPERTIES | {marker}}
        self._sources: dict[str, Callable[[OrgNode, PropertyBag, str], Any]] = {
            "explicit": self._explicit,
            "inferred": self._inferred,
            "default": self._default,
        }

    def synthesize(self, node: OrgNode) -> FrontMatter:
        """Build the front matter for one exportable heading.

        Raises:
            InvalidDateFormat: If EXPORT_DATE or the CLOSED timestamp does not parse
            InvalidPropertyValue: If EXPORT_HUGO_DRAFT is not a boolean
        """
        properties = PropertyBag(node.properties, node.outline_path)
        values = {name: self.resolve(node, properties, name) for name in FIXED_KEYS}
        values = {name: value for name, value in values.items() if value is not None}
        return FrontMatter(custom=self._custom_fields(properties), **values)

    def resolve(self, node: OrgNode, properties: PropertyBag, name: str) -> Any:
        """Resolve one field by walking the precedence order."""
        for source in self.config.precedence:
            value = self._sources[source](node, properties, name)
            if value is not None:
                return value
        return None

    def _explicit(self, node: OrgNode, properties: PropertyBag, name: str) -> Any:
        if name == "title":
            return properties.get_str(TITLE_PROPERTY)
        if name == "date":
            return properties.get_date(DATE_PROPERTY, self.tz)
        if name == "tags":
            return properties.get_list(TAGS_PROPERTY)
        if name == "categories":
            return properties.get_list(CATEGORIES_PROPERTY)
        if name == "draft":
            return properties.get_bool(DRAFT_PROPERTY)
        if name == "summary":
            return properties.get_str(SUMMARY_PROPERTY)
        return None

    def heading_tags(self, node: OrgNode) -> frozenset:
        """Tags that apply to a heading, inherited ones included when enabled."""
        if not self.config.inherit_tags:
            return node.tags
        return node.inherited_tags() | self.file_tags

    def _inferred(self, node: OrgNode, properties: PropertyBag, name: str) -> Any:
        if name == "title":
            return node.title or None
        if name == "date":
            closed = node.planning.get("CLOSED")
            if closed is None:
                return None
            return parse_date(closed, self.tz, node.outline_path, "CLOSED")
        if name == "tags":
            tags = sorted(
                tag for tag in self.heading_tags(node)
                if not tag.startswith("@") and tag not in self.exclude_tags
            )
            return tags or None
        if name == "categories":
            categories = sorted(tag[1:] for tag in self.heading_tags(node) if tag.startswith("@") and len(tag) > 1)
            return categories or None
        if name == "draft":
            if node.todo is None:
                return None
            return node.todo not in self.done_keywords
        return None

    def _default(self, node: OrgNode, properties: PropertyBag, name: str) -> Any:
        if name == "draft":
            return self.config.default_draft
        if name == "tags":
            return list(self.config.default_tags)
        if name == "categories":
            return []
        return None

    def _custom_fields(self, properties: PropertyBag) -> dict[str, str]:
        """Collect pass-through fields in declaration order."""
        custom: dict[str, str] = {}
        for key, value in properties.items():
            if key.casefold() == CUSTOM_PROPERTY.casefold():
                custom.update(properties.get_pairs(key))
            elif key.casefold() not in self._reserved:
                custom[key] = value

        for key in [k for k in custom if k in FIXED_KEYS]:
            logger.warning(
                "custom_field_shadowed",
                heading=properties.heading,
                key=key,
                reason="fixed front matter field takes precedence",
            )
            del custom[key]
        return custom

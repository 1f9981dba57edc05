"""FrontMatter model: metadata block written at the top of each post."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


FIXED_KEYS = ("title", "date", "tags", "categories", "draft", "summary")


class FrontMatter(BaseModel):
    """Typed metadata record for one exported heading."""

    title: str = Field(
        default="",
        description="Post title"
    )

    date: Optional[str] = Field(
        default=None,
        description="ISO-8601 timestamp in the project's fixed UTC offset"
    )

    tags: list[str] = Field(
        default_factory=list,
        description="Short identifiers without whitespace, in declaration order"
    )

    categories: list[str] = Field(
        default_factory=list,
        description="Category identifiers"
    )

    draft: bool = Field(
        default=False,
        description="Draft flag; only the site generator acts on it"
    )

    summary: Optional[str] = Field(
        default=None,
        description="Short description of the post"
    )

    custom: dict[str, str] = Field(
        default_factory=dict,
        description="Pass-through fields, keys and values verbatim"
    )

    model_config = {"frozen": True}

    @field_validator("tags", "categories")
    @classmethod
    def validate_identifiers(cls, v: list[str]) -> list[str]:
        """Reject whitespace inside tags and drop repeats (first one wins)."""
        seen = []
        for tag in v:
            if not tag or any(ch.isspace() for ch in tag):
                raise ValueError(f"Tags must be non-empty and contain no whitespace: {tag!r}")
            if tag not in seen:
                seen.append(tag)
        return seen

    def to_mapping(self) -> dict[str, Any]:
        """Ordered mapping for serialization.

        Fixed keys come first in a stable order; optional ones are left out
        when unset. Custom fields follow in declaration order.
        """
        data: dict[str, Any] = {"title": self.title}
        if self.date is not None:
            data["date"] = self.date
        data["tags"] = list(self.tags)
        if self.categories:
            data["categories"] = list(self.categories)
        data["draft"] = self.draft
        if self.summary is not None:
            data["summary"] = self.summary
        for key, value in self.custom.items():
            data[key] = value
        return data

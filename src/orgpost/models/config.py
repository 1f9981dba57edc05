"""Configuration models for orgpost."""

from datetime import timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from org_outline.timestamp import parse_utc_offset


PrecedenceSource = Literal["explicit", "inferred", "default"]


class ProjectConfig(BaseModel):
    """Location of the outline and of the site generator's project."""

    base_dir: str = Field(
        default=".",
        description="Site project directory (relative paths resolve against the config file)"
    )

    source: str = Field(
        default="content-org/all-posts.org",
        description="Org outline holding every post, relative to base_dir"
    )

    content_dir: str = Field(
        default="content",
        description="Directory receiving generated markdown, relative to base_dir"
    )

    default_section: str = Field(
        default="posts",
        description="Section used when neither the outline nor a heading names one"
    )

    model_config = {"frozen": True}

    @property
    def base_path(self) -> Path:
        return Path(self.base_dir).expanduser()

    @property
    def source_path(self) -> Path:
        return self.base_path / self.source

    @property
    def content_path(self) -> Path:
        return self.base_path / self.content_dir


class FrontMatterConfig(BaseModel):
    """Rules for synthesizing front matter."""

    utc_offset: str = Field(
        default="+00:00",
        description="Fixed offset used for every date, independent of the machine's timezone"
    )

    precedence: list[PrecedenceSource] = Field(
        default_factory=lambda: ["explicit", "inferred", "default"],
        description="Order in which value sources are consulted for each field"
    )

    default_draft: bool = Field(
        default=False,
        description="Draft flag when neither a property nor a TODO state decides"
    )

    default_tags: list[str] = Field(
        default_factory=list,
        description="Tags used when a heading declares none"
    )

    inherit_tags: bool = Field(
        default=True,
        description="Include tags of ancestor headings and #+FILETAGS in inferred tags"
    )

    todo_keywords: list[str] = Field(
        default_factory=lambda: ["TODO"],
        description="Not-done TODO states (headings in these states are drafts)"
    )

    done_keywords: list[str] = Field(
        default_factory=lambda: ["DONE"],
        description="Done TODO states (headings in these states are published)"
    )

    model_config = {"frozen": True}

    @field_validator("utc_offset")
    @classmethod
    def validate_utc_offset(cls, v: str) -> str:
        parse_utc_offset(v)
        return v

    @field_validator("precedence")
    @classmethod
    def validate_precedence(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("precedence must name at least one source")
        if len(set(v)) != len(v):
            raise ValueError(f"precedence lists a source twice: {v}")
        return v

    @field_validator("default_tags")
    @classmethod
    def validate_default_tags(cls, v: list[str]) -> list[str]:
        for tag in v:
            if not tag or any(ch.isspace() for ch in tag):
                raise ValueError(f"Tags must be non-empty and contain no whitespace: {tag!r}")
        return v

    @property
    def tzinfo(self) -> timezone:
        return parse_utc_offset(self.utc_offset)


class ExportConfig(BaseModel):
    """Subtree selection and export behaviour."""

    marker: str = Field(
        default="EXPORT_FILE_NAME",
        description="Property that marks a heading as its own output document"
    )

    exclude_tags: list[str] = Field(
        default_factory=lambda: ["noexport"],
        description="Heading tags that exclude a whole subtree"
    )

    include_subheadings: bool = Field(
        default=False,
        description="Render non-exported sub-headings into their post's body"
    )

    workers: int = Field(
        default=1,
        ge=1,
        le=64,
        description="Worker threads used to export records"
    )

    model_config = {"frozen": True}


class SiteConfig(BaseModel):
    """Static-site generator invocation."""

    command: str = Field(
        default="hugo",
        description="Generator executable (may include extra arguments)"
    )

    destination: str = Field(
        default="docs",
        description="Directory the generator builds into, relative to base_dir"
    )

    public_dir: str = Field(
        default="public",
        description="Generator's default output directory, removed by clean"
    )

    extra_files: list[str] = Field(
        default_factory=lambda: ["static/CNAME"],
        description="Files copied into the destination after a build"
    )

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for orgpost."""

    project: ProjectConfig = Field(default_factory=ProjectConfig, description="Project layout")
    front_matter: FrontMatterConfig = Field(
        default_factory=FrontMatterConfig, description="Front matter rules"
    )
    export: ExportConfig = Field(default_factory=ExportConfig, description="Export settings")
    site: SiteConfig = Field(default_factory=SiteConfig, description="Site generator settings")

    model_config = {"frozen": True}

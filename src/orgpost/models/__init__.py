"""Data models for orgpost."""

from orgpost.models.config import (
    Config,
    ExportConfig,
    FrontMatterConfig,
    ProjectConfig,
    SiteConfig,
)
from orgpost.models.export import ExportRecord, ExportReport
from orgpost.models.front_matter import FrontMatter

__all__ = [
    "Config",
    "ExportConfig",
    "ExportRecord",
    "ExportReport",
    "FrontMatter",
    "FrontMatterConfig",
    "ProjectConfig",
    "SiteConfig",
]

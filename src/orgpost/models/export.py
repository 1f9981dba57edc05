"""Models passed between export stages."""

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from orgpost.models.front_matter import FrontMatter
from orgpost.services.exceptions import RecordError


class ExportRecord(BaseModel):
    """Everything needed to write one output document."""

    heading: str = Field(
        ...,
        description="Outline path of the source heading (for messages)"
    )

    output_path: str = Field(
        ...,
        description="POSIX path relative to the content directory"
    )

    front_matter: FrontMatter = Field(
        ...,
        description="Synthesized metadata"
    )

    body: str = Field(
        default="",
        description="Transformed markdown body"
    )

    model_config = {"frozen": True}

    @field_validator("output_path")
    @classmethod
    def validate_output_path(cls, v: str) -> str:
        if not v or v.startswith("/"):
            raise ValueError(f"Output path must be a non-empty relative path: {v!r}")
        return v


@dataclass
class ExportReport:
    """Outcome of one export run.

    Attributes:
        written: Files written, in document order
        removed: Stale files from the previous run that were deleted
        failures: Per-record errors, in document order
    """

    written: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    failures: list[RecordError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

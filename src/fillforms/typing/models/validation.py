"""Validation result models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from fillforms.typing.enums import IssueSource, IssueType
from fillforms.typing.models.pages import RenderedPage


class ValidationIssue(BaseModel):
    """One issue reported by a validation pass."""

    model_config = ConfigDict(extra="forbid")

    id: str
    field_name: str
    type: IssueType
    message: str
    suggestion: str | None = None
    field_key: str | None = None
    actual_value: str | None = None
    source: IssueSource = IssueSource.STRUCTURED


class StructuredValidation(BaseModel):
    """Result of the local rule pass."""

    model_config = ConfigDict(extra="forbid")

    overall_score: int
    filled_groups: int
    total_groups: int
    issues: list[ValidationIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    values: dict[str, str] = Field(default_factory=dict)

    @property
    def blocking_errors(self) -> list[ValidationIssue]:
        """Return error-level issues."""
        return [issue for issue in self.issues if issue.type == IssueType.ERROR]


class VisionValidation(BaseModel):
    """Result of the external image-based pass."""

    model_config = ConfigDict(extra="forbid")

    available: bool
    notice: str | None = None
    overall_score: int | None = None
    completed_fields: int | None = None
    total_fields: int | None = None
    issues: list[ValidationIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    country_specific_notes: list[str] = Field(default_factory=list)

    @classmethod
    def unavailable(cls, notice: str) -> VisionValidation:
        """Build a soft-failure result.

        Args:
            notice (str): User-facing notice.

        Returns:
            VisionValidation: Unavailable result.
        """
        return cls(available=False, notice=notice)


class ValidationReport(BaseModel):
    """Structured and vision results kept in separate namespaces."""

    model_config = ConfigDict(extra="forbid")

    structured: StructuredValidation
    vision: VisionValidation | None = None

    @property
    def has_blocking_errors(self) -> bool:
        """Return whether the structured pass found error-level issues."""
        return bool(self.structured.blocking_errors)


class VisionRequest(BaseModel):
    """Payload handed to the vision validation collaborator."""

    model_config = ConfigDict(extra="forbid")

    pages: list[RenderedPage]
    values: dict[str, str]
    country: str
    instruction: str
    filled_pdf_base64: str | None = None

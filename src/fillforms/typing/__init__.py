"""Typing-centric domain modules."""

from fillforms.typing.enums import (
    CanonicalKey,
    DraftStatus,
    FieldKind,
    FieldSource,
    IssueSource,
    IssueType,
    OverlayShape,
    SaveState,
)
from fillforms.typing.models import (
    DraftSnapshot,
    ExtractedDocument,
    FieldDefinition,
    RenderedPage,
    ValidationIssue,
    ValidationReport,
    WidgetAnnotation,
)
from fillforms.typing.protocol import (
    DocumentIntelligenceClient,
    DraftStore,
    ProfileStore,
    RenderSurface,
    VisionValidationClient,
)

__all__ = [
    "CanonicalKey",
    "DocumentIntelligenceClient",
    "DraftSnapshot",
    "DraftStatus",
    "DraftStore",
    "ExtractedDocument",
    "FieldDefinition",
    "FieldKind",
    "FieldSource",
    "IssueSource",
    "IssueType",
    "OverlayShape",
    "ProfileStore",
    "RenderSurface",
    "RenderedPage",
    "SaveState",
    "ValidationIssue",
    "ValidationReport",
    "VisionValidationClient",
    "WidgetAnnotation",
]

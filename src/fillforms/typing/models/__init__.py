"""Core domain model exports."""

from fillforms.typing.models.drafts import (
    DraftSnapshot,
    DraftSummary,
    SaveDraftRequest,
    SaveDraftResponse,
    VersionEntry,
)
from fillforms.typing.models.fields import (
    ExtractedDocument,
    FieldAppearance,
    FieldDefinition,
    Rect,
    WidgetAnnotation,
)
from fillforms.typing.models.intelligence import (
    Barcode,
    DetectedLabel,
    DetectedTable,
    DocumentIntelligenceResult,
    SelectionMark,
    TableCell,
    TextLine,
)
from fillforms.typing.models.json_schema import SanitizedJsonSchema
from fillforms.typing.models.pages import RenderedPage
from fillforms.typing.models.profile import (
    Address,
    AutofillResult,
    DestinationContext,
    EducationInfo,
    EmploymentInfo,
    FamilyMember,
    PassportInfo,
    PersonalInfo,
    ProfileRecord,
)
from fillforms.typing.models.validation import (
    StructuredValidation,
    ValidationIssue,
    ValidationReport,
    VisionRequest,
    VisionValidation,
)

__all__ = [
    "Address",
    "AutofillResult",
    "Barcode",
    "DestinationContext",
    "DetectedLabel",
    "DetectedTable",
    "DocumentIntelligenceResult",
    "DraftSnapshot",
    "DraftSummary",
    "EducationInfo",
    "EmploymentInfo",
    "ExtractedDocument",
    "FamilyMember",
    "FieldAppearance",
    "FieldDefinition",
    "PassportInfo",
    "PersonalInfo",
    "ProfileRecord",
    "Rect",
    "RenderedPage",
    "SanitizedJsonSchema",
    "SaveDraftRequest",
    "SaveDraftResponse",
    "SelectionMark",
    "StructuredValidation",
    "TableCell",
    "TextLine",
    "ValidationIssue",
    "ValidationReport",
    "VersionEntry",
    "VisionRequest",
    "VisionValidation",
    "WidgetAnnotation",
]

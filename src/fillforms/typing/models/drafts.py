"""Draft persistence models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fillforms.typing.enums import DraftStatus
from fillforms.typing.models.fields import FieldDefinition


class VersionEntry(BaseModel):
    """One saved version of a draft."""

    model_config = ConfigDict(extra="forbid")

    snapshot_id: str
    saved_at: datetime
    completion_percentage: int = 0


class DraftSnapshot(BaseModel):
    """Persisted, resumable filling session."""

    model_config = ConfigDict(extra="forbid")

    form_id: str
    file_name: str
    fields: list[FieldDefinition] = Field(default_factory=list)
    updated_at: datetime
    status: DraftStatus = DraftStatus.DRAFT
    completion_percentage: int = 0
    version_history: list[VersionEntry] = Field(default_factory=list)
    country: str | None = None
    visa_type: str | None = None
    has_pdf: bool = False


class DraftSummary(BaseModel):
    """Listing entry for a draft."""

    model_config = ConfigDict(extra="forbid")

    form_id: str
    file_name: str
    updated_at: datetime
    status: DraftStatus = DraftStatus.DRAFT
    completion_percentage: int = 0
    total_fields: int = 0
    filled_fields: int = 0
    country: str | None = None
    visa_type: str | None = None
    has_pdf: bool = False


class SaveDraftRequest(BaseModel):
    """Payload sent to the draft store on save."""

    model_config = ConfigDict(extra="forbid")

    form_id: str | None = None
    fields: list[FieldDefinition]
    file_name: str
    pdf_base64: str | None = None
    country: str | None = None
    visa_type: str | None = None
    completion_percentage: int = 0


class SaveDraftResponse(BaseModel):
    """Draft store answer to a save."""

    model_config = ConfigDict(extra="forbid")

    form_id: str
    version_id: str | None = None
    versions: list[VersionEntry] = Field(default_factory=list)
    persisted: bool = True
    saved_at: datetime | None = None

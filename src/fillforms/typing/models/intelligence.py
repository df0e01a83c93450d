"""Document Intelligence payload models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from fillforms.typing.models.fields import Rect


class DetectedLabel(BaseModel):
    """Label detected for a position on a page."""

    model_config = ConfigDict(extra="forbid")

    page: int
    rect: Rect
    label: str
    field_type: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class TableCell(BaseModel):
    """Single table cell."""

    model_config = ConfigDict(extra="forbid")

    row_index: int
    column_index: int
    content: str
    kind: str = "content"


class DetectedTable(BaseModel):
    """Table extracted from the document."""

    model_config = ConfigDict(extra="forbid")

    row_count: int
    column_count: int
    cells: list[TableCell] = Field(default_factory=list)


class SelectionMark(BaseModel):
    """Checkbox-like mark detected on a page."""

    model_config = ConfigDict(extra="forbid")

    page: int
    state: str
    confidence: float = 0.0
    rect: Rect | None = None


class Barcode(BaseModel):
    """Barcode detected on a page."""

    model_config = ConfigDict(extra="forbid")

    value: str
    kind: str
    confidence: float = 0.0


class TextLine(BaseModel):
    """Line of text with its page position."""

    model_config = ConfigDict(extra="forbid")

    page: int
    text: str
    rect: Rect


class DocumentIntelligenceResult(BaseModel):
    """Document Intelligence analysis for a whole document."""

    model_config = ConfigDict(extra="forbid")

    labels: list[DetectedLabel] = Field(default_factory=list)
    tables: list[DetectedTable] = Field(default_factory=list)
    selection_marks: list[SelectionMark] = Field(default_factory=list)
    barcodes: list[Barcode] = Field(default_factory=list)
    markdown: str | None = None

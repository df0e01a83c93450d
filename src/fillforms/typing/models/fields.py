"""Field-centric domain models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from fillforms.typing.enums import FieldKind, FieldSource


class FieldAppearance(BaseModel):
    """Appearance attributes captured from a widget."""

    model_config = ConfigDict(extra="forbid")

    font_size: float | None = None
    font_name: str | None = None
    on_token: str | None = None


class FieldDefinition(BaseModel):
    """Single interactive field of a document."""

    model_config = ConfigDict(extra="forbid")

    name: str
    kind: FieldKind = FieldKind.TEXT
    value: str = ""
    label: str = ""
    options: list[str] = Field(default_factory=list)
    appearance: FieldAppearance | None = None
    source: FieldSource = FieldSource.NONE
    page: int | None = None
    read_only: bool = False
    required: bool = False
    max_length: int | None = None
    character_box: bool = False

    @property
    def is_filled(self) -> bool:
        """Return whether the field holds a non-blank value."""
        return bool(self.value.strip())

    @property
    def on_token(self) -> str:
        """Return the value written when a toggle is switched on."""
        if self.appearance and self.appearance.on_token:
            return self.appearance.on_token
        return "Yes"


class Rect(BaseModel):
    """Axis-aligned rectangle, top-left origin."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        """Return rectangle width."""
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        """Return rectangle height."""
        return self.y1 - self.y0

    def center(self) -> tuple[float, float]:
        """Return rectangle center point."""
        return (self.x0 + self.x1) / 2, (self.y0 + self.y1) / 2


class WidgetAnnotation(BaseModel):
    """Page-level geometry of one interactive widget."""

    model_config = ConfigDict(extra="forbid")

    field_name: str
    page: int
    rect: Rect
    kind: FieldKind
    export_value: str | None = None
    on_token: str | None = None
    multiline: bool = False


class ExtractedDocument(BaseModel):
    """Extractor output for one uploaded document."""

    model_config = ConfigDict(extra="forbid")

    fields: list[FieldDefinition]
    annotations: list[WidgetAnnotation] = Field(default_factory=list)
    page_count: int
    fingerprint: str

"""Overlay of interactive elements on rendered pages."""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from pydantic import BaseModel, ConfigDict, Field

from fillforms.logging import get_logger
from fillforms.pdf_render import page_scale
from fillforms.typing.enums import FieldKind, FieldSource, OverlayShape
from fillforms.typing.models import Rect
from fillforms.validation.resolver import FieldContextResolver

if TYPE_CHECKING:
    from fillforms.session import DocumentSession
    from fillforms.typing.models import FieldDefinition, WidgetAnnotation
    from fillforms.typing.protocol import RenderSurface

logger = get_logger(__name__)

_TRUTHY = frozenset({"1", "true", "yes", "on", "x"})


def overlay_shape(kind: FieldKind) -> OverlayShape:
    """Return the interaction shape of a field kind.

    Args:
        kind (FieldKind): Field kind.

    Returns:
        OverlayShape: Shape of the overlay element.
    """
    match kind:
        case FieldKind.TEXT | FieldKind.DATE | FieldKind.SELECT:
            return OverlayShape.SINGLE_LINE
        case FieldKind.TEXTAREA:
            return OverlayShape.MULTI_LINE
        case FieldKind.CHECKBOX:
            return OverlayShape.TOGGLE
        case FieldKind.RADIO:
            return OverlayShape.CHOICE
        case _:
            assert_never(kind)


class PixelViewport:
    """Uniform scaling from page points to surface pixels."""

    def __init__(self, scale: float) -> None:
        """Initialize viewport.

        Args:
            scale (float): Pixels per page point.
        """
        self.scale = scale

    @classmethod
    def for_dpi(cls, dpi: int) -> PixelViewport:
        """Build the viewport of a page rasterized at `dpi`."""
        return cls(page_scale(dpi))

    def to_pixels(self, rect: Rect) -> Rect:
        """Project a page-space rectangle into surface pixels."""
        return Rect(
            x0=rect.x0 * self.scale,
            y0=rect.y0 * self.scale,
            x1=rect.x1 * self.scale,
            y1=rect.y1 * self.scale,
        )


class OverlayElement(BaseModel):
    """Interactive element positioned over a rendered page."""

    model_config = ConfigDict(extra="forbid")

    field_name: str
    page: int
    rect: Rect
    shape: OverlayShape
    value: str = ""
    label: str = ""
    options: list[str] = Field(default_factory=list)
    on_token: str | None = None
    export_value: str | None = None
    checked: bool = False
    font_size: float | None = None
    read_only: bool = False
    max_length: int | None = None


def _element(annotation: WidgetAnnotation, field: FieldDefinition, rect: Rect) -> OverlayElement:
    shape = overlay_shape(field.kind)
    on_token = (annotation.on_token or field.on_token) if shape == OverlayShape.TOGGLE else None
    export_value = annotation.export_value if shape == OverlayShape.CHOICE else None
    checked = False
    if shape == OverlayShape.TOGGLE:
        checked = field.is_filled and field.value.lower() != "off"
    elif shape == OverlayShape.CHOICE:
        checked = export_value is not None and field.value == export_value
    return OverlayElement(
        field_name=field.name,
        page=annotation.page,
        rect=rect,
        shape=shape,
        value=field.value,
        label=field.label,
        options=list(field.options) if field.kind == FieldKind.SELECT else [],
        on_token=on_token,
        export_value=export_value,
        checked=checked,
        font_size=field.appearance.font_size if field.appearance else None,
        read_only=field.read_only,
        max_length=field.max_length,
    )


def _is_truthy(raw: str | bool) -> bool:  # noqa: FBT001
    if isinstance(raw, bool):
        return raw
    return raw.strip().lower() in _TRUTHY


class OverlayRenderer:
    """Bind widget annotations of a session to positioned, editable elements."""

    def __init__(
        self,
        session: DocumentSession,
        surface: RenderSurface,
        *,
        highlight_seconds: float = 2.0,
    ) -> None:
        """Initialize renderer.

        Args:
            session (DocumentSession): Active session owning the fields.
            surface (RenderSurface): Rendering surface hosting the overlay.
            highlight_seconds (float): Highlight duration when jumping to a field.
        """
        self._session = session
        self._surface = surface
        self._highlight_seconds = highlight_seconds

    def render_page(self, page: int) -> list[OverlayElement]:
        """Build the overlay elements of one page.

        Args:
            page (int): 1-based page number.

        Returns:
            list[OverlayElement]: Elements in widget order.
        """
        viewport = self._surface.viewport(page)
        elements = []
        for annotation in self._session.annotations:
            if annotation.page != page:
                continue
            field = self._session.ensure_field(annotation)
            elements.append(_element(annotation, field, viewport.to_pixels(annotation.rect)))
        return elements

    def apply_input(self, element: OverlayElement, raw: str | bool) -> OverlayElement:  # noqa: FBT001
        """Convert user input on an element into a stored field value.

        Args:
            element (OverlayElement): Element that received the input.
            raw (str | bool): Typed text, or the toggle/choice state.

        Returns:
            OverlayElement: Element reflecting the stored value.
        """
        current = self._session.field(element.field_name)
        if current is not None and current.read_only:
            logger.info("Input ignored on read-only field", extra={"field": element.field_name})
            return element.model_copy(update={"value": current.value, "read_only": True})

        match element.shape:
            case OverlayShape.SINGLE_LINE | OverlayShape.MULTI_LINE:
                value = str(raw)
                if current is not None and current.max_length:
                    value = value[: current.max_length]
            case OverlayShape.TOGGLE:
                value = (element.on_token or "Yes") if _is_truthy(raw) else ""
            case OverlayShape.CHOICE:
                if _is_truthy(raw):
                    value = element.export_value or ""
                else:
                    value = "" if element.checked else element.value
            case _:
                assert_never(element.shape)

        field = self._session.update_field(element.field_name, value, source=FieldSource.MANUAL)
        checked = element.checked
        if element.shape == OverlayShape.TOGGLE:
            checked = field.is_filled
        elif element.shape == OverlayShape.CHOICE:
            checked = element.export_value is not None and field.value == element.export_value
        return element.model_copy(update={"value": field.value, "checked": checked})

    def jump_to_field(self, reference: str) -> OverlayElement | None:
        """Focus the element of a field referenced by key or display name.

        Args:
            reference (str): Canonical key, field name, group key or label.

        Returns:
            OverlayElement | None: Focused element, or None when nothing matches.
        """
        field = FieldContextResolver(self._session.fields).find(reference)
        if field is None:
            logger.info("Jump target not found", extra={"reference": reference})
            return None
        annotation = next(
            (item for item in self._session.annotations if item.field_name == field.name),
            None,
        )
        if annotation is None:
            return None
        viewport = self._surface.viewport(annotation.page)
        element = _element(annotation, field, viewport.to_pixels(annotation.rect))
        self._surface.focus(field.name, page=annotation.page, highlight_seconds=self._highlight_seconds)
        return element

"""Pytest marker auto-assignment by folder and shared document builders."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import fitz
import pytest

from fillforms import logger
from fillforms.typing.enums import FieldKind
from fillforms.typing.models import (
    ExtractedDocument,
    FieldAppearance,
    FieldDefinition,
    Rect,
    WidgetAnnotation,
)


@dataclass(frozen=True)
class WidgetSpec:
    """Widget to place on a generated test document."""

    name: str
    rect: tuple[float, float, float, float]
    kind: str = "text"
    value: str | bool = ""
    page: int = 0
    flags: int = 0
    max_length: int = 0


def build_form_pdf(
    widgets: list[WidgetSpec],
    *,
    pages: int = 1,
    texts: list[tuple[int, tuple[float, float], str]] | None = None,
) -> bytes:
    """Build an in-memory PDF with AcroForm widgets and optional static text."""
    doc = fitz.open()
    for _ in range(pages):
        doc.new_page(width=595, height=842)
    for page_index, point, text in texts or []:
        doc[page_index].insert_text(point, text, fontsize=10)
    for item in widgets:
        widget = fitz.Widget()
        widget.field_name = item.name
        widget.rect = fitz.Rect(*item.rect)
        if item.kind == "checkbox":
            widget.field_type = fitz.PDF_WIDGET_TYPE_CHECKBOX
            widget.field_value = bool(item.value)
        else:
            widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
            widget.field_value = str(item.value)
            widget.text_font = "Helv"
            widget.text_fontsize = 11
            if item.max_length:
                widget.text_maxlen = item.max_length
        if item.flags:
            widget.field_flags = item.flags
        doc[item.page].add_widget(widget)
    data = doc.tobytes()
    doc.close()
    return data


def build_blank_pdf() -> bytes:
    """Build an in-memory PDF without any widget."""
    doc = fitz.open()
    doc.new_page(width=595, height=842)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def visa_form_pdf() -> bytes:
    """Small visa application form with character boxes and a checkbox."""
    widgets = [
        WidgetSpec(name=f"Surname_{index}", rect=(100 + 20 * index, 100, 118 + 20 * index, 118))
        for index in range(1, 6)
    ]
    widgets += [
        WidgetSpec(name="given_names", rect=(100, 140, 300, 158)),
        WidgetSpec(name="dob_field", rect=(100, 180, 200, 198)),
        WidgetSpec(name="PassportNo", rect=(100, 220, 250, 238)),
        WidgetSpec(name="nationality", rect=(100, 260, 250, 278), value="Singaporean"),
        WidgetSpec(name="Text7", rect=(100, 300, 300, 318)),
        WidgetSpec(name="agree", rect=(100, 340, 114, 354), kind="checkbox"),
    ]
    texts = [(0, (100, 296), "Email address")]
    return build_form_pdf(widgets, texts=texts)


@pytest.fixture
def flagged_form_pdf() -> bytes:
    """Form with read-only, required, length-limited and full-width numbered text fields."""
    widgets = [
        WidgetSpec(
            name="reference",
            rect=(100, 100, 300, 118),
            value="REF-1",
            flags=fitz.PDF_FIELD_IS_READ_ONLY,
        ),
        WidgetSpec(name="given_names", rect=(100, 140, 300, 158), flags=fitz.PDF_FIELD_IS_REQUIRED),
        WidgetSpec(name="initial", rect=(100, 180, 200, 198), max_length=1),
        WidgetSpec(name="Address Line 1", rect=(100, 220, 400, 238)),
        WidgetSpec(name="Address Line 2", rect=(100, 250, 400, 268)),
    ]
    return build_form_pdf(widgets)


def _mark_tests_by_directory(
    config: pytest.Config,
    items: list[pytest.Item],
    marker: str,
) -> None:
    """Mark collected tests located under tests/<marker>/."""
    target_dir = Path(config.rootpath) / "tests" / marker
    target_dir = target_dir.resolve()

    for item in items:
        try:
            path = Path(str(item.fspath)).resolve()
        except Exception:
            logger.warning(
                f"Could not resolve path for test item {item.name!s}; skipping {marker!s} marker assignment",
            )
            continue

        if path == target_dir or target_dir in path.parents:
            item.add_marker(getattr(pytest.mark, marker))


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Apply directory-based markers to test items."""
    _mark_tests_by_directory(config, items, "unit")
    _mark_tests_by_directory(config, items, "integration")
    _mark_tests_by_directory(config, items, "end2end")


@pytest.fixture
def form_pdf_builder():
    """Return the form document builder."""
    return build_form_pdf


@pytest.fixture
def blank_pdf() -> bytes:
    """Document without interactive fields."""
    return build_blank_pdf()


def _box(x0: float, y0: float, x1: float, y1: float) -> Rect:
    return Rect(x0=x0, y0=y0, x1=x1, y1=y1)


@pytest.fixture
def sample_document() -> ExtractedDocument:
    """Extraction result with text boxes, a checkbox, a radio group and an orphan widget."""
    fields = [
        FieldDefinition(name="given_names", label="Given Names", page=1),
        FieldDefinition(name="Surname_1", page=1, character_box=True),
        FieldDefinition(name="Surname_2", page=1, character_box=True),
        FieldDefinition(
            name="agree",
            kind=FieldKind.CHECKBOX,
            appearance=FieldAppearance(on_token="On"),
            page=1,
        ),
        FieldDefinition(name="sex", kind=FieldKind.RADIO, options=["M"], page=1),
    ]
    annotations = [
        WidgetAnnotation(field_name="given_names", page=1, rect=_box(100, 140, 300, 158), kind=FieldKind.TEXT),
        WidgetAnnotation(field_name="Surname_1", page=1, rect=_box(120, 100, 138, 118), kind=FieldKind.TEXT),
        WidgetAnnotation(field_name="Surname_2", page=1, rect=_box(140, 100, 158, 118), kind=FieldKind.TEXT),
        WidgetAnnotation(
            field_name="agree",
            page=1,
            rect=_box(100, 340, 114, 354),
            kind=FieldKind.CHECKBOX,
            on_token="On",
        ),
        WidgetAnnotation(
            field_name="sex",
            page=1,
            rect=_box(100, 380, 112, 392),
            kind=FieldKind.RADIO,
            export_value="M",
        ),
        WidgetAnnotation(
            field_name="sex",
            page=1,
            rect=_box(140, 380, 152, 392),
            kind=FieldKind.RADIO,
            export_value="F",
        ),
        WidgetAnnotation(field_name="extra_field", page=2, rect=_box(50, 50, 150, 68), kind=FieldKind.TEXT),
    ]
    return ExtractedDocument(fields=fields, annotations=annotations, page_count=2, fingerprint="0" * 64)

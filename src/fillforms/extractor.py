"""Field extraction from fillable PDF documents."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import fitz

from fillforms.cache import TTLCache
from fillforms.exceptions import BackendError, UnprocessableDocumentError
from fillforms.logging import get_logger
from fillforms.processing.appearance import parse_default_appearance
from fillforms.processing.labels import resolve_label
from fillforms.typing.enums import FieldKind
from fillforms.typing.models import (
    DocumentIntelligenceResult,
    ExtractedDocument,
    FieldDefinition,
    Rect,
    TextLine,
    WidgetAnnotation,
)

if TYPE_CHECKING:
    from fillforms.settings import Settings
    from fillforms.typing.protocol import DocumentIntelligenceClient

logger = get_logger(__name__)

_OFF_STATES = frozenset({"", "off", "false", "no"})
_DEFAULT_ON_TOKEN = "Yes"
_BOX_MAX_LENGTH = 4
_BOX_ASPECT_RATIO = 1.5

type IntelligenceCache = TTLCache[tuple[str, str | None], DocumentIntelligenceResult]


@dataclass
class _FieldDraft:
    """Mutable accumulator for every widget sharing one field name."""

    name: str
    kind: FieldKind
    page: int
    rect: Rect
    value: str = ""
    options: list[str] = field(default_factory=list)
    da: str | None = None
    on_token: str | None = None
    flags: int = 0
    max_length: int | None = None
    character_box: bool = False


def document_fingerprint(pdf_bytes: bytes) -> str:
    """Return a stable content hash for document bytes.

    Args:
        pdf_bytes (bytes): Raw document bytes.

    Returns:
        str: Hex sha-256 digest.
    """
    return hashlib.sha256(pdf_bytes).hexdigest()


def new_intelligence_cache(settings: Settings) -> IntelligenceCache:
    """Build an empty layout-analysis cache with the configured time-to-live."""
    return TTLCache(ttl_seconds=settings.intelligence_cache_ttl_seconds)


def widget_kind(widget: Any) -> FieldKind | None:
    """Map a PyMuPDF widget to a field kind.

    Args:
        widget (Any): PyMuPDF widget.

    Returns:
        FieldKind | None: Field kind, or None for push buttons and signatures.
    """
    match widget.field_type:
        case fitz.PDF_WIDGET_TYPE_CHECKBOX:
            return FieldKind.CHECKBOX
        case fitz.PDF_WIDGET_TYPE_RADIOBUTTON:
            return FieldKind.RADIO
        case fitz.PDF_WIDGET_TYPE_COMBOBOX | fitz.PDF_WIDGET_TYPE_LISTBOX:
            return FieldKind.SELECT
        case fitz.PDF_WIDGET_TYPE_TEXT:
            if "AFDate" in (widget.script_format or ""):
                return FieldKind.DATE
            if (widget.field_flags or 0) & fitz.PDF_TX_FIELD_IS_MULTILINE:
                return FieldKind.TEXTAREA
            return FieldKind.TEXT
        case _:
            return None


def _on_token(widget: Any) -> str:
    state = widget.on_state()
    if isinstance(state, str) and state.strip():
        return state
    return _DEFAULT_ON_TOKEN


def _is_on(raw: object) -> bool:
    if isinstance(raw, bool):
        return raw
    return raw is not None and str(raw).strip().lower() not in _OFF_STATES


def _choice_options(widget: Any) -> list[str]:
    options: list[str] = []
    for choice in widget.choice_values or []:
        # list boxes may expose (export, display) pairs
        option = choice[0] if isinstance(choice, (list, tuple)) else choice
        if option is not None and str(option) not in options:
            options.append(str(option))
    return options


def _default_appearance(doc: Any, widget: Any) -> str | None:
    kind, value = doc.xref_get_key(widget.xref, "DA")
    if kind == "string" and value:
        return value
    if widget.text_font:
        return f"/{widget.text_font} {widget.text_fontsize or 0} Tf"
    return None


def _is_character_box(widget: Any, rect: Rect, max_length: int | None) -> bool:
    """Return whether a text widget is a single cell of a boxed row."""
    if (widget.field_flags or 0) & fitz.PDF_TX_FIELD_IS_COMB:
        return True
    if max_length is not None and max_length <= _BOX_MAX_LENGTH:
        return True
    return rect.height > 0 and rect.width <= rect.height * _BOX_ASPECT_RATIO


def _text_lines(page: Any, page_number: int) -> list[TextLine]:
    lines: list[TextLine] = []
    for block in page.get_text("dict").get("blocks", []):
        if block.get("type") != 0:
            continue
        for line in block.get("lines", []):
            text = "".join(span.get("text", "") for span in line.get("spans", [])).strip()
            if not text:
                continue
            x0, y0, x1, y1 = line["bbox"]
            lines.append(TextLine(page=page_number, text=text, rect=Rect(x0=x0, y0=y0, x1=x1, y1=y1)))
    return lines


def _absorb_widget(
    drafts: dict[str, _FieldDraft],
    doc: Any,
    widget: Any,
    *,
    kind: FieldKind,
    page: int,
) -> WidgetAnnotation:
    """Fold one widget into its field accumulator and return its annotation."""
    name = widget.field_name or f"field_{widget.xref}"
    rect = Rect(x0=widget.rect.x0, y0=widget.rect.y0, x1=widget.rect.x1, y1=widget.rect.y1)
    draft = drafts.get(name)
    if draft is None:
        draft = _FieldDraft(name=name, kind=kind, page=page, rect=rect, da=_default_appearance(doc, widget))
        draft.flags = widget.field_flags or 0
        drafts[name] = draft

    export_value: str | None = None
    on_token: str | None = None
    match kind:
        case FieldKind.CHECKBOX:
            on_token = _on_token(widget)
            draft.on_token = draft.on_token or on_token
            if _is_on(widget.field_value):
                draft.value = on_token
        case FieldKind.RADIO:
            export_value = _on_token(widget)
            if export_value not in draft.options:
                draft.options.append(export_value)
            if _is_on(widget.field_value) and not draft.value:
                raw = widget.field_value
                draft.value = raw if isinstance(raw, str) and raw in draft.options else export_value
        case FieldKind.SELECT:
            for option in _choice_options(widget):
                if option not in draft.options:
                    draft.options.append(option)
            draft.value = draft.value or str(widget.field_value or "")
        case FieldKind.TEXT | FieldKind.TEXTAREA | FieldKind.DATE:
            draft.value = draft.value or str(widget.field_value or "")
            draft.max_length = widget.text_maxlen or None
            if kind != FieldKind.TEXTAREA:
                draft.character_box = _is_character_box(widget, rect, draft.max_length)

    return WidgetAnnotation(
        field_name=name,
        page=page,
        rect=rect,
        kind=kind,
        export_value=export_value,
        on_token=on_token,
        multiline=kind == FieldKind.TEXTAREA,
    )


def extract_fields(
    pdf_bytes: bytes,
    *,
    intelligence: DocumentIntelligenceResult | None = None,
    label_confidence_threshold: float = 0.7,
) -> ExtractedDocument:
    """Parse the interactive field structure of a PDF document.

    Args:
        pdf_bytes (bytes): Raw document bytes.
        intelligence (DocumentIntelligenceResult | None): Optional layout analysis used for labels.
        label_confidence_threshold (float): Minimum accepted Document Intelligence confidence.

    Raises:
        UnprocessableDocumentError: If the bytes are unreadable or the document has no
            interactive fields.

    Returns:
        ExtractedDocument: Field definitions, widget annotations and page count.
    """
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as exc:
        raise UnprocessableDocumentError(message=f"Unreadable document: {exc}") from exc

    with doc:
        if doc.needs_pass:
            raise UnprocessableDocumentError(message="Document is password protected")

        drafts: dict[str, _FieldDraft] = {}
        annotations: list[WidgetAnnotation] = []
        text_lines: list[TextLine] = []
        for page_index in range(len(doc)):
            page = doc.load_page(page_index)
            page_number = page_index + 1
            text_lines.extend(_text_lines(page, page_number))
            for widget in page.widgets():
                kind = widget_kind(widget)
                if kind is None:
                    continue
                annotations.append(_absorb_widget(drafts, doc, widget, kind=kind, page=page_number))
        page_count = len(doc)

    if not drafts:
        raise UnprocessableDocumentError

    detected = intelligence.labels if intelligence else []
    fields = [
        FieldDefinition(
            name=draft.name,
            kind=draft.kind,
            value=draft.value,
            label=resolve_label(
                draft.name,
                rect=draft.rect,
                page=draft.page,
                intelligence_labels=detected,
                text_lines=text_lines,
                threshold=label_confidence_threshold,
            ),
            options=draft.options,
            appearance=parse_default_appearance(draft.da, on_token=draft.on_token),
            page=draft.page,
            read_only=bool(draft.flags & fitz.PDF_FIELD_IS_READ_ONLY),
            required=bool(draft.flags & fitz.PDF_FIELD_IS_REQUIRED),
            max_length=draft.max_length,
            character_box=draft.character_box,
        )
        for draft in drafts.values()
    ]

    logger.info(
        "Fields extracted",
        extra={"fields": len(fields), "widgets": len(annotations), "pages": page_count},
    )
    return ExtractedDocument(
        fields=fields,
        annotations=annotations,
        page_count=page_count,
        fingerprint=document_fingerprint(pdf_bytes),
    )


async def analyze_layout(
    pdf_bytes: bytes,
    *,
    client: DocumentIntelligenceClient | None,
    cache: IntelligenceCache | None = None,
    visa_type: str | None = None,
) -> DocumentIntelligenceResult | None:
    """Run Document Intelligence with caching, degrading to None on failure.

    Args:
        pdf_bytes (bytes): Raw document bytes.
        client (DocumentIntelligenceClient | None): Layout analysis collaborator.
        cache (IntelligenceCache | None): Injected result cache.
        visa_type (str | None): Context hint, part of the cache key.

    Returns:
        DocumentIntelligenceResult | None: Analysis result, or None when unavailable.
    """
    if client is None:
        return None

    key = (document_fingerprint(pdf_bytes), visa_type)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            logger.info("Document Intelligence cache hit", extra={"fingerprint": key[0][:12]})
            return cached

    try:
        result = await client.analyze(pdf_bytes, visa_type=visa_type)
    except BackendError as exc:
        logger.warning("Document Intelligence unavailable", extra={"error": str(exc)})
        return None

    if cache is not None:
        cache.put(key, result)
    return result


async def extract_document(
    pdf_bytes: bytes,
    *,
    settings: Settings,
    intelligence_client: DocumentIntelligenceClient | None = None,
    cache: IntelligenceCache | None = None,
    visa_type: str | None = None,
) -> ExtractedDocument:
    """Extract fields, enriching labels with Document Intelligence when available.

    Args:
        pdf_bytes (bytes): Raw document bytes.
        settings (Settings): Runtime settings.
        intelligence_client (DocumentIntelligenceClient | None): Layout analysis collaborator.
        cache (IntelligenceCache | None): Injected result cache.
        visa_type (str | None): Context hint.

    Returns:
        ExtractedDocument: Extraction result.
    """
    intelligence = await analyze_layout(
        pdf_bytes,
        client=intelligence_client,
        cache=cache,
        visa_type=visa_type,
    )
    return extract_fields(
        pdf_bytes,
        intelligence=intelligence,
        label_confidence_threshold=settings.label_confidence_threshold,
    )

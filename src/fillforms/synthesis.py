"""Filled document synthesis."""

from __future__ import annotations

from typing import TYPE_CHECKING

import fitz

from fillforms.exceptions import UnprocessableDocumentError
from fillforms.extractor import widget_kind
from fillforms.logging import get_logger
from fillforms.typing.enums import FieldKind

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fillforms.typing.models import FieldDefinition

logger = get_logger(__name__)


def synthesize_document(pdf_bytes: bytes, fields: Iterable[FieldDefinition]) -> bytes:
    """Write field values back into the document and refresh widget appearances.

    Args:
        pdf_bytes (bytes): Original document bytes.
        fields (Iterable[FieldDefinition]): Values to write, matched by field name.

    Raises:
        UnprocessableDocumentError: If the bytes cannot be opened.

    Returns:
        bytes: Filled document bytes.
    """
    by_name = {field.name: field for field in fields}
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as exc:
        raise UnprocessableDocumentError(message=f"Unreadable document: {exc}") from exc

    written = 0
    with doc:
        for page in doc:
            for widget in page.widgets():
                field = by_name.get(widget.field_name)
                kind = widget_kind(widget)
                if field is None or kind is None:
                    continue
                match kind:
                    case FieldKind.CHECKBOX:
                        widget.field_value = field.is_filled
                    case FieldKind.RADIO:
                        widget.field_value = field.is_filled and widget.on_state() == field.value
                    case FieldKind.TEXT | FieldKind.TEXTAREA | FieldKind.DATE | FieldKind.SELECT:
                        widget.field_value = field.value
                widget.update()
                written += 1
        output = doc.tobytes(garbage=3, deflate=True)

    logger.info("Document synthesized", extra={"widgets": written, "bytes": len(output)})
    return output

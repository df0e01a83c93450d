"""PDF rendering helpers."""

from __future__ import annotations

import base64

import fitz

from fillforms.exceptions import BackendError
from fillforms.logging import get_logger
from fillforms.typing.models import RenderedPage

logger = get_logger(__name__)

_MIME_BY_FORMAT = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
}


def render_pdf_pages(
    pdf_bytes: bytes,
    *,
    dpi: int,
    image_format: str = "png",
    max_pages: int | None = None,
) -> list[RenderedPage]:
    """Render PDF bytes into base64 image pages.

    Args:
        pdf_bytes: Document bytes to render.
        dpi: Render DPI.
        image_format: Target format (`png`, `jpeg`, `jpg`).
        max_pages: Optional hard limit on rendered pages.

    Raises:
        BackendError: If the format is unsupported or rendering fails.

    Returns:
        list[RenderedPage]: Rendered pages.
    """
    normalized_format = image_format.lower()
    if normalized_format not in _MIME_BY_FORMAT:
        raise BackendError(message=f"Unsupported image format: {image_format}")

    try:
        rendered: list[RenderedPage] = []
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            for idx in range(len(doc)):
                pix = doc.load_page(idx).get_pixmap(dpi=dpi)
                encoded = base64.b64encode(pix.tobytes(output=normalized_format)).decode("ascii")
                rendered.append(
                    RenderedPage(
                        page_number=idx + 1,
                        mime_type=_MIME_BY_FORMAT[normalized_format],
                        data_base64=encoded,
                        width=pix.width,
                        height=pix.height,
                    ),
                )
                if max_pages and len(rendered) >= max_pages:
                    break
    except Exception as exc:
        raise BackendError(message=f"Failed to render PDF: {exc}") from exc

    logger.info("PDF rendered", extra={"pages": len(rendered), "dpi": dpi})
    return rendered


def page_scale(dpi: int) -> float:
    """Return the pixel-per-point factor for a render DPI.

    Args:
        dpi: Render DPI.

    Returns:
        float: Scale from PDF points to pixels.
    """
    return dpi / 72.0

"""Document Intelligence layout analysis over the REST API."""

from __future__ import annotations

import asyncio
import base64
from typing import TYPE_CHECKING, Any, cast

import httpx

from fillforms import logger
from fillforms.exceptions import BackendError
from fillforms.typing.models import (
    Barcode,
    DetectedLabel,
    DetectedTable,
    DocumentIntelligenceResult,
    Rect,
    SelectionMark,
    TableCell,
)

if TYPE_CHECKING:
    from fillforms.settings import Settings

_POINTS_PER_INCH = 72.0
_SELECTION_TOKENS = (":selected:", ":unselected:")


def polygon_to_rect(polygon: list[float], *, scale: float = 1.0) -> Rect | None:
    """Convert a flat `[x1, y1, x2, y2, ...]` polygon into a bounding rectangle.

    Args:
        polygon (list[float]): Polygon coordinates.
        scale (float): Unit conversion factor to PDF points.

    Returns:
        Rect | None: Bounding rectangle, or None for an empty polygon.
    """
    if len(polygon) < 2:  # noqa: PLR2004
        return None
    xs = polygon[0::2]
    ys = polygon[1::2]
    return Rect(x0=min(xs) * scale, y0=min(ys) * scale, x1=max(xs) * scale, y1=max(ys) * scale)


def _region(element: dict[str, Any] | None, scales: dict[int, float]) -> tuple[int, Rect] | None:
    if not element:
        return None
    for region in element.get("boundingRegions") or []:
        page = int(region.get("pageNumber", 1))
        rect = polygon_to_rect(region.get("polygon") or [], scale=scales.get(page, 1.0))
        if rect is not None:
            return page, rect
    return None


def parse_analyze_result(payload: dict[str, Any]) -> DocumentIntelligenceResult:
    """Convert a layout `analyzeResult` payload into domain models.

    Coordinates reported in inches are converted to PDF points so they line up with widget
    rectangles.

    Args:
        payload (dict[str, Any]): `analyzeResult` object.

    Returns:
        DocumentIntelligenceResult: Labels, tables, selection marks, barcodes and markdown.
    """
    pages = payload.get("pages") or []
    scales = {
        int(page.get("pageNumber", index)): _POINTS_PER_INCH if page.get("unit") == "inch" else 1.0
        for index, page in enumerate(pages, start=1)
    }

    labels: list[DetectedLabel] = []
    for pair in payload.get("keyValuePairs") or []:
        key = pair.get("key") or {}
        value = pair.get("value") or {}
        text = str(key.get("content") or "").strip()
        located = _region(value, scales) or _region(key, scales)
        if not text or located is None:
            continue
        value_content = str(value.get("content") or "")
        field_type = "selectionMark" if any(token in value_content for token in _SELECTION_TOKENS) else "text"
        labels.append(
            DetectedLabel(
                page=located[0],
                rect=located[1],
                label=text.rstrip(":").strip(),
                field_type=field_type,
                confidence=min(max(float(pair.get("confidence", 0.0)), 0.0), 1.0),
            ),
        )

    tables = [
        DetectedTable(
            row_count=int(table.get("rowCount", 0)),
            column_count=int(table.get("columnCount", 0)),
            cells=[
                TableCell(
                    row_index=int(cell.get("rowIndex", 0)),
                    column_index=int(cell.get("columnIndex", 0)),
                    content=str(cell.get("content") or ""),
                    kind=str(cell.get("kind") or "content"),
                )
                for cell in table.get("cells") or []
            ],
        )
        for table in payload.get("tables") or []
    ]

    selection_marks: list[SelectionMark] = []
    barcodes: list[Barcode] = []
    for index, page in enumerate(pages, start=1):
        page_number = int(page.get("pageNumber", index))
        selection_marks.extend(
            SelectionMark(
                page=page_number,
                state=str(mark.get("state") or "unselected"),
                confidence=float(mark.get("confidence", 0.0)),
                rect=polygon_to_rect(mark.get("polygon") or [], scale=scales.get(page_number, 1.0)),
            )
            for mark in page.get("selectionMarks") or []
        )
        barcodes.extend(
            Barcode(
                value=str(code.get("value") or ""),
                kind=str(code.get("kind") or ""),
                confidence=float(code.get("confidence", 0.0)),
            )
            for code in page.get("barcodes") or []
        )

    return DocumentIntelligenceResult(
        labels=labels,
        tables=tables,
        selection_marks=selection_marks,
        barcodes=barcodes,
        markdown=payload.get("content"),
    )


class DocumentIntelligenceHTTPClient:
    """Layout analysis client polling the asynchronous analyze operation."""

    def __init__(self, settings: Settings) -> None:
        """Initialize client.

        Args:
            settings (Settings): Runtime settings.
        """
        self._settings = settings

    def _http_client(self) -> httpx.AsyncClient:
        endpoint = self._settings.document_intelligence_endpoint
        if not endpoint:
            raise BackendError(message="DOCUMENT_INTELLIGENCE_ENDPOINT is required for layout analysis")
        if not self._settings.document_intelligence_key:
            raise BackendError(message="DOCUMENT_INTELLIGENCE_KEY is required for layout analysis")
        client = self._settings.select_async_httpx_client(endpoint)
        if client is None:
            raise BackendError(message="httpx clients are not initialized in settings")
        return cast("httpx.AsyncClient", client)

    def _analyze_url(self) -> str:
        return (
            f"{self._settings.document_intelligence_endpoint}/documentintelligence/documentModels/"
            f"{self._settings.document_intelligence_model}:analyze"
        )

    async def analyze(self, pdf_bytes: bytes, *, visa_type: str | None = None) -> DocumentIntelligenceResult:
        """Analyze a document and return per-position labels.

        Args:
            pdf_bytes (bytes): Raw document bytes.
            visa_type (str | None): Context hint, only logged.

        Raises:
            BackendError: If the request fails, the operation fails or polling runs out.

        Returns:
            DocumentIntelligenceResult: Detected labels and auxiliary extraction.
        """
        client = self._http_client()
        headers = {"Ocp-Apim-Subscription-Key": cast("str", self._settings.document_intelligence_key)}
        params = {
            "api-version": self._settings.document_intelligence_api_version,
            "features": "keyValuePairs,barcodes",
            "outputContentFormat": "markdown",
        }
        body = {"base64Source": base64.b64encode(pdf_bytes).decode("ascii")}

        try:
            response = await client.post(self._analyze_url(), params=params, headers=headers, json=body)
            response.raise_for_status()
            operation_url = response.headers.get("Operation-Location")
            if not operation_url:
                raise BackendError(message="Analyze response is missing the Operation-Location header")

            for _ in range(self._settings.document_intelligence_max_polls):
                await asyncio.sleep(self._settings.document_intelligence_poll_seconds)
                poll = await client.get(operation_url, headers=headers)
                poll.raise_for_status()
                data = poll.json()
                status = str(data.get("status", "")).lower()
                if status == "succeeded":
                    result = parse_analyze_result(data.get("analyzeResult") or {})
                    logger.info(
                        "Layout analysis completed",
                        extra={"labels": len(result.labels), "visa_type": visa_type},
                    )
                    return result
                if status in {"failed", "canceled"}:
                    error = data.get("error") or {}
                    raise BackendError(message=f"Layout analysis {status}: {error.get('message', 'unknown')}")
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                message=f"Layout analysis request failed with status {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(message=f"Layout analysis request failed: {exc}") from exc

        raise BackendError(message="Layout analysis did not complete in time")

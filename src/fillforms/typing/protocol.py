"""Collaborator interfaces."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from fillforms.typing.enums import DraftStatus
    from fillforms.typing.models import (
        DestinationContext,
        DocumentIntelligenceResult,
        DraftSnapshot,
        DraftSummary,
        FieldDefinition,
        ProfileRecord,
        Rect,
        SaveDraftRequest,
        SaveDraftResponse,
        VisionRequest,
    )


class DocumentIntelligenceClient(Protocol):
    """Layout analysis service consumed by the field extractor."""

    async def analyze(self, pdf_bytes: bytes, *, visa_type: str | None = None) -> DocumentIntelligenceResult:
        """Analyze a document and return per-position labels.

        Args:
            pdf_bytes: Raw document bytes.
            visa_type: Optional context hint.

        Returns:
            DocumentIntelligenceResult: Detected labels and auxiliary extraction.
        """


class VisionValidationClient(Protocol):
    """Image-based validation service."""

    async def analyze(self, request: VisionRequest) -> dict[str, Any]:
        """Run the vision cross-check.

        Args:
            request: Page images, value map and instruction.

        Returns:
            dict[str, Any]: Raw JSON result.
        """


class ProfileStore(Protocol):
    """Source of stored user profile data."""

    async def fetch_profile(self) -> ProfileRecord:
        """Return the structured profile record."""

    async def fetch_autofill(
        self,
        context: DestinationContext,
        fields: list[FieldDefinition],
    ) -> dict[str, str]:
        """Return server-side autofill values keyed by field name."""


class DraftStore(Protocol):
    """Remote storage for draft snapshots."""

    async def list_drafts(self) -> list[DraftSummary]:
        """List drafts of the current user."""

    async def get_draft(self, form_id: str) -> DraftSnapshot:
        """Fetch one draft by id."""

    async def save_draft(self, request: SaveDraftRequest) -> SaveDraftResponse:
        """Save a new version of a draft."""

    async def restore_version(self, form_id: str, version_id: str) -> DraftSnapshot:
        """Restore a version and return the resulting draft."""

    async def update_status(self, form_id: str, status: DraftStatus, context: str | None = None) -> None:
        """Update draft status."""

    async def delete_draft(self, form_id: str) -> None:
        """Delete a draft and all of its versions."""


class Viewport(Protocol):
    """Coordinate transform of a rendered page."""

    def to_pixels(self, rect: Rect) -> Rect:
        """Project a page-space rectangle into surface pixels."""


class RenderSurface(Protocol):
    """Page rendering surface hosting the overlay."""

    def viewport(self, page: int) -> Viewport:
        """Return the viewport of a rendered page."""

    def focus(self, field_name: str, *, page: int, highlight_seconds: float) -> None:
        """Focus an interactive element and highlight it briefly."""

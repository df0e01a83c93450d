"""In-process draft store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from fillforms.exceptions import BackendError, DraftNotFoundError
from fillforms.processing.grouping import completion_counts
from fillforms.typing.models import (
    DraftSnapshot,
    DraftSummary,
    FieldDefinition,
    SaveDraftResponse,
    VersionEntry,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from fillforms.typing.enums import DraftStatus
    from fillforms.typing.models import SaveDraftRequest


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class _StoredDraft:
    snapshot: DraftSnapshot
    versions: dict[str, list[FieldDefinition]] = field(default_factory=dict)
    pdf_base64: str | None = None


class InMemoryDraftStore:
    """Draft store keeping snapshots in memory with a bounded version history."""

    def __init__(self, *, history_limit: int = 20, clock: Callable[[], datetime] = _utcnow) -> None:
        """Initialize store.

        Args:
            history_limit (int): Maximum number of versions kept per draft.
            clock (Callable[[], datetime]): Timestamp source.
        """
        self._history_limit = max(history_limit, 1)
        self._clock = clock
        self._drafts: dict[str, _StoredDraft] = {}

    def _stored(self, form_id: str) -> _StoredDraft:
        stored = self._drafts.get(form_id)
        if stored is None:
            raise DraftNotFoundError(form_id=form_id)
        return stored

    async def list_drafts(self) -> list[DraftSummary]:
        """List drafts, most recently updated first.

        Returns:
            list[DraftSummary]: Draft summaries.
        """
        summaries = []
        for stored in self._drafts.values():
            snapshot = stored.snapshot
            filled, total = completion_counts(snapshot.fields)
            summaries.append(
                DraftSummary(
                    form_id=snapshot.form_id,
                    file_name=snapshot.file_name,
                    updated_at=snapshot.updated_at,
                    status=snapshot.status,
                    completion_percentage=snapshot.completion_percentage,
                    total_fields=total,
                    filled_fields=filled,
                    country=snapshot.country,
                    visa_type=snapshot.visa_type,
                    has_pdf=snapshot.has_pdf,
                ),
            )
        return sorted(summaries, key=lambda summary: summary.updated_at, reverse=True)

    async def get_draft(self, form_id: str) -> DraftSnapshot:
        """Fetch one draft by id.

        Raises:
            DraftNotFoundError: If the draft does not exist.
        """
        return self._stored(form_id).snapshot.model_copy(deep=True)

    async def save_draft(self, request: SaveDraftRequest) -> SaveDraftResponse:
        """Store a new version, creating the draft on first save.

        Args:
            request (SaveDraftRequest): Snapshot to save.

        Raises:
            DraftNotFoundError: If the request names an unknown draft.

        Returns:
            SaveDraftResponse: Assigned id, version and history.
        """
        now = self._clock()
        if request.form_id is None:
            form_id = uuid4().hex
            stored = _StoredDraft(
                snapshot=DraftSnapshot(form_id=form_id, file_name=request.file_name, updated_at=now),
            )
            self._drafts[form_id] = stored
        else:
            stored = self._stored(request.form_id)

        if request.pdf_base64:
            stored.pdf_base64 = request.pdf_base64

        version_id = uuid4().hex
        fields = [item.model_copy() for item in request.fields]
        stored.versions[version_id] = fields
        history = [
            VersionEntry(
                snapshot_id=version_id,
                saved_at=now,
                completion_percentage=request.completion_percentage,
            ),
            *stored.snapshot.version_history,
        ]
        for dropped in history[self._history_limit :]:
            stored.versions.pop(dropped.snapshot_id, None)
        history = history[: self._history_limit]

        stored.snapshot = stored.snapshot.model_copy(
            update={
                "file_name": request.file_name,
                "fields": fields,
                "updated_at": now,
                "completion_percentage": request.completion_percentage,
                "version_history": history,
                "country": request.country,
                "visa_type": request.visa_type,
                "has_pdf": stored.pdf_base64 is not None,
            },
        )
        return SaveDraftResponse(
            form_id=stored.snapshot.form_id,
            version_id=version_id,
            versions=list(history),
            persisted=True,
            saved_at=now,
        )

    async def restore_version(self, form_id: str, version_id: str) -> DraftSnapshot:
        """Make a stored version the current content of a draft.

        Raises:
            DraftNotFoundError: If the draft does not exist.
            BackendError: If the version is unknown or was evicted from history.
        """
        stored = self._stored(form_id)
        fields = stored.versions.get(version_id)
        if fields is None:
            raise BackendError(message=f"Unknown version {version_id} for draft {form_id}", status_code=404)
        entry = next(item for item in stored.snapshot.version_history if item.snapshot_id == version_id)
        stored.snapshot = stored.snapshot.model_copy(
            update={
                "fields": [item.model_copy() for item in fields],
                "updated_at": self._clock(),
                "completion_percentage": entry.completion_percentage,
            },
        )
        return stored.snapshot.model_copy(deep=True)

    async def update_status(
        self,
        form_id: str,
        status: DraftStatus,
        context: str | None = None,  # noqa: ARG002
    ) -> None:
        """Update draft status.

        Raises:
            DraftNotFoundError: If the draft does not exist.
        """
        stored = self._stored(form_id)
        stored.snapshot = stored.snapshot.model_copy(update={"status": status, "updated_at": self._clock()})

    async def delete_draft(self, form_id: str) -> None:
        """Delete a draft with its whole history.

        Raises:
            DraftNotFoundError: If the draft does not exist.
        """
        self._stored(form_id)
        del self._drafts[form_id]

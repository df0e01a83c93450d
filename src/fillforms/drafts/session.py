"""Draft persistence and versioning for the active document."""

from __future__ import annotations

import asyncio
import base64
from typing import TYPE_CHECKING, Protocol

from fillforms.drafts.scheduler import DebouncedTask, SupersessionGuard
from fillforms.exceptions import (
    BackendError,
    DraftConflictError,
    DraftNotFoundError,
    DraftSaveFailedError,
    VersionRestoreFailedError,
)
from fillforms.logging import bind_document_context, get_logger
from fillforms.processing.grouping import completion_percentage
from fillforms.typing.enums import DraftStatus, SaveState
from fillforms.typing.models import SaveDraftRequest

if TYPE_CHECKING:
    from datetime import datetime

    from fillforms.settings import Settings
    from fillforms.typing.models import (
        DestinationContext,
        DraftSnapshot,
        DraftSummary,
        FieldDefinition,
        ValidationReport,
        VersionEntry,
    )
    from fillforms.typing.protocol import DraftStore

logger = get_logger(__name__)

_SAVE = "save"
_RESTORE = "restore"


class DraftSource(Protocol):
    """Owner of the live field list that drafts are taken from."""

    @property
    def file_name(self) -> str:
        """Return the uploaded document name."""

    @property
    def pdf_bytes(self) -> bytes:
        """Return the original document bytes."""

    @property
    def context(self) -> DestinationContext:
        """Return the destination context."""

    def snapshot_fields(self) -> list[FieldDefinition]:
        """Return copies of the current fields."""

    def replace_fields(self, fields: list[FieldDefinition]) -> None:
        """Replace the whole live field list."""


class DraftPersistence:
    """Continuous autosave, explicit saves and version restore for one document.

    Saves are serialized. Each save and restore carries a token from the shared
    `SupersessionGuard`; a response whose token is no longer current is not applied
    to the live state. This object is the only writer of `form_id` and of the version list.
    """

    def __init__(
        self,
        store: DraftStore,
        *,
        source: DraftSource,
        settings: Settings,
        guard: SupersessionGuard | None = None,
    ) -> None:
        """Initialize persistence.

        Args:
            store (DraftStore): Remote draft store.
            source (DraftSource): Owner of the live fields.
            settings (Settings): Runtime settings.
            guard (SupersessionGuard | None): Shared supersession guard.
        """
        self._store = store
        self._source = source
        self._history_limit = settings.version_history_limit
        self._guard = guard or SupersessionGuard()
        self._lock = asyncio.Lock()
        self._autosave = DebouncedTask(settings.autosave_debounce_seconds, self.save_now)

        self._state = SaveState.IDLE
        self._status = DraftStatus.DRAFT
        self._form_id: str | None = None
        self._latest_version_id: str | None = None
        self._versions: list[VersionEntry] = []
        self._original_pdf_uploaded = False
        self._last_error: DraftSaveFailedError | None = None
        self._last_saved_at: datetime | None = None

    @property
    def state(self) -> SaveState:
        """Return the autosave state."""
        return self._state

    @property
    def status(self) -> DraftStatus:
        """Return the draft lifecycle status."""
        return self._status

    @property
    def form_id(self) -> str | None:
        """Return the remote draft id, None until the first successful save."""
        return self._form_id

    @property
    def latest_version_id(self) -> str | None:
        """Return the id of the most recent saved or restored version."""
        return self._latest_version_id

    @property
    def versions(self) -> list[VersionEntry]:
        """Return the version history, most recent first."""
        return list(self._versions)

    @property
    def original_pdf_uploaded(self) -> bool:
        """Return whether the original document already reached the store."""
        return self._original_pdf_uploaded

    @property
    def last_error(self) -> DraftSaveFailedError | None:
        """Return the failure of the last save, if it failed."""
        return self._last_error

    @property
    def last_saved_at(self) -> datetime | None:
        """Return the time of the last successful save."""
        return self._last_saved_at

    @property
    def autosave_pending(self) -> bool:
        """Return whether an autosave is waiting for its quiet period."""
        return self._autosave.pending

    def schedule_autosave(self) -> None:
        """Schedule a debounced save after a qualifying edit."""
        self._autosave.schedule()

    async def flush(self) -> None:
        """Run a pending autosave now and wait for in-flight saves."""
        await self._autosave.flush()
        await self._autosave.wait()

    def _build_request(self) -> SaveDraftRequest:
        fields = self._source.snapshot_fields()
        context = self._source.context
        pdf_base64 = None
        if not self._original_pdf_uploaded:
            pdf_base64 = base64.b64encode(self._source.pdf_bytes).decode("ascii")
        return SaveDraftRequest(
            form_id=self._form_id,
            fields=fields,
            file_name=self._source.file_name,
            pdf_base64=pdf_base64,
            country=context.country or None,
            visa_type=context.visa_type or None,
            completion_percentage=completion_percentage(fields),
        )

    async def save_now(self) -> SaveState:
        """Save the current fields as a new version.

        Failures do not raise: they are kept in `last_error` and reflected in `state`
        while the in-memory fields stay untouched.

        Returns:
            SaveState: State after the save.
        """
        async with self._lock:
            token = self._guard.issue(_SAVE)
            self._state = SaveState.SAVING
            request = self._build_request()
            try:
                response = await self._store.save_draft(request)
            except (BackendError, DraftNotFoundError) as exc:
                self._last_error = DraftSaveFailedError(message=f"Draft save failed: {exc}")
                if self._guard.is_current(_SAVE, token):
                    self._state = SaveState.ERROR
                logger.warning(
                    "Draft save failed",
                    extra={"form_id": self._form_id, "error": str(exc)},
                )
                return self._state

            if not self._guard.is_current(_SAVE, token):
                logger.info("Stale draft save discarded", extra={"form_id": response.form_id})
                return self._state

            self._last_error = None
            if self._form_id != response.form_id:
                self._form_id = response.form_id
                bind_document_context(form_id=response.form_id)
            if not response.persisted:
                self._state = SaveState.LOCAL_ONLY
                logger.warning("Draft kept locally only", extra={"form_id": self._form_id})
                return self._state

            if request.pdf_base64 is not None:
                self._original_pdf_uploaded = True
            self._versions = response.versions[: self._history_limit]
            self._latest_version_id = response.version_id
            self._last_saved_at = response.saved_at
            self._state = SaveState.SAVED
            logger.info(
                "Draft saved",
                extra={
                    "form_id": self._form_id,
                    "version_id": response.version_id,
                    "completion": request.completion_percentage,
                    "with_pdf": request.pdf_base64 is not None,
                },
            )
            return self._state

    async def retry(self) -> SaveState:
        """Retry after a failed save.

        Returns:
            SaveState: State after the save.
        """
        return await self.save_now()

    async def restore_version(self, version_id: str) -> DraftSnapshot:
        """Make a stored version the live content.

        Only the field list is replaced; `form_id` is kept and the version list is
        fetched again from the store.

        Args:
            version_id (str): Version to restore.

        Raises:
            VersionRestoreFailedError: If there is no draft yet or the store refuses the restore.

        Returns:
            DraftSnapshot: Draft as returned by the store.
        """
        self._autosave.cancel()
        async with self._lock:
            form_id = self._form_id
            if form_id is None:
                raise VersionRestoreFailedError(form_id="", version_id=version_id)
            token = self._guard.issue(_RESTORE)
            self._guard.invalidate(_SAVE)
            try:
                snapshot = await self._store.restore_version(form_id, version_id)
            except (BackendError, DraftNotFoundError) as exc:
                logger.warning(
                    "Version restore failed",
                    extra={"form_id": form_id, "version_id": version_id, "error": str(exc)},
                )
                raise VersionRestoreFailedError(form_id=form_id, version_id=version_id) from exc

            if not self._guard.is_current(_RESTORE, token):
                logger.info("Stale version restore discarded", extra={"form_id": form_id})
                return snapshot

            self._source.replace_fields(snapshot.fields)
            versions = snapshot.version_history
            try:
                versions = (await self._store.get_draft(form_id)).version_history
            except (BackendError, DraftNotFoundError) as exc:
                logger.warning("Version list refresh failed", extra={"form_id": form_id, "error": str(exc)})
            self._versions = versions[: self._history_limit]
            self._latest_version_id = version_id
            self._state = SaveState.SAVED
            logger.info("Version restored", extra={"form_id": form_id, "version_id": version_id})
            return snapshot

    def _reset(self) -> None:
        self._state = SaveState.IDLE
        self._status = DraftStatus.DRAFT
        self._form_id = None
        self._latest_version_id = None
        self._versions = []
        self._original_pdf_uploaded = False
        self._last_error = None
        self._last_saved_at = None
        bind_document_context(form_id=None)

    async def discard(self) -> None:
        """Delete the remote draft with its whole history and forget it locally."""
        self._autosave.cancel()
        async with self._lock:
            self._guard.invalidate(_SAVE)
            form_id = self._form_id
            if form_id is not None:
                try:
                    await self._store.delete_draft(form_id)
                except DraftNotFoundError:
                    logger.info("Draft already absent", extra={"form_id": form_id})
            self._reset()
        logger.info("Draft discarded", extra={"form_id": form_id})

    async def mark_completed(
        self,
        report: ValidationReport | None = None,
        *,
        context: str | None = None,
    ) -> bool:
        """Mark the draft completed.

        Args:
            report (ValidationReport | None): Latest validation report.
            context (str | None): Trigger, e.g. `download` or `validation`.

        Returns:
            bool: True when the status changed remotely.
        """
        if context != "download" and (report is None or report.has_blocking_errors):
            logger.info("Draft completion refused", extra={"form_id": self._form_id, "context": context})
            return False

        if self._form_id is None:
            await self.save_now()
        form_id = self._form_id
        if form_id is None:
            return False

        try:
            await self._store.update_status(form_id, DraftStatus.COMPLETED, context)
        except (BackendError, DraftNotFoundError) as exc:
            logger.warning("Draft status update failed", extra={"form_id": form_id, "error": str(exc)})
            return False
        self._status = DraftStatus.COMPLETED
        logger.info("Draft completed", extra={"form_id": form_id, "context": context})
        return True

    async def list_drafts(self) -> list[DraftSummary]:
        """List drafts of the current user.

        Returns:
            list[DraftSummary]: Draft summaries.
        """
        return await self._store.list_drafts()

    async def open_draft(self, form_id: str) -> DraftSnapshot:
        """Resume an existing draft and load its fields.

        Args:
            form_id (str): Draft to open.

        Raises:
            DraftNotFoundError: If the draft does not exist.

        Returns:
            DraftSnapshot: Opened draft.
        """
        self._autosave.cancel()
        async with self._lock:
            self._guard.invalidate(_SAVE)
            snapshot = await self._store.get_draft(form_id)
            self._source.replace_fields(snapshot.fields)
            self._form_id = snapshot.form_id
            self._status = snapshot.status
            self._versions = snapshot.version_history[: self._history_limit]
            self._latest_version_id = self._versions[0].snapshot_id if self._versions else None
            self._original_pdf_uploaded = snapshot.has_pdf
            self._last_saved_at = snapshot.updated_at
            self._last_error = None
            self._state = SaveState.SAVED
            bind_document_context(form_id=snapshot.form_id)
        logger.info("Draft opened", extra={"form_id": form_id, "fields": len(snapshot.fields)})
        return snapshot

    async def start_new_document(self, *, confirm: bool = False) -> None:
        """Detach from the current draft so the next save creates a new one.

        Pending edits are saved first. Existing drafts are never overwritten.

        Args:
            confirm (bool): Proceed even when drafts already exist.

        Raises:
            DraftConflictError: If drafts exist and `confirm` is false.
        """
        drafts = await self._store.list_drafts()
        if drafts and not confirm:
            raise DraftConflictError(existing_drafts=len(drafts))
        await self.flush()
        async with self._lock:
            self._guard.invalidate(_SAVE)
            self._reset()

    async def close(self) -> None:
        """Save pending edits and stop autosaving."""
        await self.flush()
        self._autosave.cancel()

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest

from fillforms.drafts import DraftPersistence, InMemoryDraftStore
from fillforms.exceptions import (
    BackendError,
    DraftConflictError,
    DraftNotFoundError,
    DraftSaveFailedError,
    VersionRestoreFailedError,
)
from fillforms.settings import Settings
from fillforms.typing.enums import DraftStatus, IssueType, SaveState
from fillforms.typing.models import (
    DestinationContext,
    DraftSnapshot,
    FieldDefinition,
    SaveDraftRequest,
    SaveDraftResponse,
    StructuredValidation,
    ValidationIssue,
    ValidationReport,
)


@dataclass
class _Source:
    fields: list[FieldDefinition] = field(
        default_factory=lambda: [FieldDefinition(name="surname"), FieldDefinition(name="given_names")],
    )
    file_name: str = "visa.pdf"
    pdf_bytes: bytes = b"%PDF-1.7 test"
    context: DestinationContext = field(default_factory=lambda: DestinationContext(country="singapore"))

    def snapshot_fields(self) -> list[FieldDefinition]:
        return [item.model_copy() for item in self.fields]

    def replace_fields(self, fields: list[FieldDefinition]) -> None:
        self.fields = [item.model_copy() for item in fields]

    def set(self, name: str, value: str) -> None:
        self.fields = [
            item.model_copy(update={"value": value}) if item.name == name else item for item in self.fields
        ]


class _RecordingStore(InMemoryDraftStore):
    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.requests: list[SaveDraftRequest] = []
        self.failures = 0
        self.persisted = True

    async def save_draft(self, request: SaveDraftRequest) -> SaveDraftResponse:
        self.requests.append(request)
        if self.failures:
            self.failures -= 1
            raise BackendError(message="store unavailable", status_code=503)
        response = await super().save_draft(request)
        if not self.persisted:
            return response.model_copy(update={"persisted": False, "version_id": None, "versions": []})
        return response


def _settings(**overrides: object) -> Settings:
    return Settings(AUTOSAVE_DEBOUNCE_SECONDS=0.01, **overrides)


def _persistence(store: _RecordingStore, source: _Source, **overrides: object) -> DraftPersistence:
    return DraftPersistence(store, source=source, settings=_settings(**overrides))


def test_debounced_autosave_saves_once_with_all_edits() -> None:
    store = _RecordingStore()
    source = _Source()
    persistence = _persistence(store, source)

    async def scenario() -> None:
        source.set("surname", "Doe")
        persistence.schedule_autosave()
        source.set("given_names", "Jane")
        persistence.schedule_autosave()
        assert persistence.autosave_pending
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert len(store.requests) == 1
    assert [item.value for item in store.requests[0].fields] == ["Doe", "Jane"]
    assert persistence.state == SaveState.SAVED
    assert persistence.form_id is not None
    assert len(persistence.versions) == 1


def test_original_pdf_sent_only_on_first_save() -> None:
    store = _RecordingStore()
    source = _Source()
    persistence = _persistence(store, source)

    async def scenario() -> None:
        await persistence.save_now()
        source.set("surname", "Doe")
        await persistence.save_now()

    asyncio.run(scenario())

    assert store.requests[0].pdf_base64 is not None
    assert store.requests[0].form_id is None
    assert store.requests[0].country == "singapore"
    assert store.requests[1].pdf_base64 is None
    assert store.requests[1].form_id == persistence.form_id
    assert store.requests[1].completion_percentage == 50
    assert persistence.original_pdf_uploaded


def test_local_only_save_resends_pdf() -> None:
    store = _RecordingStore()
    store.persisted = False
    source = _Source()
    persistence = _persistence(store, source)

    async def scenario() -> None:
        assert await persistence.save_now() == SaveState.LOCAL_ONLY
        assert not persistence.original_pdf_uploaded
        store.persisted = True
        assert await persistence.save_now() == SaveState.SAVED

    asyncio.run(scenario())

    assert store.requests[1].pdf_base64 is not None
    assert persistence.original_pdf_uploaded


def test_failed_save_keeps_fields_and_retry_recovers() -> None:
    store = _RecordingStore()
    store.failures = 1
    source = _Source()
    source.set("surname", "Doe")
    persistence = _persistence(store, source)

    async def scenario() -> None:
        assert await persistence.save_now() == SaveState.ERROR
        assert isinstance(persistence.last_error, DraftSaveFailedError)
        assert source.fields[0].value == "Doe"
        assert persistence.form_id is None
        assert await persistence.retry() == SaveState.SAVED

    asyncio.run(scenario())

    assert persistence.last_error is None
    assert persistence.last_saved_at is not None


def test_restore_version_replaces_fields_and_keeps_form_id() -> None:
    store = _RecordingStore()
    source = _Source()
    persistence = _persistence(store, source)

    async def scenario() -> None:
        source.set("surname", "Doe")
        await persistence.save_now()
        first_version = persistence.latest_version_id
        form_id = persistence.form_id
        source.set("surname", "Smith")
        await persistence.save_now()

        snapshot = await persistence.restore_version(first_version or "")

        assert snapshot.fields[0].value == "Doe"
        assert source.fields[0].value == "Doe"
        assert persistence.form_id == form_id
        assert persistence.latest_version_id == first_version
        assert len(persistence.versions) == 2

    asyncio.run(scenario())


class _VanishingStore(_RecordingStore):
    async def get_draft(self, form_id: str) -> DraftSnapshot:
        raise DraftNotFoundError(form_id=form_id)


def test_restore_keeps_snapshot_versions_when_refresh_finds_no_draft() -> None:
    store = _VanishingStore()
    source = _Source()
    persistence = _persistence(store, source)

    async def scenario() -> None:
        source.set("surname", "Doe")
        await persistence.save_now()
        first_version = persistence.latest_version_id or ""
        source.set("surname", "Smith")
        await persistence.save_now()

        snapshot = await persistence.restore_version(first_version)

        assert source.fields[0].value == "Doe"
        assert persistence.latest_version_id == first_version
        assert persistence.versions == snapshot.version_history
        assert persistence.state == SaveState.SAVED

    asyncio.run(scenario())


def test_restore_failures_raise() -> None:
    store = _RecordingStore()
    persistence = _persistence(store, _Source())

    async def scenario() -> None:
        with pytest.raises(VersionRestoreFailedError):
            await persistence.restore_version("missing")
        await persistence.save_now()
        with pytest.raises(VersionRestoreFailedError):
            await persistence.restore_version("missing")

    asyncio.run(scenario())


def test_version_list_is_capped_by_settings() -> None:
    store = _RecordingStore()
    persistence = _persistence(store, _Source(), VERSION_HISTORY_LIMIT=2)

    async def scenario() -> None:
        for _ in range(3):
            await persistence.save_now()

    asyncio.run(scenario())

    assert len(persistence.versions) == 2


def test_discard_deletes_remote_draft() -> None:
    store = _RecordingStore()
    persistence = _persistence(store, _Source())

    async def scenario() -> None:
        await persistence.save_now()
        await persistence.discard()
        assert await store.list_drafts() == []

    asyncio.run(scenario())

    assert persistence.form_id is None
    assert persistence.state == SaveState.IDLE
    assert persistence.versions == []


def test_mark_completed_requires_clean_report_unless_download() -> None:
    store = _RecordingStore()
    persistence = _persistence(store, _Source())
    failing = ValidationReport(
        structured=StructuredValidation(
            overall_score=50,
            filled_groups=1,
            total_groups=2,
            issues=[ValidationIssue(id="x", field_name="Surname", type=IssueType.ERROR, message="Required")],
        ),
    )

    async def scenario() -> None:
        assert await persistence.mark_completed(failing, context="validation") is False
        assert await persistence.mark_completed(None, context="validation") is False
        assert await persistence.mark_completed(failing, context="download") is True
        snapshot = await store.get_draft(persistence.form_id or "")
        assert snapshot.status == DraftStatus.COMPLETED

    asyncio.run(scenario())

    assert persistence.status == DraftStatus.COMPLETED


def test_start_new_document_requires_confirmation() -> None:
    store = _RecordingStore()
    persistence = _persistence(store, _Source())

    async def scenario() -> None:
        await persistence.save_now()
        first_id = persistence.form_id
        with pytest.raises(DraftConflictError):
            await persistence.start_new_document()
        await persistence.start_new_document(confirm=True)
        assert persistence.form_id is None
        await persistence.save_now()
        assert persistence.form_id != first_id
        assert len(await store.list_drafts()) == 2

    asyncio.run(scenario())


def test_open_draft_loads_fields() -> None:
    store = _RecordingStore()
    source = _Source()
    persistence = _persistence(store, source)

    async def scenario() -> None:
        saved = await store.save_draft(
            SaveDraftRequest(
                fields=[FieldDefinition(name="surname", value="Doe")],
                file_name="resume.pdf",
                pdf_base64="JVBERi0=",
            ),
        )
        snapshot = await persistence.open_draft(saved.form_id)
        assert snapshot.file_name == "resume.pdf"

    asyncio.run(scenario())

    assert [item.value for item in source.fields] == ["Doe"]
    assert persistence.state == SaveState.SAVED
    assert persistence.original_pdf_uploaded
    assert persistence.latest_version_id is not None


def test_close_flushes_pending_autosave() -> None:
    store = _RecordingStore()
    persistence = DraftPersistence(store, source=_Source(), settings=Settings(AUTOSAVE_DEBOUNCE_SECONDS=60))

    async def scenario() -> None:
        persistence.schedule_autosave()
        await persistence.close()

    asyncio.run(scenario())

    assert len(store.requests) == 1
    assert not persistence.autosave_pending

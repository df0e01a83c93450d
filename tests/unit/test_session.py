from __future__ import annotations

import asyncio
from datetime import date

import pytest

from fillforms.drafts import InMemoryDraftStore
from fillforms.exceptions import BackendError
from fillforms.session import DocumentSession
from fillforms.settings import Settings
from fillforms.typing.enums import FieldKind, FieldSource
from fillforms.typing.models import (
    DestinationContext,
    ExtractedDocument,
    FieldDefinition,
    ProfileRecord,
    Rect,
    WidgetAnnotation,
)

PROFILE = ProfileRecord.model_validate(
    {"profile": {"firstName": "Jane", "lastName": "Doe", "gender": "female"}},
)


class _ProfileStore:
    def __init__(self, server_values: dict[str, str] | None = None) -> None:
        self.server_values = server_values

    async def fetch_profile(self) -> ProfileRecord:
        return PROFILE

    async def fetch_autofill(
        self,
        context: DestinationContext,
        fields: list[FieldDefinition],
    ) -> dict[str, str]:
        if self.server_values is None:
            raise BackendError(message="autofill endpoint down", status_code=502)
        return self.server_values


def _session(document: ExtractedDocument, **kwargs: object) -> DocumentSession:
    return DocumentSession(
        document,
        b"%PDF-1.7",
        file_name="visa.pdf",
        settings=Settings(),
        context=DestinationContext(country="singapore"),
        **kwargs,
    )


def test_update_field_unknown_name_raises(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document)

    with pytest.raises(KeyError):
        session.update_field("missing", "value")


def test_update_field_returns_copies(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document)

    updated = session.update_field("given_names", "Jane")
    updated.value = "tampered"

    current = session.field("given_names")
    assert current is not None
    assert current.value == "Jane"
    assert current.source == FieldSource.MANUAL
    assert session.completion_percentage == 25


def test_apply_values_reports_changed_names(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document)
    session.update_field("Surname_1", "D")

    changed = session.apply_values({"Surname_1": "D", "Surname_2": "o"})

    assert changed == ["Surname_2"]


def test_ensure_field_synthesizes_missing_definition(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document)
    orphan = WidgetAnnotation(
        field_name="extra_field",
        page=2,
        rect=Rect(x0=50, y0=50, x1=150, y1=68),
        kind=FieldKind.TEXT,
    )

    created = session.ensure_field(orphan)

    assert created.label == "Extra Field"
    assert created.page == 2
    assert session.ensure_field(orphan) == created
    assert len(session.fields) == 6


def test_ensure_field_collects_radio_export_values(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document)
    female = next(item for item in sample_document.annotations if item.export_value == "F")

    assert session.ensure_field(female).options == ["M", "F"]


def test_autofill_falls_back_to_profile_projection(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document, profile_store=_ProfileStore())

    result = asyncio.run(session.autofill())

    assert result.changed_names == ["given_names", "Surname_1", "Surname_2"]
    given_names = session.field("given_names")
    assert given_names is not None
    assert given_names.value == "Jane"
    assert given_names.source == FieldSource.PROFILE
    assert [item.value for item in session.fields if item.name.startswith("Surname")] == ["D", "o"]


def test_autofill_prefers_server_values(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document, profile_store=_ProfileStore({"given_names": "Janet"}))

    asyncio.run(session.autofill())

    given_names = session.field("given_names")
    assert given_names is not None
    assert given_names.value == "Janet"


def test_autofill_without_profile_store_changes_nothing(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document)

    result = asyncio.run(session.autofill())

    assert result.changed_count == 0


class _UnavailableProfileStore(_ProfileStore):
    async def fetch_profile(self) -> ProfileRecord:
        raise BackendError(message="profile service down", status_code=503)


def test_autofill_with_unavailable_profile_changes_nothing(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document, profile_store=_UnavailableProfileStore({"given_names": "Janet"}))

    result = asyncio.run(session.autofill())

    assert result.changed_count == 0
    assert [item.value for item in result.fields] == [item.value for item in sample_document.fields]
    assert all(not item.is_filled for item in session.fields)


def test_validate_keeps_last_report(sample_document: ExtractedDocument) -> None:
    session = _session(sample_document)

    report = asyncio.run(session.validate(today=date(2026, 10, 17)))

    assert report is not None
    assert report.vision is None
    assert session.last_report is report


def test_edits_schedule_autosave_and_close_flushes(sample_document: ExtractedDocument) -> None:
    store = InMemoryDraftStore()
    session = DocumentSession(
        sample_document,
        b"%PDF-1.7",
        file_name="visa.pdf",
        settings=Settings(AUTOSAVE_DEBOUNCE_SECONDS=60),
        draft_store=store,
    )

    async def scenario() -> None:
        session.start_editing()
        assert session.edit_mode
        session.update_field("given_names", "Jane")
        assert session.drafts is not None
        assert session.drafts.autosave_pending
        await session.close()
        assert not session.edit_mode

    asyncio.run(scenario())

    drafts = asyncio.run(store.list_drafts())
    assert len(drafts) == 1
    assert drafts[0].file_name == "visa.pdf"
    assert drafts[0].has_pdf

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import httpx
import pytest

from fillforms.backends.draft_http import HTTPDraftStore, field_from_wire, field_to_wire
from fillforms.backends.profile_http import HTTPProfileStore
from fillforms.exceptions import BackendError, DraftNotFoundError
from fillforms.settings import Settings
from fillforms.typing.enums import DraftStatus, FieldKind, FieldSource
from fillforms.typing.models import (
    DestinationContext,
    FieldAppearance,
    FieldDefinition,
    SaveDraftRequest,
)

Handler = Callable[[httpx.Request], httpx.Response]


def _settings(monkeypatch, handler: Handler) -> Settings:
    settings = Settings()
    settings.draft_store_url = "https://drafts.example.test/api"
    settings.profile_store_url = "https://profile.example.test/api"
    settings.api_token = "token"  # pragma: allowlist secret
    monkeypatch.setattr(
        Settings,
        "select_async_httpx_client",
        lambda _self, _target_url: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return settings


def _ok(data: object) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": data})


def test_save_draft_posts_fields_and_pdf(monkeypatch) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _ok(
            {
                "formId": "f1",
                "versionId": "v1",
                "versions": [
                    {"snapshotId": "v1", "savedAt": "2026-10-17T09:00:00Z", "completionPercentage": 50},
                ],
                "savedAt": "2026-10-17T09:00:00Z",
            },
        )

    store = HTTPDraftStore(_settings(monkeypatch, handler))
    request = SaveDraftRequest(
        fields=[FieldDefinition(name="surname", value="Doe")],
        file_name="visa.pdf",
        pdf_base64="JVBERi0=",
        country="singapore",
        completion_percentage=50,
    )

    response = asyncio.run(store.save_draft(request))

    assert response.form_id == "f1"
    assert response.version_id == "v1"
    assert response.persisted
    assert [entry.snapshot_id for entry in response.versions] == ["v1"]
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/form-filler/save-draft"
    assert seen[0].headers["Authorization"] == "Bearer token"
    body = json.loads(seen[0].content)
    assert body["formId"] is None
    assert body["formData"] == {"surname": "Doe"}
    assert body["pdfBytes"] == "JVBERi0="
    assert body["fields"][0]["type"] == "text"


def test_save_draft_reports_local_only(monkeypatch) -> None:
    store = HTTPDraftStore(_settings(monkeypatch, lambda _request: _ok({"formId": "f1", "persisted": False})))

    response = asyncio.run(store.save_draft(SaveDraftRequest(form_id="f1", fields=[], file_name="visa.pdf")))

    assert not response.persisted
    assert response.versions == []


def test_save_draft_without_id_fails(monkeypatch) -> None:
    store = HTTPDraftStore(_settings(monkeypatch, lambda _request: _ok({})))

    with pytest.raises(BackendError, match="no draft id"):
        asyncio.run(store.save_draft(SaveDraftRequest(fields=[], file_name="visa.pdf")))


def test_get_draft_maps_not_found(monkeypatch) -> None:
    store = HTTPDraftStore(_settings(monkeypatch, lambda _request: httpx.Response(404)))

    with pytest.raises(DraftNotFoundError):
        asyncio.run(store.get_draft("missing"))


def test_get_draft_accepts_filled_data_map(monkeypatch) -> None:
    payload = {
        "id": "f1",
        "fileName": "visa.pdf",
        "updatedAt": "2026-10-17T09:00:00Z",
        "status": "submitted",
        "filledData": {"surname": "Doe", "given_names": None},
        "versionHistory": [{"snapshotId": "v2"}, {"savedAt": "2026-10-17T08:00:00Z"}],
        "hasPdf": True,
    }
    store = HTTPDraftStore(_settings(monkeypatch, lambda _request: _ok(payload)))

    snapshot = asyncio.run(store.get_draft("f1"))

    assert snapshot.form_id == "f1"
    assert snapshot.status == DraftStatus.COMPLETED
    assert [(item.name, item.value) for item in snapshot.fields] == [("surname", "Doe"), ("given_names", "")]
    assert [entry.snapshot_id for entry in snapshot.version_history] == ["v2"]
    assert snapshot.has_pdf


def test_list_drafts_sorted_by_update_time(monkeypatch) -> None:
    drafts = [
        {"id": "old", "fileName": "a.pdf", "updatedAt": "2026-10-01T09:00:00Z", "filledFields": 2},
        {"id": "new", "fileName": "b.pdf", "updatedAt": "2026-10-17T09:00:00Z", "status": "completed"},
    ]
    store = HTTPDraftStore(_settings(monkeypatch, lambda _request: _ok({"drafts": drafts})))

    summaries = asyncio.run(store.list_drafts())

    assert [summary.form_id for summary in summaries] == ["new", "old"]
    assert summaries[0].status == DraftStatus.COMPLETED
    assert summaries[1].filled_fields == 2


def test_restore_status_and_delete_paths(monkeypatch) -> None:
    seen: list[tuple[str, str, bytes]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, request.content))
        if request.method == "POST":
            fields = [{"name": "surname", "value": "Doe"}]
            return _ok({"formId": "f1", "fileName": "visa.pdf", "fields": fields})
        return _ok(None)

    store = HTTPDraftStore(_settings(monkeypatch, handler))

    async def scenario() -> None:
        snapshot = await store.restore_version("f1", "v1")
        assert snapshot.fields[0].value == "Doe"
        await store.update_status("f1", DraftStatus.COMPLETED, "download")
        await store.delete_draft("f1")

    asyncio.run(scenario())

    assert [(method, path) for method, path, _ in seen] == [
        ("POST", "/api/form-filler/drafts/f1/versions/v1/restore"),
        ("PATCH", "/api/form-filler/f1/status"),
        ("DELETE", "/api/form-filler/drafts/f1"),
    ]
    assert json.loads(seen[1][2]) == {"status": "completed", "context": "download"}


def test_unsuccessful_envelope_raises(monkeypatch) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "quota exceeded"})

    store = HTTPDraftStore(_settings(monkeypatch, handler))

    with pytest.raises(BackendError, match="quota exceeded"):
        asyncio.run(store.list_drafts())


def test_transport_error_raises_backend_error(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = HTTPDraftStore(_settings(monkeypatch, handler))

    with pytest.raises(BackendError, match="connection refused"):
        asyncio.run(store.list_drafts())


def test_missing_base_url_raises() -> None:
    settings = Settings()
    settings.draft_store_url = None

    with pytest.raises(BackendError, match="URL is not configured"):
        asyncio.run(HTTPDraftStore(settings).list_drafts())


def test_field_wire_format_tolerates_unknown_values() -> None:
    field = FieldDefinition(
        name="agree",
        kind=FieldKind.CHECKBOX,
        value="On",
        source=FieldSource.PROFILE,
        appearance=FieldAppearance(font_size=9.0, on_token="On"),
        required=True,
    )
    boxed = FieldDefinition(name="Surname_1", read_only=True, max_length=1, character_box=True)

    assert field_from_wire(field_to_wire(boxed)) == boxed
    assert field_to_wire(boxed)["maxLength"] == 1
    assert field_from_wire(field_to_wire(field)) == field
    parsed = field_from_wire({"id": "x", "type": "signature", "source": "robot"})
    assert parsed.name == "x"
    assert parsed.kind == FieldKind.TEXT
    assert parsed.source == FieldSource.NONE


def test_fetch_profile_parses_record(monkeypatch) -> None:
    payload = {
        "profile": {"firstName": "Jane", "lastName": "Doe"},
        "passports": [{"passportNumber": "X1234567", "isActive": True}],
        "unknownSection": {"ignored": True},
    }
    store = HTTPProfileStore(_settings(monkeypatch, lambda _request: _ok(payload)))

    profile = asyncio.run(store.fetch_profile())

    assert profile.personal.first_name == "Jane"
    assert profile.passports[0].passport_number == "X1234567"


def test_fetch_profile_rejects_non_object(monkeypatch) -> None:
    store = HTTPProfileStore(_settings(monkeypatch, lambda _request: _ok(["not", "a", "profile"])))

    with pytest.raises(BackendError, match="no profile"):
        asyncio.run(store.fetch_profile())


def test_fetch_autofill_keeps_non_empty_values(monkeypatch) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        entries = {"Text7": {"value": "jane@example.com"}, "empty": {"value": " "}, "plain": "y"}
        return _ok({"autoFillData": entries})

    store = HTTPProfileStore(_settings(monkeypatch, handler))
    fields = [FieldDefinition(name="Text7", label="Email address")]

    values = asyncio.run(store.fetch_autofill(DestinationContext(country="singapore"), fields))

    assert values == {"Text7": "jane@example.com", "plain": "y"}
    assert seen[0].url.path == "/api/autofill"
    sent = json.loads(seen[0].content)
    assert sent["fields"] == [{"id": "Text7", "name": "Text7", "label": "Email address"}]

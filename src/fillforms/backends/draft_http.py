"""Draft store over HTTP."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from fillforms.backends.http_json import JSONServiceClient
from fillforms.exceptions import BackendError, DraftNotFoundError
from fillforms.typing.enums import DraftStatus, FieldKind, FieldSource
from fillforms.typing.models import (
    DraftSnapshot,
    DraftSummary,
    FieldAppearance,
    FieldDefinition,
    SaveDraftResponse,
    VersionEntry,
)

if TYPE_CHECKING:
    from fillforms.settings import Settings
    from fillforms.typing.models import SaveDraftRequest

_NOT_FOUND = 404
_COMPLETED_STATES = frozenset({"completed", "submitted"})


def _timestamp(raw: object) -> datetime:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    return datetime.now(tz=UTC)


def _status(raw: object) -> DraftStatus:
    return DraftStatus.COMPLETED if str(raw or "").lower() in _COMPLETED_STATES else DraftStatus.DRAFT


def _versions(raw: object) -> list[VersionEntry]:
    if not isinstance(raw, list):
        return []
    return [
        VersionEntry(
            snapshot_id=str(item["snapshotId"]),
            saved_at=_timestamp(item.get("savedAt")),
            completion_percentage=int(item.get("completionPercentage") or 0),
        )
        for item in raw
        if isinstance(item, dict) and item.get("snapshotId")
    ]


def field_to_wire(field: FieldDefinition) -> dict[str, Any]:
    """Serialize a field for the draft store.

    Args:
        field (FieldDefinition): Field to serialize.

    Returns:
        dict[str, Any]: camelCase field payload.
    """
    appearance = field.appearance
    return {
        "id": field.name,
        "name": field.name,
        "type": field.kind.value,
        "value": field.value,
        "label": field.label,
        "options": field.options,
        "source": field.source.value,
        "page": field.page,
        "readOnly": field.read_only,
        "required": field.required,
        "maxLength": field.max_length,
        "characterBox": field.character_box,
        "appearance": (
            {
                "fontSize": appearance.font_size,
                "fontName": appearance.font_name,
                "onToken": appearance.on_token,
            }
            if appearance
            else None
        ),
    }


def field_from_wire(raw: dict[str, Any]) -> FieldDefinition:
    """Parse a field payload, tolerating unknown kinds and extra keys.

    Args:
        raw (dict[str, Any]): camelCase field payload.

    Returns:
        FieldDefinition: Parsed field.
    """
    try:
        kind = FieldKind(str(raw.get("type") or raw.get("kind") or "text"))
    except ValueError:
        kind = FieldKind.TEXT
    try:
        source = FieldSource(str(raw.get("source") or "none"))
    except ValueError:
        source = FieldSource.NONE
    appearance = raw.get("appearance")
    return FieldDefinition(
        name=str(raw.get("name") or raw.get("id")),
        kind=kind,
        value=str(raw.get("value") or ""),
        label=str(raw.get("label") or ""),
        options=[str(option) for option in raw.get("options") or []],
        source=source,
        page=raw.get("page"),
        read_only=bool(raw.get("readOnly")),
        required=bool(raw.get("required")),
        max_length=raw.get("maxLength") or None,
        character_box=bool(raw.get("characterBox")),
        appearance=(
            FieldAppearance(
                font_size=appearance.get("fontSize"),
                font_name=appearance.get("fontName"),
                on_token=appearance.get("onToken"),
            )
            if isinstance(appearance, dict)
            else None
        ),
    )


def _fields(data: dict[str, Any]) -> list[FieldDefinition]:
    raw_fields = data.get("fields")
    filled = data.get("filledData")
    if not isinstance(raw_fields, list) and isinstance(filled, dict):
        raw_fields = filled.get("fields")
        if not isinstance(raw_fields, list):
            return [FieldDefinition(name=str(name), value=str(value or "")) for name, value in filled.items()]
    return [field_from_wire(item) for item in raw_fields or [] if isinstance(item, dict)]


def snapshot_from_wire(data: dict[str, Any]) -> DraftSnapshot:
    """Parse a draft payload.

    Args:
        data (dict[str, Any]): Draft payload.

    Returns:
        DraftSnapshot: Parsed snapshot.
    """
    return DraftSnapshot(
        form_id=str(data.get("formId") or data.get("id")),
        file_name=str(data.get("fileName") or ""),
        fields=_fields(data),
        updated_at=_timestamp(data.get("updatedAt")),
        status=_status(data.get("status")),
        completion_percentage=int(data.get("completionPercentage") or 0),
        version_history=_versions(data.get("versionHistory")),
        country=data.get("country"),
        visa_type=data.get("visaType"),
        has_pdf=bool(data.get("hasPdf")),
    )


class HTTPDraftStore(JSONServiceClient):
    """Draft snapshots persisted by the remote form-filler service."""

    service_name = "Draft store"

    def __init__(self, settings: Settings) -> None:
        """Initialize store.

        Args:
            settings (Settings): Runtime settings.
        """
        super().__init__(settings, settings.draft_store_url)

    async def _request_draft(self, method: str, path: str, form_id: str) -> Any:  # noqa: ANN401
        try:
            return await self.request(method, path)
        except BackendError as exc:
            if exc.status_code == _NOT_FOUND:
                raise DraftNotFoundError(form_id=form_id) from exc
            raise

    async def list_drafts(self) -> list[DraftSummary]:
        """List drafts of the current user.

        Returns:
            list[DraftSummary]: Draft summaries, most recently updated first.
        """
        data = await self.request("GET", "/form-filler/drafts")
        drafts = data.get("drafts") if isinstance(data, dict) else data
        summaries = [
            DraftSummary(
                form_id=str(item.get("id") or item.get("formId")),
                file_name=str(item.get("fileName") or ""),
                updated_at=_timestamp(item.get("updatedAt")),
                status=_status(item.get("status")),
                completion_percentage=int(item.get("completionPercentage") or 0),
                total_fields=int(item.get("totalFields") or 0),
                filled_fields=int(item.get("filledFields") or 0),
                country=item.get("country"),
                visa_type=item.get("visaType"),
                has_pdf=bool(item.get("hasPdf")),
            )
            for item in drafts or []
            if isinstance(item, dict)
        ]
        return sorted(summaries, key=lambda summary: summary.updated_at, reverse=True)

    async def get_draft(self, form_id: str) -> DraftSnapshot:
        """Fetch one draft by id.

        Args:
            form_id (str): Draft id.

        Raises:
            DraftNotFoundError: If the draft does not exist.

        Returns:
            DraftSnapshot: Stored snapshot.
        """
        data = await self._request_draft("GET", f"/form-filler/drafts/{form_id}", form_id)
        if not isinstance(data, dict):
            raise DraftNotFoundError(form_id=form_id)
        return snapshot_from_wire(data)

    async def save_draft(self, request: SaveDraftRequest) -> SaveDraftResponse:
        """Save a new version of a draft.

        Args:
            request (SaveDraftRequest): Snapshot to save.

        Raises:
            BackendError: If the store returns no draft id.

        Returns:
            SaveDraftResponse: Assigned id, version and history.
        """
        body: dict[str, Any] = {
            "formId": request.form_id,
            "formData": {field.name: field.value for field in request.fields},
            "fields": [field_to_wire(field) for field in request.fields],
            "fileName": request.file_name,
            "country": request.country,
            "visaType": request.visa_type,
            "completionPercentage": request.completion_percentage,
        }
        if request.pdf_base64:
            body["pdfBytes"] = request.pdf_base64
        data = await self.request("POST", "/form-filler/save-draft", json=body)
        if not isinstance(data, dict) or not data.get("formId"):
            raise BackendError(message="Draft store returned no draft id")
        return SaveDraftResponse(
            form_id=str(data["formId"]),
            version_id=data.get("versionId"),
            versions=_versions(data.get("versions")),
            persisted=data.get("persisted", True) is not False,
            saved_at=_timestamp(data.get("savedAt")),
        )

    async def restore_version(self, form_id: str, version_id: str) -> DraftSnapshot:
        """Restore a version and return the resulting draft.

        Args:
            form_id (str): Draft id.
            version_id (str): Version snapshot id.

        Raises:
            BackendError: If the store returns no draft.

        Returns:
            DraftSnapshot: Draft after restore.
        """
        data = await self._request_draft(
            "POST",
            f"/form-filler/drafts/{form_id}/versions/{version_id}/restore",
            form_id,
        )
        if not isinstance(data, dict):
            raise BackendError(message="Draft store returned no restored draft")
        return snapshot_from_wire(data)

    async def update_status(self, form_id: str, status: DraftStatus, context: str | None = None) -> None:
        """Update draft status.

        Args:
            form_id (str): Draft id.
            status (DraftStatus): New status.
            context (str | None): Free-form reason, e.g. `download`.
        """
        await self.request(
            "PATCH",
            f"/form-filler/{form_id}/status",
            json={"status": status.value, "context": context},
        )

    async def delete_draft(self, form_id: str) -> None:
        """Delete a draft and all of its versions.

        Args:
            form_id (str): Draft id.

        Raises:
            DraftNotFoundError: If the draft does not exist.
        """
        await self._request_draft("DELETE", f"/form-filler/drafts/{form_id}", form_id)

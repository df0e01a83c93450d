"""Profile store over HTTP."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fillforms.backends.http_json import JSONServiceClient
from fillforms.exceptions import BackendError
from fillforms.typing.models import ProfileRecord

if TYPE_CHECKING:
    from fillforms.settings import Settings
    from fillforms.typing.models import DestinationContext, FieldDefinition


class HTTPProfileStore(JSONServiceClient):
    """Read-only access to the stored user profile and server-side autofill."""

    service_name = "Profile store"

    def __init__(self, settings: Settings) -> None:
        """Initialize store.

        Args:
            settings (Settings): Runtime settings.
        """
        super().__init__(settings, settings.profile_store_url)

    async def fetch_profile(self) -> ProfileRecord:
        """Return the structured profile record.

        Raises:
            BackendError: If the request fails or the payload is not an object.

        Returns:
            ProfileRecord: Parsed profile.
        """
        data = await self.request("GET", "/profile")
        if not isinstance(data, dict):
            raise BackendError(message="Profile store returned no profile")
        payload: dict[str, Any] = dict(data)
        payload["profile"] = payload.get("profile") or {}
        return ProfileRecord.model_validate(payload)

    async def fetch_autofill(
        self,
        context: DestinationContext,
        fields: list[FieldDefinition],
    ) -> dict[str, str]:
        """Return server-side autofill values keyed by field name.

        Args:
            context (DestinationContext): Destination context.
            fields (list[FieldDefinition]): Fields to fill.

        Returns:
            dict[str, str]: Values keyed by field name.
        """
        body = {
            "country": context.country,
            "visaType": context.visa_type,
            "fields": [{"id": field.name, "name": field.name, "label": field.label} for field in fields],
        }
        data = await self.request("POST", "/autofill", json=body)
        entries: dict[str, Any] = {}
        if isinstance(data, dict):
            entries = data.get("autoFillData") or {}
        values: dict[str, str] = {}
        for key, entry in entries.items():
            raw = entry.get("value") if isinstance(entry, dict) else entry
            if raw is not None and str(raw).strip():
                values[str(key)] = str(raw)
        return values

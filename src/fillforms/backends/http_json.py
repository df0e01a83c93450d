"""Shared JSON-over-HTTP plumbing for the profile and draft stores."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

import httpx

from fillforms.exceptions import BackendError

if TYPE_CHECKING:
    from fillforms.settings import Settings


class JSONServiceClient:
    """Async JSON client bound to one base URL.

    Responses use the `{"success": bool, "data": ..., "error": str}` envelope; the `data`
    member is returned and an unsuccessful envelope becomes a `BackendError`.
    """

    service_name = "service"

    def __init__(self, settings: Settings, base_url: str | None) -> None:
        """Initialize client.

        Args:
            settings (Settings): Runtime settings.
            base_url (str | None): Service base URL.
        """
        self._settings = settings
        self._base_url = base_url

    def _http_client(self) -> httpx.AsyncClient:
        if not self._base_url:
            raise BackendError(message=f"{self.service_name} URL is not configured")
        client = self._settings.select_async_httpx_client(self._base_url)
        if client is None:
            raise BackendError(message="httpx clients are not initialized in settings")
        return cast("httpx.AsyncClient", client)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._settings.api_token:
            headers["Authorization"] = f"Bearer {self._settings.api_token}"
        return headers

    async def request(  # noqa: ANN401
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and unwrap the response envelope.

        Args:
            method (str): HTTP method.
            path (str): Path relative to the base URL.
            json (dict[str, Any] | None): Optional JSON body.

        Raises:
            BackendError: If transport fails, the status is not 2xx or the envelope reports failure.

        Returns:
            Any: Envelope `data` member, or the raw body when no envelope is used.
        """
        client = self._http_client()
        url = f"{self._base_url}{path}"
        try:
            response = await client.request(method, url, json=json, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                message=f"{self.service_name} {method} {path} failed with status {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(message=f"{self.service_name} {method} {path} failed: {exc}") from exc

        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError as exc:
            raise BackendError(message=f"{self.service_name} returned invalid JSON") from exc

        if isinstance(body, dict) and "success" in body:
            envelope = cast("dict[str, Any]", body)
            if not envelope.get("success"):
                raise BackendError(message=str(envelope.get("error") or f"{self.service_name} request failed"))
            return envelope.get("data")
        return body

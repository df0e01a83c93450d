"""OpenAI-compatible vision validation backend."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, cast

import openai as openai_sdk
from pydantic import BaseModel, ConfigDict, Field

from fillforms import logger
from fillforms.exceptions import BackendError
from fillforms.prompts import schema_response_format

if TYPE_CHECKING:
    from fillforms.settings import Settings
    from fillforms.typing.models import RenderedPage, VisionRequest


class _VisionIssue(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    fieldName: str  # noqa: N815
    type: str
    message: str
    suggestion: str | None = None


class _VisionResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    overallScore: int  # noqa: N815
    completedFields: int  # noqa: N815
    totalFields: int  # noqa: N815
    issues: list[_VisionIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    countrySpecificNotes: list[str] = Field(default_factory=list)  # noqa: N815


class OpenAIVisionClient:
    """Vision validation against OpenAI-compatible chat-completions endpoints."""

    def __init__(self, settings: Settings) -> None:
        """Initialize backend.

        Args:
            settings (Settings): Runtime settings.
        """
        self._settings = settings

    def _client(self) -> openai_sdk.AsyncOpenAI:
        """Build an async SDK client over the shared httpx client.

        Raises:
            BackendError: If the endpoint is misconfigured.

        Returns:
            openai_sdk.AsyncOpenAI: SDK client.
        """
        if not self._settings.openai_base_url:
            raise BackendError(message="OPENAI_BASE_URL is required for vision validation")
        if not self._settings.openai_api_key:
            raise BackendError(message="OPENAI_API_KEY is required for vision validation")

        client = self._settings.select_async_httpx_client(self._settings.openai_base_url)
        if client is None:
            raise BackendError(message="httpx clients are not initialized in settings")
        return openai_sdk.AsyncOpenAI(
            api_key=self._settings.openai_api_key,
            base_url=self._settings.openai_base_url,
            http_client=cast("Any", client),
        )

    @staticmethod
    def _image_content(page: RenderedPage) -> dict[str, Any]:
        """Build image content chunk.

        Args:
            page (RenderedPage): Rendered page.

        Returns:
            dict[str, Any]: OpenAI content block.
        """
        return {
            "type": "image_url",
            "image_url": {"url": f"data:{page.mime_type};base64,{page.data_base64}"},
        }

    def build_payload(self, request: VisionRequest) -> dict[str, Any]:
        """Build the chat-completions payload for a vision request.

        Args:
            request (VisionRequest): Page images, values and instruction.

        Returns:
            dict[str, Any]: Request payload.
        """
        response_format = schema_response_format("vision_validation", _VisionResponse.model_json_schema())
        content: list[dict[str, Any]] = [{"type": "text", "text": request.instruction}]
        content.extend(self._image_content(page) for page in request.pages)
        if request.filled_pdf_base64:
            content.append(
                {
                    "type": "file",
                    "file": {
                        "filename": "filled-form.pdf",
                        "file_data": f"data:application/pdf;base64,{request.filled_pdf_base64}",
                    },
                },
            )
        return {
            "model": self._settings.openai_model,
            "messages": [{"role": "user", "content": content}],
            "response_format": {
                "type": "json_schema",
                "json_schema": response_format.model_dump(mode="json", by_alias=True),
            },
        }

    async def analyze(self, request: VisionRequest) -> dict[str, Any]:
        """Run the vision cross-check.

        Args:
            request (VisionRequest): Page images, value map and instruction.

        Raises:
            BackendError: If the page list is empty or the request fails.

        Returns:
            dict[str, Any]: Raw JSON result.
        """
        if not request.pages:
            raise BackendError(message="Cannot run vision validation on an empty page list")

        payload = self.build_payload(request)
        openai_client = self._client()
        try:
            completion = await openai_client.chat.completions.create(**payload)
            data = completion.model_dump(mode="json")
        except openai_sdk.APIStatusError as exc:
            raise BackendError(
                message=f"Chat completion request failed with status {exc.status_code}",
                status_code=exc.status_code,
            ) from exc
        except openai_sdk.APITimeoutError as exc:
            raise BackendError(message="Chat completion request timed out") from exc
        except openai_sdk.APIConnectionError as exc:
            raise BackendError(message=f"Chat completion request failed: {exc}") from exc

        try:
            content_text = data["choices"][0]["message"]["content"]
            parsed = json.loads(content_text)
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as exc:
            raise BackendError(message=f"Vision response is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise BackendError(message="Vision response must be a JSON object")

        logger.info("Vision analysis received", extra={"pages": len(request.pages)})
        return cast("dict[str, Any]", parsed)

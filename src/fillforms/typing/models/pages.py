"""Page rendering models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class RenderedPage(BaseModel):
    """Rendered page image sent to external analysis services."""

    model_config = ConfigDict(extra="forbid")

    page_number: int
    mime_type: str
    data_base64: str
    width: int | None = None
    height: int | None = None

"""Validation orchestration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fillforms.typing.models import ValidationReport
from fillforms.validation.structured import validate_structured

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from fillforms.typing.models import FieldDefinition
    from fillforms.validation.vision import VisionValidator


class Validator:
    """Run the structured pass and, on request, the vision pass."""

    def __init__(self, vision: VisionValidator | None = None) -> None:
        """Initialize orchestrator.

        Args:
            vision (VisionValidator | None): Vision pass; None limits validation to local rules.
        """
        self._vision = vision

    async def validate(
        self,
        fields: Sequence[FieldDefinition],
        country: str,
        *,
        pdf_bytes: bytes | None = None,
        include_vision: bool = False,
        today: date | None = None,
    ) -> ValidationReport:
        """Validate the current fields.

        Args:
            fields (Sequence[FieldDefinition]): Current fields.
            country (str): Destination country.
            pdf_bytes (bytes | None): Original document bytes, needed by the vision pass.
            include_vision (bool): Whether to run the vision pass.
            today (date | None): Reference date for the structured pass.

        Returns:
            ValidationReport: Structured and vision results in separate namespaces.
        """
        structured = validate_structured(fields, country, today=today)
        vision = None
        if include_vision and self._vision is not None and pdf_bytes is not None:
            vision = await self._vision.run(pdf_bytes, fields, country)
        return ValidationReport(structured=structured, vision=vision)

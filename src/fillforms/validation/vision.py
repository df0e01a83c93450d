"""Image-based validation pass."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

from fillforms.exceptions import PackageError
from fillforms.logging import get_logger
from fillforms.pdf_render import render_pdf_pages
from fillforms.processing.grouping import completion_counts
from fillforms.prompts import build_vision_validation_prompt
from fillforms.synthesis import synthesize_document
from fillforms.typing.enums import IssueSource, IssueType
from fillforms.typing.models import ValidationIssue, VisionRequest, VisionValidation
from fillforms.validation.resolver import FieldContextResolver
from fillforms.validation.rules import country_rule
from fillforms.validation.structured import build_canonical_values

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from fillforms.settings import Settings
    from fillforms.typing.models import FieldDefinition, RenderedPage
    from fillforms.typing.protocol import VisionValidationClient

logger = get_logger(__name__)

UNAVAILABLE_NOTICE = "Vision validation is unavailable right now; structured checks still apply."
NOT_CONFIGURED_NOTICE = "Vision validation is not configured."


def _issue_type(raw: object) -> IssueType:
    try:
        return IssueType(str(raw).lower())
    except ValueError:
        return IssueType.INFO


def _strings(raw: object) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(item) for item in raw if str(item).strip()]


def parse_vision_payload(
    payload: dict[str, Any],
    *,
    resolver: FieldContextResolver,
    filled_groups: int,
    total_groups: int,
) -> VisionValidation:
    """Convert a raw vision result into a reconciled outcome.

    Completion counts always come from the local grouping; the service's own counts are
    ignored because they are computed on rasterized pages.

    Args:
        payload (dict[str, Any]): Raw JSON from the vision collaborator.
        resolver (FieldContextResolver): Resolver for issue field references.
        filled_groups (int): Local filled group count.
        total_groups (int): Local total group count.

    Raises:
        ValueError: If the payload is malformed.

    Returns:
        VisionValidation: Available vision outcome.
    """
    raw_score = payload.get("overallScore")
    if raw_score is None:
        message = "vision payload has no overallScore"
        raise ValueError(message)
    score = min(max(int(raw_score), 0), 100)

    issues: list[ValidationIssue] = []
    for index, raw_issue in enumerate(payload.get("issues") or [], start=1):
        if not isinstance(raw_issue, dict):
            continue
        reference = str(raw_issue.get("fieldName") or "")
        display, field_key = resolver.resolve(reference) if reference else ("", None)
        issues.append(
            ValidationIssue(
                id=str(raw_issue.get("id") or f"vision-{index}"),
                field_name=display,
                type=_issue_type(raw_issue.get("type")),
                message=str(raw_issue.get("message") or ""),
                suggestion=raw_issue.get("suggestion") or None,
                field_key=field_key,
                source=IssueSource.VISION,
            ),
        )

    return VisionValidation(
        available=True,
        overall_score=score,
        completed_fields=filled_groups,
        total_fields=total_groups,
        issues=issues,
        recommendations=_strings(payload.get("recommendations")),
        country_specific_notes=_strings(payload.get("countrySpecificNotes")),
    )


class VisionValidator:
    """Rasterize the filled document and cross-check it with the vision collaborator."""

    def __init__(
        self,
        client: VisionValidationClient | None,
        *,
        settings: Settings,
        renderer: Callable[..., list[RenderedPage]] = render_pdf_pages,
    ) -> None:
        """Initialize validator.

        Args:
            client (VisionValidationClient | None): Vision collaborator; None disables the pass.
            settings (Settings): Runtime settings.
            renderer (Callable[..., list[RenderedPage]]): Page rasterizer.
        """
        self._client = client
        self._settings = settings
        self._renderer = renderer

    async def run(
        self,
        pdf_bytes: bytes,
        fields: Sequence[FieldDefinition],
        country: str,
        *,
        include_filled_pdf: bool = False,
    ) -> VisionValidation:
        """Run the vision pass. Failures are reported in the outcome, never raised.

        Args:
            pdf_bytes (bytes): Original document bytes.
            fields (Sequence[FieldDefinition]): Current fields.
            country (str): Destination country.
            include_filled_pdf (bool): Also send the filled document itself.

        Returns:
            VisionValidation: Reconciled outcome, or an unavailable outcome with a notice.
        """
        if self._client is None:
            return VisionValidation.unavailable(NOT_CONFIGURED_NOTICE)

        try:
            filled = synthesize_document(pdf_bytes, fields)
            pages = self._renderer(filled, dpi=self._settings.render_dpi)
            rule = country_rule(country)
            values = build_canonical_values(fields, date_format=rule.date_format).as_dict()
            request = VisionRequest(
                pages=pages,
                values=values,
                country=country,
                instruction=build_vision_validation_prompt(country, values, rule),
                filled_pdf_base64=base64.b64encode(filled).decode("ascii") if include_filled_pdf else None,
            )
            payload = await self._client.analyze(request)
            filled_groups, total_groups = completion_counts(fields)
            outcome = parse_vision_payload(
                payload,
                resolver=FieldContextResolver(fields),
                filled_groups=filled_groups,
                total_groups=total_groups,
            )
        except (PackageError, ValueError, TypeError, KeyError) as exc:
            logger.warning("Vision validation failed", extra={"error": str(exc)})
            return VisionValidation.unavailable(UNAVAILABLE_NOTICE)

        logger.info(
            "Vision validation completed",
            extra={"score": outcome.overall_score, "issues": len(outcome.issues)},
        )
        return outcome

"""Prompt builders and response schema helpers."""

from __future__ import annotations

import json
from copy import deepcopy
from typing import TYPE_CHECKING, Any, cast

from fillforms.typing.models import SanitizedJsonSchema

if TYPE_CHECKING:
    from fillforms.validation.rules import CountryRule


def sanitize_json_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Sanitize a JSON schema to maximize strict compatibility.

    Args:
        schema (dict[str, Any]): Raw JSON schema.

    Returns:
        dict[str, Any]: Sanitized JSON schema.
    """
    cleaned = deepcopy(schema)

    def _walk(node: object) -> None:
        if isinstance(node, dict):
            node_dict = cast("dict[str, Any]", node)
            if "properties" in node_dict:
                node_dict.setdefault("type", "object")
                props = node_dict["properties"]
                if isinstance(props, dict):
                    props_dict = cast("dict[str, Any]", props)
                    node_dict["required"] = sorted(str(key) for key in props_dict)
                    node_dict["additionalProperties"] = False
            if "$ref" in node_dict and "default" in node_dict:
                node_dict.pop("default", None)
            for value in node_dict.values():
                _walk(value)
        elif isinstance(node, list):
            for item in node:
                _walk(item)

    _walk(cleaned)
    return cleaned


def schema_response_format(name: str, schema: dict[str, Any]) -> SanitizedJsonSchema:
    """Build strict response format payload.

    Args:
        name (str): Schema name in response format.
        schema (dict[str, Any]): Raw schema payload.

    Returns:
        SanitizedJsonSchema: Strict response schema wrapper.
    """
    return SanitizedJsonSchema(
        name=name,
        schema=sanitize_json_schema(schema),
        strict=True,
    )


def build_vision_validation_prompt(
    country: str,
    values: dict[str, str],
    rule: CountryRule,
    *,
    extra_instructions: str | None = None,
) -> str:
    """Build the instruction sent with page images to the vision validator.

    Args:
        country (str): Destination country.
        values (dict[str, str]): Canonical value map of the filled document.
        rule (CountryRule): Destination validation profile.
        extra_instructions (str | None): Optional user instructions.

    Returns:
        str: Prompt text.
    """
    base = (
        f"Review these filled visa application form pages for {country or 'an unspecified destination'}. "
        "Check that every visible field is complete, legible and consistent with the extracted values, "
        f"that dates use the {rule.date_format} format, and that the passport is valid for at least "
        f"{rule.passport_validity_months} months after travel. "
        "Report overallScore (0-100), completedFields, totalFields, issues with id, fieldName, "
        "type (error, warning or info), message and suggestion, recommendations and countrySpecificNotes.\n"
        f"Extracted values: {json.dumps(values, ensure_ascii=False, sort_keys=True)}"
    )
    if rule.notes:
        base = f"{base}\nKnown requirements: {' '.join(rule.notes)}"
    if extra_instructions:
        return f"{base}\nAdditional instructions: {extra_instructions}"
    return base

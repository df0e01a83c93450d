"""Profile-driven autofill of extracted fields."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fillforms.logging import get_logger
from fillforms.processing.canonical import resolve_canonical_key
from fillforms.processing.grouping import group_fields
from fillforms.typing.enums import FieldKind, FieldSource
from fillforms.typing.models import AutofillResult, DestinationContext, FieldDefinition, ProfileRecord
from fillforms.validation.rules import DATE_KEYS, country_rule, format_date

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fillforms.typing.enums import CanonicalKey

logger = get_logger(__name__)

_TRUTHY = frozenset({"true", "yes", "y", "1", "on", "x", "checked"})
_BOX_KINDS = frozenset({FieldKind.TEXT, FieldKind.DATE})
_DATE_PARTS = 3


def coerce_value(field: FieldDefinition, value: str, *, date_format: str, is_date: bool = False) -> str | None:
    """Convert a profile value into what the field kind can hold.

    Args:
        field (FieldDefinition): Target field.
        value (str): Candidate value.
        date_format (str): Destination date format.
        is_date (bool): Whether the value is known to be a date.

    Returns:
        str | None: Value to write, or None when the field cannot accept it.
    """
    text = value.strip()
    if not text:
        return None
    match field.kind:
        case FieldKind.CHECKBOX:
            return field.on_token if text.lower() in _TRUTHY else None
        case FieldKind.RADIO | FieldKind.SELECT:
            lowered = text.lower()
            return next((option for option in field.options if option.strip().lower() == lowered), None)
        case FieldKind.DATE:
            return format_date(text, date_format)
        case FieldKind.TEXT | FieldKind.TEXTAREA:
            return format_date(text, date_format) if is_date else text


def distribute_characters(value: str, boxes: int, *, is_date: bool = False, group: str = "") -> list[str]:
    """Split a value over a run of character boxes.

    Dates spread over exactly three boxes are split into their day, month and year parts;
    otherwise every box receives one character and date separators are dropped. Characters
    beyond the last box are dropped with a warning.

    Args:
        value (str): Value to distribute.
        boxes (int): Number of boxes.
        is_date (bool): Whether the value is a formatted date.
        group (str): Group key reported when the value is truncated.

    Returns:
        list[str]: One entry per box, padded with empty strings.
    """
    if is_date:
        parts = [part for part in value.replace("-", "/").split("/") if part]
        if boxes == _DATE_PARTS and len(parts) == _DATE_PARTS:
            return parts
        value = "".join(parts)
    characters = [character for character in value if not character.isspace()] if is_date else list(value)
    if len(characters) > boxes:
        logger.warning(
            "Value truncated to the character boxes",
            extra={"group": group, "boxes": boxes, "dropped": len(characters) - boxes},
        )
        characters = characters[:boxes]
    return characters + [""] * (boxes - len(characters))


def _is_box_run(members: list[FieldDefinition]) -> bool:
    return len(members) > 1 and all(member.kind in _BOX_KINDS and member.character_box for member in members)


def _server_value(field: FieldDefinition, server_values: Mapping[str, str]) -> str | None:
    for key in (field.name, field.label):
        if key and server_values.get(key, "").strip():
            return server_values[key]
    return None


def autofill(
    fields: list[FieldDefinition],
    profile: ProfileRecord,
    context: DestinationContext,
    *,
    server_values: Mapping[str, str] | None = None,
) -> AutofillResult:
    """Fill empty fields from the profile projection.

    Non-empty values are never overwritten, so running the pass twice changes nothing the
    second time.

    Args:
        fields (list[FieldDefinition]): Current field list.
        profile (ProfileRecord): Stored user profile.
        context (DestinationContext): Destination the document is filled for.
        server_values (Mapping[str, str] | None): Server-side autofill values keyed by field
            name or label, taking precedence over the local projection.

    Returns:
        AutofillResult: Updated copies of the fields and the names that changed.
    """
    projection = profile.projection()
    overrides = server_values or {}
    date_format = country_rule(context.country).date_format
    updates: dict[str, str] = {}

    for group in group_fields(fields):
        if group.is_filled:
            continue
        members = group.members
        first = members[0]

        if _is_box_run(members):
            key = resolve_canonical_key(group.key, first.label)
            key = key or resolve_canonical_key(first.name, first.label)
            value = _server_value(first, overrides) or (projection.get(key) if key else None)
            if not value:
                continue
            is_date = key in DATE_KEYS
            formatted = format_date(value, date_format) if is_date else value.strip()
            parts = distribute_characters(formatted, len(members), is_date=is_date, group=group.key)
            for member, part in zip(members, parts, strict=True):
                if part and not member.read_only:
                    updates[member.name] = part
            continue

        # numbered full-width inputs share one value, written to the first writable member
        written: set[CanonicalKey] = set()
        for member in members:
            if member.read_only:
                continue
            member_key = resolve_canonical_key(member.name, member.label)
            if member_key is None and group.is_split:
                member_key = resolve_canonical_key(group.key, first.label)
            server = _server_value(member, overrides)
            if server is None and (member_key is None or member_key in written):
                continue
            value = server
            if value is None and member_key is not None:
                value = projection.get(member_key)
            if not value:
                continue
            coerced = coerce_value(member, value, date_format=date_format, is_date=member_key in DATE_KEYS)
            if coerced:
                updates[member.name] = coerced
                if member_key is not None:
                    written.add(member_key)

    updated = [
        field.model_copy(update={"value": updates[field.name], "source": FieldSource.PROFILE})
        if field.name in updates
        else field.model_copy()
        for field in fields
    ]
    changed = [field.name for field in fields if field.name in updates]
    logger.info(
        "Autofill applied",
        extra={"changed": len(changed), "fields": len(fields), "country": context.country},
    )
    return AutofillResult(fields=updated, changed_names=changed)

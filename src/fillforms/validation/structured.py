"""Local rule-based validation pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from fillforms.logging import get_logger
from fillforms.processing.canonical import CANONICAL_LABELS, resolve_canonical_key
from fillforms.processing.grouping import FieldGroup, completion_counts, group_fields
from fillforms.typing.enums import CanonicalKey, IssueSource, IssueType
from fillforms.typing.models import StructuredValidation, ValidationIssue
from fillforms.validation.resolver import FieldContextResolver
from fillforms.validation.rules import (
    DATE_KEYS,
    EMAIL_PATTERN,
    GENERIC_PHONE_PATTERN,
    NAME_SPECIAL_CHARACTERS,
    REQUIRED_KEYS,
    CountryRule,
    add_months,
    country_rule,
    matches_date_format,
    parse_date,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fillforms.typing.models import FieldDefinition

logger = get_logger(__name__)

_NAME_KEYS = (
    CanonicalKey.FIRST_NAME,
    CanonicalKey.MIDDLE_NAME,
    CanonicalKey.LAST_NAME,
    CanonicalKey.FULL_NAME,
)
_MIN_NAME_LENGTH = 2
_DATE_CHUNKS = {
    "DD/MM/YYYY": ((2, 2, 4), "/"),
    "MM/DD/YYYY": ((2, 2, 4), "/"),
    "YYYY-MM-DD": ((4, 2, 2), "-"),
}
_PASSPORT_RENEWAL_MONTHS = 12


@dataclass
class CanonicalValues:
    """Canonical value map with the field each value came from."""

    values: dict[CanonicalKey, str] = field(default_factory=dict)
    sources: dict[CanonicalKey, str] = field(default_factory=dict)

    def add(self, key: CanonicalKey, value: str, source: str) -> None:
        """Record a value unless the key already holds one."""
        if value and key not in self.values:
            self.values[key] = value
            self.sources[key] = source

    def as_dict(self) -> dict[str, str]:
        """Return the map keyed by canonical key strings."""
        return {str(key): value for key, value in self.values.items()}


def _join_split_date(group: FieldGroup, date_format: str) -> str:
    parts = [member.value.strip() for member in group.members if member.is_filled]
    chunks, separator = _DATE_CHUNKS.get(date_format, ((2, 2, 4), "/"))
    if len(parts) == len(chunks):
        return separator.join(parts)
    digits = "".join(parts)
    if len(digits) != sum(chunks) or not digits.isdigit():
        return digits
    pieces: list[str] = []
    start = 0
    for size in chunks:
        pieces.append(digits[start : start + size])
        start += size
    return separator.join(pieces)


def build_canonical_values(
    fields: Sequence[FieldDefinition],
    *,
    date_format: str = "DD/MM/YYYY",
) -> CanonicalValues:
    """Build the canonical value map used by both validation passes.

    Individual fields are mapped first; split character-box groups then fill the keys still
    missing with their concatenated value. Split dates are rejoined in the destination format.

    Args:
        fields (Sequence[FieldDefinition]): Current fields.
        date_format (str): Destination date format.

    Returns:
        CanonicalValues: Value map with source field names.
    """
    result = CanonicalValues()
    groups = group_fields(fields)
    for group in groups:
        if group.is_split:
            continue
        member = group.members[0]
        key = resolve_canonical_key(member.name, member.label)
        if key is not None:
            result.add(key, member.value.strip(), member.name)

    for group in groups:
        if not group.is_split or not group.is_filled:
            continue
        first = group.members[0]
        key = resolve_canonical_key(group.key, first.label) or resolve_canonical_key(first.name, first.label)
        if key is None:
            continue
        value = _join_split_date(group, date_format) if key in DATE_KEYS else group.joined_value()
        result.add(key, value, first.name)
    return result


class _IssueCollector:
    def __init__(self, canonical: CanonicalValues, resolver: FieldContextResolver) -> None:
        self._canonical = canonical
        self._resolver = resolver
        self.issues: list[ValidationIssue] = []

    def add(
        self,
        key: CanonicalKey,
        rule: str,
        issue_type: IssueType,
        message: str,
        suggestion: str | None = None,
    ) -> None:
        source = self._canonical.sources.get(key)
        if source is not None:
            display, field_key = self._resolver.resolve(source)
        else:
            display, field_key = self._resolver.resolve(str(key))
        self.issues.append(
            ValidationIssue(
                id=f"{key}:{rule}",
                field_name=display,
                type=issue_type,
                message=message,
                suggestion=suggestion,
                field_key=field_key,
                actual_value=self._canonical.values.get(key),
                source=IssueSource.STRUCTURED,
            ),
        )

    def add_for_group(self, group: FieldGroup, rule: str, message: str, suggestion: str | None = None) -> None:
        display, field_key = self._resolver.resolve(group.members[0].name)
        self.issues.append(
            ValidationIssue(
                id=f"{group.key}:{rule}",
                field_name=display,
                type=IssueType.ERROR,
                message=message,
                suggestion=suggestion,
                field_key=field_key,
                source=IssueSource.STRUCTURED,
            ),
        )


def _check_required(collector: _IssueCollector, values: dict[CanonicalKey, str]) -> None:
    for key in REQUIRED_KEYS:
        if key not in values:
            label = CANONICAL_LABELS[key]
            collector.add(
                key,
                "required",
                IssueType.ERROR,
                f"{label} is required",
                f"Enter your {label.lower()}",
            )


def _check_document_required(
    collector: _IssueCollector,
    groups: list[FieldGroup],
    values: dict[CanonicalKey, str],
) -> None:
    """Report empty groups the document itself marks as required."""
    for group in groups:
        if group.is_filled or not any(member.required for member in group.members):
            continue
        first = group.members[0]
        key = resolve_canonical_key(group.key, first.label) or resolve_canonical_key(first.name, first.label)
        if key in REQUIRED_KEYS and key not in values:
            continue
        display = FieldContextResolver.display_name(first)
        collector.add_for_group(
            group,
            "document-required",
            f"{display} is required by this form",
            f"Fill in {display}",
        )


def _check_dates(collector: _IssueCollector, values: dict[CanonicalKey, str], rule: CountryRule) -> None:
    birth = values.get(CanonicalKey.DATE_OF_BIRTH)
    if birth and not matches_date_format(birth, rule.date_format):
        collector.add(
            CanonicalKey.DATE_OF_BIRTH,
            "date-format",
            IssueType.ERROR,
            f"Date must be in format {rule.date_format}",
            f"Rewrite the date as {rule.date_format}",
        )

    arrival_text = values.get(CanonicalKey.ARRIVAL_DATE)
    departure_text = values.get(CanonicalKey.DEPARTURE_DATE)
    arrival = parse_date(arrival_text, preferred_format=rule.date_format) if arrival_text else None
    departure = parse_date(departure_text, preferred_format=rule.date_format) if departure_text else None
    if arrival and departure and departure < arrival:
        collector.add(
            CanonicalKey.DEPARTURE_DATE,
            "date-order",
            IssueType.ERROR,
            "Departure date is before arrival date",
            "Check your travel dates",
        )


def _check_passport(
    collector: _IssueCollector,
    values: dict[CanonicalKey, str],
    rule: CountryRule,
    today: date,
) -> None:
    expiry_text = values.get(CanonicalKey.PASSPORT_EXPIRY)
    if not expiry_text:
        return
    expiry = parse_date(expiry_text, preferred_format=rule.date_format)
    if expiry is None:
        collector.add(
            CanonicalKey.PASSPORT_EXPIRY,
            "passport-expiry-format",
            IssueType.WARNING,
            "Passport expiry date could not be read",
            f"Use the {rule.date_format} format",
        )
        return

    arrival_text = values.get(CanonicalKey.ARRIVAL_DATE)
    arrival = parse_date(arrival_text, preferred_format=rule.date_format) if arrival_text else None
    reference = arrival or today
    if expiry < add_months(reference, rule.passport_validity_months):
        origin = "travel date" if arrival else "today"
        collector.add(
            CanonicalKey.PASSPORT_EXPIRY,
            "passport-validity",
            IssueType.ERROR,
            f"Passport must be valid for at least {rule.passport_validity_months} months from {origin}",
            "Renew your passport before applying",
        )
    elif expiry < add_months(today, _PASSPORT_RENEWAL_MONTHS):
        collector.add(
            CanonicalKey.PASSPORT_EXPIRY,
            "passport-renewal",
            IssueType.WARNING,
            "Consider renewing your passport - expires within 1 year",
        )


def _check_contact(
    collector: _IssueCollector,
    values: dict[CanonicalKey, str],
    rule: CountryRule,
    country: str,
) -> None:
    email = values.get(CanonicalKey.EMAIL)
    if email and not EMAIL_PATTERN.match(email):
        collector.add(
            CanonicalKey.EMAIL,
            "email-format",
            IssueType.ERROR,
            "Invalid email format",
            "Use name@example.com",
        )

    phone = values.get(CanonicalKey.PHONE)
    pattern = rule.phone_pattern or GENERIC_PHONE_PATTERN
    if phone and not pattern.match(phone):
        collector.add(
            CanonicalKey.PHONE,
            "phone-format",
            IssueType.WARNING,
            f"Phone number format incorrect for {country or 'destination'}",
            "Include the international dialling code, e.g. +65 91234567",
        )

    postal = values.get(CanonicalKey.POSTAL_CODE)
    if postal and rule.postal_code_pattern and not rule.postal_code_pattern.match(postal):
        collector.add(
            CanonicalKey.POSTAL_CODE,
            "postal-format",
            IssueType.WARNING,
            f"Postal code format incorrect for {country}",
        )


def _check_names(collector: _IssueCollector, values: dict[CanonicalKey, str]) -> None:
    for key in _NAME_KEYS:
        name = values.get(key)
        if not name:
            continue
        if len(name) < _MIN_NAME_LENGTH:
            collector.add(key, "name-length", IssueType.ERROR, "Name must be at least 2 characters")
        if any(character.isdigit() for character in name):
            collector.add(key, "name-digits", IssueType.WARNING, "Name should not contain numbers")
        if NAME_SPECIAL_CHARACTERS.search(name):
            collector.add(key, "name-characters", IssueType.WARNING, "Name contains special characters")


def _recommendations(issues: list[ValidationIssue], filled: int, total: int) -> list[str]:
    recommendations: list[str] = []
    errors = [issue for issue in issues if issue.type == IssueType.ERROR]
    if errors:
        recommendations.append(f"Fix {len(errors)} error(s) before submitting the form")
    for issue in sorted(issues, key=lambda item: item.type != IssueType.ERROR):
        if issue.suggestion and issue.suggestion not in recommendations:
            recommendations.append(issue.suggestion)
    if total and filled < total:
        recommendations.append(f"Complete the remaining {total - filled} field(s)")
    return recommendations


def validate_structured(
    fields: Sequence[FieldDefinition],
    country: str,
    *,
    today: date | None = None,
) -> StructuredValidation:
    """Run the local rule pass over the current fields.

    Args:
        fields (Sequence[FieldDefinition]): Current fields.
        country (str): Destination country.
        today (date | None): Reference date, defaults to the current date.

    Returns:
        StructuredValidation: Score, group counts, issues and recommendations.
    """
    rule = country_rule(country)
    reference_day = today or date.today()  # noqa: DTZ011
    canonical = build_canonical_values(fields, date_format=rule.date_format)
    collector = _IssueCollector(canonical, FieldContextResolver(fields))

    _check_required(collector, canonical.values)
    _check_document_required(collector, group_fields(fields), canonical.values)
    _check_dates(collector, canonical.values, rule)
    _check_passport(collector, canonical.values, rule, reference_day)
    _check_contact(collector, canonical.values, rule, country)
    _check_names(collector, canonical.values)

    filled, total = completion_counts(fields)
    score = round(100 * filled / total) if total else 0
    result = StructuredValidation(
        overall_score=score,
        filled_groups=filled,
        total_groups=total,
        issues=collector.issues,
        recommendations=_recommendations(collector.issues, filled, total),
        values=canonical.as_dict(),
    )
    logger.info(
        "Structured validation completed",
        extra={"score": score, "issues": len(result.issues), "country": rule.name},
    )
    return result

"""Destination-specific validation rules and date helpers."""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field
from datetime import date, datetime

from fillforms.typing.enums import CanonicalKey

DATE_PATTERNS: dict[str, re.Pattern[str]] = {
    "DD/MM/YYYY": re.compile(r"^\d{2}/\d{2}/\d{4}$"),
    "MM/DD/YYYY": re.compile(r"^\d{2}/\d{2}/\d{4}$"),
    "YYYY-MM-DD": re.compile(r"^\d{4}-\d{2}-\d{2}$"),
}
_STRPTIME_BY_FORMAT = {
    "DD/MM/YYYY": "%d/%m/%Y",
    "MM/DD/YYYY": "%m/%d/%Y",
    "YYYY-MM-DD": "%Y-%m-%d",
}

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
GENERIC_PHONE_PATTERN = re.compile(r"^\+\d{1,3}\s?\d{6,14}$")
NAME_SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

DATE_KEYS = frozenset(
    {
        CanonicalKey.DATE_OF_BIRTH,
        CanonicalKey.PASSPORT_ISSUE_DATE,
        CanonicalKey.PASSPORT_EXPIRY,
        CanonicalKey.ARRIVAL_DATE,
        CanonicalKey.DEPARTURE_DATE,
    },
)

REQUIRED_KEYS: tuple[CanonicalKey, ...] = (
    CanonicalKey.FIRST_NAME,
    CanonicalKey.LAST_NAME,
    CanonicalKey.DATE_OF_BIRTH,
    CanonicalKey.NATIONALITY,
    CanonicalKey.PASSPORT_NUMBER,
)


@dataclass(frozen=True)
class CountryRule:
    """Validation profile of one destination."""

    name: str
    date_format: str = "DD/MM/YYYY"
    passport_validity_months: int = 6
    phone_pattern: re.Pattern[str] | None = None
    postal_code_pattern: re.Pattern[str] | None = None
    notes: tuple[str, ...] = field(default_factory=tuple)


COUNTRY_RULES: dict[str, CountryRule] = {
    "singapore": CountryRule(
        name="singapore",
        phone_pattern=re.compile(r"^\+65\s?\d{8}$"),
        postal_code_pattern=re.compile(r"^\d{6}$"),
        notes=("Flight numbers use the XX123 format (e.g. SQ123).",),
    ),
    "uae": CountryRule(
        name="uae",
        phone_pattern=re.compile(r"^\+971\s?\d{8,9}$"),
        notes=("A local sponsor is required.", "Degree and marriage certificates must be attested."),
    ),
    "schengen": CountryRule(
        name="schengen",
        passport_validity_months=3,
        notes=(
            "Travel insurance must cover at least EUR 30,000.",
            "Proof of accommodation and 3 months of bank statements are expected.",
        ),
    ),
    "usa": CountryRule(
        name="usa",
        date_format="MM/DD/YYYY",
        phone_pattern=re.compile(r"^\+1\s?\d{10}$"),
        notes=(
            "A DS-160 confirmation is required.",
            "Social media handles for the last 5 years are requested.",
        ),
    ),
    "uk": CountryRule(
        name="uk",
        phone_pattern=re.compile(r"^\+44\s?\d{10,11}$"),
        notes=("Residents of some countries need a tuberculosis test certificate.",),
    ),
    "canada": CountryRule(
        name="canada",
        date_format="YYYY-MM-DD",
        phone_pattern=re.compile(r"^\+1\s?\d{10}$"),
        notes=("Biometrics are required.",),
    ),
    "thailand": CountryRule(
        name="thailand",
        notes=("An onward ticket and proof of accommodation are required.",),
    ),
}

DEFAULT_RULE = CountryRule(name="default")

_COUNTRY_ALIASES = {
    "sg": "singapore",
    "united arab emirates": "uae",
    "dubai": "uae",
    "schengen area": "schengen",
    "europe": "schengen",
    "us": "usa",
    "united states": "usa",
    "united states of america": "usa",
    "gb": "uk",
    "united kingdom": "uk",
    "great britain": "uk",
    "ca": "canada",
    "th": "thailand",
}


def country_rule(country: str | None) -> CountryRule:
    """Return the validation profile for a destination.

    Args:
        country (str | None): Destination name or alias.

    Returns:
        CountryRule: Matching profile, `DEFAULT_RULE` otherwise.
    """
    normalized = (country or "").strip().lower()
    normalized = _COUNTRY_ALIASES.get(normalized, normalized)
    return COUNTRY_RULES.get(normalized, DEFAULT_RULE)


def matches_date_format(value: str, date_format: str) -> bool:
    """Return whether a value has the shape of a date format."""
    pattern = DATE_PATTERNS.get(date_format)
    return bool(pattern and pattern.match(value.strip()))


def parse_date(value: str, *, preferred_format: str = "DD/MM/YYYY") -> date | None:
    """Parse a date, trying the preferred format first and then the other known formats.

    Args:
        value (str): Raw date text.
        preferred_format (str): Destination date format.

    Returns:
        date | None: Parsed date, or None when no format applies.
    """
    candidates = [preferred_format, *(fmt for fmt in _STRPTIME_BY_FORMAT if fmt != preferred_format)]
    text = value.strip()
    for fmt in candidates:
        pattern = _STRPTIME_BY_FORMAT.get(fmt)
        if pattern is None:
            continue
        try:
            return datetime.strptime(text, pattern).date()  # noqa: DTZ007
        except ValueError:
            continue
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_date(value: str, date_format: str) -> str:
    """Rewrite a date value into a destination date format.

    Profile values are stored as ISO dates, so ISO is tried first.

    Args:
        value (str): Raw date text.
        date_format (str): Target format.

    Returns:
        str: Formatted date, or the original value when it cannot be parsed.
    """
    parsed = parse_date(value, preferred_format="YYYY-MM-DD")
    pattern = _STRPTIME_BY_FORMAT.get(date_format)
    if parsed is None or pattern is None:
        return value
    return parsed.strftime(pattern)


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)

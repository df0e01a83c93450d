from __future__ import annotations

import pytest

from fillforms.processing.canonical import (
    CANONICAL_LABELS,
    match_canonical_key,
    resolve_canonical_key,
    tokenize,
)
from fillforms.typing.enums import CanonicalKey


def test_tokenize_splits_case_digits_and_separators() -> None:
    assert tokenize("passportNo_2") == frozenset({"passport", "no", "2"})
    assert tokenize("DOB-Field") == frozenset({"dob", "field"})


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("dob_field", CanonicalKey.DATE_OF_BIRTH),
        ("Date of Birth", CanonicalKey.DATE_OF_BIRTH),
        ("countryOfBirth", CanonicalKey.COUNTRY_OF_BIRTH),
        ("Place of birth", CanonicalKey.PLACE_OF_BIRTH),
        ("PassportNo", CanonicalKey.PASSPORT_NUMBER),
        ("passport_number", CanonicalKey.PASSPORT_NUMBER),
        ("Date of expiry", CanonicalKey.PASSPORT_EXPIRY),
        ("Surname", CanonicalKey.LAST_NAME),
        ("given_names", CanonicalKey.FIRST_NAME),
        ("e-mail", CanonicalKey.EMAIL),
        ("Mobile", CanonicalKey.PHONE),
        ("zip", CanonicalKey.POSTAL_CODE),
        ("Purpose of visit", CanonicalKey.TRAVEL_PURPOSE),
        ("arrivalDate", CanonicalKey.ARRIVAL_DATE),
        ("Full name", CanonicalKey.FULL_NAME),
        ("name", CanonicalKey.FULL_NAME),
        ("Street address", CanonicalKey.ADDRESS),
        ("Place of residence", CanonicalKey.ADDRESS),
    ],
)
def test_match_canonical_key(text: str, expected: CanonicalKey) -> None:
    assert match_canonical_key(text) == expected


def test_unmatched_names_stay_unmapped() -> None:
    assert match_canonical_key("random_42") is None
    assert match_canonical_key("") is None


def test_resolve_prefers_name_then_label() -> None:
    assert resolve_canonical_key("Text7", "Email address") == CanonicalKey.EMAIL
    assert resolve_canonical_key("surname", "Email address") == CanonicalKey.LAST_NAME
    assert resolve_canonical_key("Text7") is None


def test_every_canonical_key_has_a_label() -> None:
    assert set(CANONICAL_LABELS) == set(CanonicalKey)


@pytest.mark.parametrize(
    "text",
    [
        "father_name",
        "Name of spouse",
        "hotel_name",
        "Mother's surname",
        "sponsorFullName",
        "Country of residence",
    ],
)
def test_other_party_names_and_countries_stay_unmapped(text: str) -> None:
    assert match_canonical_key(text) is None


def test_resolve_does_not_fall_back_to_applicant_name_for_relatives() -> None:
    assert resolve_canonical_key("father_name", "Father's name") is None

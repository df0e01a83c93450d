"""Canonical key matching from raw field names and labels.

Matching is driven by a declarative rule table. Each rule names a canonical key and a
sequence of token groups: a text matches the rule when every group shares at least one
token with the text. Rules are evaluated in declaration order and the first match wins,
so more specific rules (country of birth) are declared before broader ones (date of birth).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from fillforms.typing.enums import CanonicalKey

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_ALNUM_BOUNDARY = re.compile(r"(?<=[A-Za-z])(?=\d)|(?<=\d)(?=[A-Za-z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class CanonicalRule:
    """One declarative matching rule."""

    key: CanonicalKey
    groups: tuple[frozenset[str], ...]
    excluded: frozenset[str] = frozenset()

    def matches(self, tokens: frozenset[str]) -> bool:
        """Return whether every token group intersects the text tokens and no excluded token appears.

        Args:
            tokens (frozenset[str]): Tokens of the candidate text.

        Returns:
            bool: True when the rule applies.
        """
        if self.excluded & tokens:
            return False
        return all(group & tokens for group in self.groups)


def _rule(key: CanonicalKey, *groups: set[str], excluding: frozenset[str] = frozenset()) -> CanonicalRule:
    return CanonicalRule(key=key, groups=tuple(frozenset(group) for group in groups), excluded=excluding)


# Names of people or places other than the applicant.
_OTHER_PARTY = frozenset(
    {
        "father", "mother", "parent", "parents", "spouse", "husband", "wife", "partner", "child",
        "children", "son", "daughter", "guardian", "sponsor", "host", "inviter", "emergency",
        "reference", "referee", "hotel", "school", "university", "institution", "organisation",
        "organization", "business", "bank", "airline", "vessel", "ship", "country", "city", "street",
    },
)


CANONICAL_RULES: tuple[CanonicalRule, ...] = (
    _rule(CanonicalKey.PASSPORT_EXPIRY, {"expiry", "expiration", "expires", "expire", "exp"}),
    _rule(CanonicalKey.PASSPORT_EXPIRY, {"valid", "validity"}, {"until", "till", "to"}),
    _rule(CanonicalKey.PASSPORT_ISSUE_DATE, {"issue", "issued", "issuance"}, {"date", "on"}),
    _rule(
        CanonicalKey.PASSPORT_ISSUING_COUNTRY,
        {"issue", "issued", "issuing"},
        {"country", "state", "authority", "place"},
    ),
    _rule(CanonicalKey.PASSPORT_NUMBER, {"passport"}, {"number", "no", "num", "nr", "nbr", "nos"}),
    _rule(CanonicalKey.PASSPORT_NUMBER, {"passportno", "passportnumber", "passportnum"}),
    _rule(CanonicalKey.PASSPORT_NUMBER, {"document", "travel"}, {"number", "no", "num"}),
    _rule(CanonicalKey.COUNTRY_OF_BIRTH, {"country"}, {"birth"}),
    _rule(CanonicalKey.PLACE_OF_BIRTH, {"place", "city", "town"}, {"birth"}),
    _rule(CanonicalKey.PLACE_OF_BIRTH, {"birthplace", "pob"}),
    _rule(CanonicalKey.DATE_OF_BIRTH, {"date"}, {"birth"}),
    _rule(CanonicalKey.DATE_OF_BIRTH, {"dob", "birthdate", "birthday", "birth"}),
    _rule(CanonicalKey.ARRIVAL_DATE, {"arrival", "arrive", "arriving"}),
    _rule(CanonicalKey.ARRIVAL_DATE, {"entry"}, {"date"}),
    _rule(CanonicalKey.DEPARTURE_DATE, {"departure", "depart", "departing"}),
    _rule(CanonicalKey.DEPARTURE_DATE, {"exit", "leave", "leaving"}, {"date"}),
    _rule(CanonicalKey.TRAVEL_PURPOSE, {"purpose", "reason"}),
    _rule(CanonicalKey.FIRST_NAME, {"first", "given", "christian"}, {"name", "names"}, excluding=_OTHER_PARTY),
    _rule(
        CanonicalKey.FIRST_NAME,
        {"forename", "forenames", "firstname", "givenname", "givennames", "prenom", "prenoms"},
        excluding=_OTHER_PARTY,
    ),
    _rule(CanonicalKey.MIDDLE_NAME, {"middle"}, {"name", "names"}, excluding=_OTHER_PARTY),
    _rule(CanonicalKey.MIDDLE_NAME, {"middlename"}, excluding=_OTHER_PARTY),
    _rule(CanonicalKey.LAST_NAME, {"last", "family", "sur"}, {"name", "names"}, excluding=_OTHER_PARTY),
    _rule(
        CanonicalKey.LAST_NAME,
        {"surname", "surnames", "lastname", "familyname", "nom"},
        excluding=_OTHER_PARTY,
    ),
    _rule(CanonicalKey.NATIONALITY, {"nationality", "citizenship", "citizen"}),
    _rule(CanonicalKey.GENDER, {"gender", "sex"}),
    _rule(CanonicalKey.MARITAL_STATUS, {"marital", "civil"}),
    _rule(CanonicalKey.EMAIL, {"email", "emailaddress"}),
    _rule(CanonicalKey.EMAIL, {"e"}, {"mail"}),
    _rule(CanonicalKey.PHONE, {"phone", "telephone", "tel", "mobile", "cellphone", "cell"}),
    _rule(CanonicalKey.PHONE, {"contact"}, {"number", "no"}),
    _rule(CanonicalKey.POSTAL_CODE, {"postal", "post"}, {"code"}),
    _rule(CanonicalKey.POSTAL_CODE, {"zip", "zipcode", "postcode"}),
    _rule(CanonicalKey.CITY, {"city", "town"}),
    _rule(
        CanonicalKey.ADDRESS,
        {"address", "residence", "street", "residential"},
        excluding=_OTHER_PARTY - {"street"},
    ),
    _rule(CanonicalKey.EMPLOYER_NAME, {"employer", "company"}),
    _rule(CanonicalKey.OCCUPATION, {"occupation", "profession", "job"}),
    _rule(CanonicalKey.FULL_NAME, {"full"}, {"name", "names"}, excluding=_OTHER_PARTY),
    _rule(CanonicalKey.FULL_NAME, {"fullname", "name"}, excluding=_OTHER_PARTY),
)

CANONICAL_LABELS: dict[CanonicalKey, str] = {
    CanonicalKey.FIRST_NAME: "First Name",
    CanonicalKey.MIDDLE_NAME: "Middle Name",
    CanonicalKey.LAST_NAME: "Last Name",
    CanonicalKey.FULL_NAME: "Full Name",
    CanonicalKey.DATE_OF_BIRTH: "Date of Birth",
    CanonicalKey.PLACE_OF_BIRTH: "Place of Birth",
    CanonicalKey.COUNTRY_OF_BIRTH: "Country of Birth",
    CanonicalKey.GENDER: "Gender",
    CanonicalKey.MARITAL_STATUS: "Marital Status",
    CanonicalKey.NATIONALITY: "Nationality",
    CanonicalKey.PASSPORT_NUMBER: "Passport Number",
    CanonicalKey.PASSPORT_ISSUE_DATE: "Passport Issue Date",
    CanonicalKey.PASSPORT_EXPIRY: "Passport Expiry Date",
    CanonicalKey.PASSPORT_ISSUING_COUNTRY: "Passport Issuing Country",
    CanonicalKey.EMAIL: "Email",
    CanonicalKey.PHONE: "Phone",
    CanonicalKey.ADDRESS: "Address",
    CanonicalKey.CITY: "City",
    CanonicalKey.POSTAL_CODE: "Postal Code",
    CanonicalKey.OCCUPATION: "Occupation",
    CanonicalKey.EMPLOYER_NAME: "Employer Name",
    CanonicalKey.TRAVEL_PURPOSE: "Purpose of Travel",
    CanonicalKey.ARRIVAL_DATE: "Arrival Date",
    CanonicalKey.DEPARTURE_DATE: "Departure Date",
}


def tokenize(text: str) -> frozenset[str]:
    """Split text into lowercase tokens on case, digit and separator boundaries.

    Args:
        text (str): Raw field name or label.

    Returns:
        frozenset[str]: Token set.
    """
    spaced = _CAMEL_BOUNDARY.sub(" ", text)
    spaced = _ALNUM_BOUNDARY.sub(" ", spaced)
    return frozenset(token for token in _NON_ALNUM.split(spaced.lower()) if token)


@lru_cache(maxsize=4096)
def match_canonical_key(text: str) -> CanonicalKey | None:
    """Return the first canonical key whose rule matches the text.

    Args:
        text (str): Raw field name or label.

    Returns:
        CanonicalKey | None: Matched key, or None when no rule applies.
    """
    tokens = tokenize(text)
    if not tokens:
        return None
    for rule in CANONICAL_RULES:
        if rule.matches(tokens):
            return rule.key
    return None


def resolve_canonical_key(name: str, label: str | None = None) -> CanonicalKey | None:
    """Resolve a field to a canonical key, trying its name first and then its label.

    Args:
        name (str): Raw field name.
        label (str | None): Human-readable label.

    Returns:
        CanonicalKey | None: Matched key, or None when the field stays unmapped.
    """
    return match_canonical_key(name) or (match_canonical_key(label) if label else None)

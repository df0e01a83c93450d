"""Structured and vision validation."""

from fillforms.validation.resolver import FieldContextResolver
from fillforms.validation.rules import COUNTRY_RULES, DEFAULT_RULE, CountryRule, country_rule
from fillforms.validation.structured import build_canonical_values, validate_structured
from fillforms.validation.validator import Validator
from fillforms.validation.vision import VisionValidator, parse_vision_payload

__all__ = [
    "COUNTRY_RULES",
    "DEFAULT_RULE",
    "CountryRule",
    "FieldContextResolver",
    "Validator",
    "VisionValidator",
    "build_canonical_values",
    "country_rule",
    "parse_vision_payload",
    "validate_structured",
]

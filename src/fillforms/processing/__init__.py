"""Field processing helpers."""

from fillforms.processing.appearance import parse_default_appearance
from fillforms.processing.canonical import (
    CANONICAL_LABELS,
    CANONICAL_RULES,
    match_canonical_key,
    resolve_canonical_key,
    tokenize,
)
from fillforms.processing.grouping import (
    FieldGroup,
    completion_counts,
    completion_percentage,
    group_fields,
    group_key,
)
from fillforms.processing.labels import humanize_field_name, is_degenerate_label, resolve_label

__all__ = [
    "CANONICAL_LABELS",
    "CANONICAL_RULES",
    "FieldGroup",
    "completion_counts",
    "completion_percentage",
    "group_fields",
    "group_key",
    "humanize_field_name",
    "is_degenerate_label",
    "match_canonical_key",
    "parse_default_appearance",
    "resolve_canonical_key",
    "resolve_label",
    "tokenize",
]

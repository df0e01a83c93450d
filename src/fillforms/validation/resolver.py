"""Mapping of raw issue field references back to document fields."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fillforms.processing.canonical import CANONICAL_LABELS, match_canonical_key, resolve_canonical_key
from fillforms.processing.grouping import group_key
from fillforms.processing.labels import humanize_field_name
from fillforms.typing.enums import CanonicalKey

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fillforms.typing.models import FieldDefinition


def _normalize(reference: str) -> str:
    return " ".join(reference.replace("_", " ").split()).lower()


class FieldContextResolver:
    """Resolve canonical keys, raw names, group keys and labels to a display name and field.

    Both validation passes and the overlay jump share one resolver so an issue always points
    at the same field regardless of which pass reported it.
    """

    def __init__(self, fields: Iterable[FieldDefinition]) -> None:
        """Index the current field list.

        Args:
            fields (Iterable[FieldDefinition]): Current fields.
        """
        self._by_name: dict[str, FieldDefinition] = {}
        self._by_alias: dict[str, FieldDefinition] = {}
        self._by_canonical: dict[CanonicalKey, FieldDefinition] = {}

        for field in fields:
            self._by_name.setdefault(field.name, field)
            for alias in (field.name, group_key(field.name), field.label):
                if alias:
                    self._by_alias.setdefault(_normalize(alias), field)
            canonical = resolve_canonical_key(field.name, field.label)
            if canonical is not None:
                self._by_canonical.setdefault(canonical, field)

    @staticmethod
    def display_name(field: FieldDefinition) -> str:
        """Return the user-facing name of a field."""
        return field.label or humanize_field_name(field.name) or field.name

    def find(self, reference: str) -> FieldDefinition | None:
        """Find the field a reference points to.

        Args:
            reference (str): Canonical key, raw field name, group key or label.

        Returns:
            FieldDefinition | None: Matching field, if any.
        """
        text = reference.strip()
        if not text:
            return None
        if text in self._by_name:
            return self._by_name[text]
        if text in CanonicalKey:
            return self._by_canonical.get(CanonicalKey(text))
        found = self._by_alias.get(_normalize(text))
        if found is not None:
            return found
        canonical = match_canonical_key(text)
        return self._by_canonical.get(canonical) if canonical else None

    def resolve(self, reference: str) -> tuple[str, str | None]:
        """Resolve a reference to `(display_name, field_key)`.

        Args:
            reference (str): Raw reference reported by a validation pass.

        Returns:
            tuple[str, str | None]: Display name and originating field name. When nothing
            matches, canonical keys fall back to their standard label and the field key is None.
        """
        field = self.find(reference)
        if field is not None:
            return self.display_name(field), field.name
        text = reference.strip()
        if text in CanonicalKey:
            return CANONICAL_LABELS[CanonicalKey(text)], None
        return text, None

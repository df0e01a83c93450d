"""Logical grouping of character-box field runs."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from fillforms.typing.models import FieldDefinition

if TYPE_CHECKING:
    from collections.abc import Iterable

_BRACKET_INDEX = re.compile(r"\[\d+\]$")
_NUMERIC_SUFFIX = re.compile(r"[\s._#-]*\d+$")
_TRAILING_SEPARATORS = re.compile(r"[\s._#-]+$")


class FieldGroup(BaseModel):
    """One or more raw fields that represent a single user-meaningful value."""

    model_config = ConfigDict(extra="forbid")

    key: str
    members: list[FieldDefinition] = Field(default_factory=list)

    @property
    def is_filled(self) -> bool:
        """Return whether at least one member holds a non-blank value."""
        return any(member.is_filled for member in self.members)

    @property
    def is_split(self) -> bool:
        """Return whether the group is a run of several boxes."""
        return len(self.members) > 1

    def joined_value(self, separator: str = "") -> str:
        """Concatenate member values in box order.

        Args:
            separator (str): Separator inserted between non-empty members.

        Returns:
            str: Joined value.
        """
        return separator.join(member.value.strip() for member in self.members if member.is_filled)


def group_key(name: str) -> str:
    """Strip bracketed indices and trailing numeric suffixes from a field name.

    Args:
        name (str): Raw field name, e.g. `Surname_3` or `dob[2]`.

    Returns:
        str: Group key shared by every box of the same logical value.
    """
    key = name.strip()
    while True:
        stripped = _BRACKET_INDEX.sub("", key)
        stripped = _NUMERIC_SUFFIX.sub("", stripped)
        if stripped == key:
            break
        key = stripped
    key = _TRAILING_SEPARATORS.sub("", key)
    return key or name.strip()


def _box_order(name: str) -> tuple[int, ...]:
    return tuple(int(number) for number in re.findall(r"\d+", name[len(group_key(name)) :]))


def group_fields(fields: Iterable[FieldDefinition]) -> list[FieldGroup]:
    """Partition fields into logical groups.

    Every field lands in exactly one group. Groups are sorted by key and members by their
    numeric suffix so the partition does not depend on the input order.

    Args:
        fields (Iterable[FieldDefinition]): Field list.

    Returns:
        list[FieldGroup]: Logical groups.
    """
    buckets: dict[str, list[FieldDefinition]] = {}
    for field in fields:
        buckets.setdefault(group_key(field.name), []).append(field)

    return [
        FieldGroup(
            key=key,
            members=sorted(members, key=lambda member: (_box_order(member.name), member.name)),
        )
        for key, members in sorted(buckets.items())
    ]


def completion_counts(fields: Iterable[FieldDefinition]) -> tuple[int, int]:
    """Return filled and total group counts.

    Args:
        fields (Iterable[FieldDefinition]): Field list.

    Returns:
        tuple[int, int]: `(filled_groups, total_groups)`.
    """
    groups = group_fields(fields)
    return sum(1 for group in groups if group.is_filled), len(groups)


def completion_percentage(fields: Iterable[FieldDefinition]) -> int:
    """Return the share of filled groups as a rounded percentage.

    Args:
        fields (Iterable[FieldDefinition]): Field list.

    Returns:
        int: Percentage in `[0, 100]`, `0` when there are no groups.
    """
    filled, total = completion_counts(fields)
    if total == 0:
        return 0
    return round(100 * filled / total)

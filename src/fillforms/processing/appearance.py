"""Default-appearance string parsing."""

from __future__ import annotations

import re

from fillforms.typing.models import FieldAppearance

# `/Helv 10 Tf 0 g` -> font resource name, then size, then the Tf operator
_TF_OPERATOR = re.compile(r"/(?P<font>[^\s/]+)\s+(?P<size>-?\d+(?:\.\d+)?)\s+Tf\b")


def parse_default_appearance(
    default_appearance: str | None,
    *,
    on_token: str | None = None,
) -> FieldAppearance:
    """Parse a widget default-appearance string.

    Args:
        default_appearance (str | None): Raw `DA` string.
        on_token (str | None): Checkbox/radio "on" state name, when known.

    Returns:
        FieldAppearance: Parsed font attributes. A size of `0` means auto-size and is kept as `None`.
    """
    font_name: str | None = None
    font_size: float | None = None
    matches = list(_TF_OPERATOR.finditer(default_appearance or ""))
    if matches:
        # the last Tf operator is the one in effect
        match = matches[-1]
        font_name = match.group("font")
        size = float(match.group("size"))
        font_size = size if size > 0 else None
    return FieldAppearance(font_size=font_size, font_name=font_name, on_token=on_token or None)

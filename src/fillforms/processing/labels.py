"""Human label resolution for extracted fields."""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

from fillforms.processing.grouping import group_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fillforms.typing.models import DetectedLabel, Rect, TextLine

_SEGMENT_SEPARATOR = re.compile(r"[./\\]")
_WORD_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])|(?<=[A-Za-z])(?=\d)|(?<=\d)(?=[A-Za-z])")
_NON_WORD = re.compile(r"[^A-Za-z0-9]+")
_PLACEHOLDER = re.compile(
    r"^(?:text|txt|tf|field|text ?field|fill|fill ?text|untitled|box|cell|check ?box|button|combo ?box|"
    r"list ?box|radio|radio ?button|dropdown|topmostsubform|form|page|subform)?\s*\d*$",
    re.IGNORECASE,
)
_MIN_LABEL_LENGTH = 3
_NEARBY_MAX_DISTANCE = 60.0
_INTELLIGENCE_MAX_DISTANCE = 40.0

NEARBY_LABEL_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(?:surname|family\s+name|last\s+name)\b", re.IGNORECASE), "Surname"),
    (re.compile(r"\b(?:given\s+names?|first\s+names?|forenames?)\b", re.IGNORECASE), "Given Names"),
    (re.compile(r"\bdate\s+of\s+birth\b|\bbirth\s*date\b|\bd\.?o\.?b\.?\b", re.IGNORECASE), "Date of Birth"),
    (re.compile(r"\b(?:place|city)\s+of\s+birth\b", re.IGNORECASE), "Place of Birth"),
    (re.compile(r"\bcountry\s+of\s+birth\b", re.IGNORECASE), "Country of Birth"),
    (re.compile(r"\b(?:nationality|citizenship)\b", re.IGNORECASE), "Nationality"),
    (re.compile(r"\bpassport\s*(?:no\.?|number|#)", re.IGNORECASE), "Passport Number"),
    (re.compile(r"\bdate\s+of\s+issue\b|\bissue\s+date\b", re.IGNORECASE), "Date of Issue"),
    (
        re.compile(r"\bdate\s+of\s+expiry\b|\bexpiry\s+date\b|\bvalid\s+until\b", re.IGNORECASE),
        "Date of Expiry",
    ),
    (re.compile(r"\b(?:sex|gender)\b", re.IGNORECASE), "Sex"),
    (re.compile(r"\bmarital\s+status\b", re.IGNORECASE), "Marital Status"),
    (re.compile(r"\b(?:e-?mail)\b", re.IGNORECASE), "Email"),
    (re.compile(r"\b(?:telephone|phone|mobile)\b", re.IGNORECASE), "Telephone"),
    (re.compile(r"\b(?:home\s+|residential\s+|permanent\s+)?address\b", re.IGNORECASE), "Address"),
    (re.compile(r"\b(?:occupation|profession)\b", re.IGNORECASE), "Occupation"),
    (re.compile(r"\bpurpose\s+of\s+(?:travel|visit|journey)\b", re.IGNORECASE), "Purpose of Travel"),
    (re.compile(r"\bdate\s+of\s+arrival\b|\barrival\s+date\b", re.IGNORECASE), "Date of Arrival"),
    (re.compile(r"\bdate\s+of\s+departure\b|\bdeparture\s+date\b", re.IGNORECASE), "Date of Departure"),
)


def humanize_field_name(name: str) -> str:
    """Derive a readable label from a raw field name.

    Args:
        name (str): Raw field name, e.g. `form1[0].page1[0].dateOfBirth[0]`.

    Returns:
        str: Title-cased label, e.g. `Date Of Birth`.
    """
    segments = [segment for segment in _SEGMENT_SEPARATOR.split(name) if segment.strip()]
    last = segments[-1] if segments else name
    base = re.sub(r"\[\d+\]", "", last)
    spaced = _WORD_BOUNDARY.sub(" ", base)
    words = [word for word in _NON_WORD.split(spaced) if word]
    return " ".join(word if word.isupper() and len(word) > 1 else word.capitalize() for word in words)


def is_degenerate_label(label: str) -> bool:
    """Return whether a derived label carries no meaning.

    Args:
        label (str): Candidate label.

    Returns:
        bool: True when the label is too short or placeholder-like.
    """
    stripped = label.strip()
    if len(stripped.replace(" ", "")) < _MIN_LABEL_LENGTH:
        return True
    return bool(_PLACEHOLDER.fullmatch(stripped)) or bool(_PLACEHOLDER.fullmatch(group_key(stripped)))


def _distance(a: Rect, b: Rect) -> float:
    dx = max(b.x0 - a.x1, a.x0 - b.x1, 0.0)
    dy = max(b.y0 - a.y1, a.y0 - b.y1, 0.0)
    return math.hypot(dx, dy)


def _is_left_or_above(line: Rect, widget: Rect) -> bool:
    same_row = line.y0 < widget.y1 and line.y1 > widget.y0
    if same_row and line.x0 <= widget.x0:
        return True
    horizontal_overlap = line.x0 < widget.x1 and line.x1 > widget.x0
    return line.y1 <= widget.y0 + 1.0 and (horizontal_overlap or line.x0 <= widget.x0)


def label_from_nearby_text(rect: Rect, page: int, lines: Iterable[TextLine]) -> str | None:
    """Match text lines left of or above a widget against known field patterns.

    Args:
        rect (Rect): Widget rectangle.
        page (int): Widget page number.
        lines (Iterable[TextLine]): Extracted text lines of the document.

    Returns:
        str | None: Label of the first matching pattern on the closest line.
    """
    candidates = sorted(
        (
            (_distance(line.rect, rect), line.text)
            for line in lines
            if line.page == page and _is_left_or_above(line.rect, rect)
        ),
        key=lambda item: item[0],
    )
    for distance, text in candidates:
        if distance > _NEARBY_MAX_DISTANCE:
            break
        for pattern, label in NEARBY_LABEL_PATTERNS:
            if pattern.search(text):
                return label
    return None


def label_from_intelligence(
    rect: Rect,
    page: int,
    labels: Iterable[DetectedLabel],
    *,
    threshold: float,
) -> str | None:
    """Pick the closest confident Document Intelligence label for a widget position.

    Args:
        rect (Rect): Widget rectangle.
        page (int): Widget page number.
        labels (Iterable[DetectedLabel]): Detected labels.
        threshold (float): Minimum accepted confidence.

    Returns:
        str | None: Label text when one is close enough and confident enough.
    """
    best: tuple[float, str] | None = None
    for detected in labels:
        if detected.page != page or detected.confidence < threshold or not detected.label.strip():
            continue
        distance = _distance(detected.rect, rect)
        if distance > _INTELLIGENCE_MAX_DISTANCE:
            continue
        if best is None or distance < best[0]:
            best = (distance, detected.label.strip())
    return best[1] if best else None


def resolve_label(
    name: str,
    *,
    rect: Rect | None,
    page: int | None,
    intelligence_labels: Iterable[DetectedLabel] = (),
    text_lines: Iterable[TextLine] = (),
    threshold: float = 0.7,
) -> str:
    """Resolve a field label from Document Intelligence, its name, then nearby text.

    Args:
        name (str): Raw field name.
        rect (Rect | None): Widget rectangle.
        page (int | None): Widget page number.
        intelligence_labels (Iterable[DetectedLabel]): Labels from Document Intelligence.
        text_lines (Iterable[TextLine]): Page text lines.
        threshold (float): Minimum Document Intelligence confidence.

    Returns:
        str: Best label available.
    """
    if rect is not None and page is not None:
        detected = label_from_intelligence(rect, page, intelligence_labels, threshold=threshold)
        if detected:
            return detected

    humanized = humanize_field_name(name)
    if not is_degenerate_label(humanized):
        return humanized

    if rect is not None and page is not None:
        nearby = label_from_nearby_text(rect, page, text_lines)
        if nearby:
            return nearby
    return humanized or name

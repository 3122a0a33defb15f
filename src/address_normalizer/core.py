"""
Address Normalizer

Reduces a raw Korean postal address to a clean search string:
- collapse whitespace
- strip a leading 5-digit postal code
- drop parenthesized neighborhood notes
- drop trailing detail segments (102호, 3층, 101동, ...)
- drop a sub-unit number appended to a road number (신길로 220 5 -> 신길로 220)

The rules are applied in that order and then repeated until the string
stops changing. Stacked suffixes are therefore all removed
(101동 102호 -> both dropped, 신길로 220 5 3 -> 신길로 220), which is what
makes normalize idempotent.

The result is both the coordinate cache key and the geocoder query.
"""

import re

# Detail units that may follow a number at the end of an address:
# floor, unit number, building, complex, sub-district (통/반)
DETAIL_UNITS: tuple[str, ...] = ("호실", "호", "층", "동", "단지", "통", "반")

_WHITESPACE_RE = re.compile(r"\s+")
_POSTAL_CODE_RE = re.compile(r"^\d{5}(?=\s|$)")
_PARENTHESIZED_RE = re.compile(r"\([^()]*\)")
_TRAILING_DETAIL_RE = re.compile(
    r"(?:^|\s+)\d+(?:-\d+)?(?:" + "|".join(DETAIL_UNITS) + r")$"
)
_NUMERIC_RE = re.compile(r"^\d+$")


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _drop_sub_unit(text: str) -> str:
    """Drop the last token when the last two tokens are both numbers."""
    tokens = text.split(" ")
    if len(tokens) >= 2 and _NUMERIC_RE.match(tokens[-1]) and _NUMERIC_RE.match(tokens[-2]):
        return " ".join(tokens[:-1])
    return text


def _reduce_once(text: str) -> str:
    text = _collapse(text)
    text = _collapse(_POSTAL_CODE_RE.sub("", text))
    text = _collapse(_PARENTHESIZED_RE.sub(" ", text))
    text = _collapse(_TRAILING_DETAIL_RE.sub("", text))
    return _drop_sub_unit(text)


def normalize(raw: str) -> str:
    """
    Normalize a raw address string.

    Pure and total: never raises, returns "" for empty or None input.
    The rules are applied repeatedly until the string stops changing, so
    normalize(normalize(x)) == normalize(x).

    Args:
        raw: Free-text address as entered in the source sheet

    Returns:
        Cleaned, whitespace-collapsed search string

    Example:
        >>> normalize("07313 서울 영등포구 신길로 220 102호(신길동)")
        '서울 영등포구 신길로 220'
    """
    if not raw:
        return ""

    current = str(raw)
    while True:
        reduced = _reduce_once(current)
        if reduced == current:
            return reduced
        current = reduced

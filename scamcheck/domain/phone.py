from __future__ import annotations

import re

MIN_DIGITS = 10
MAX_DIGITS = 15

_NON_DIGIT = re.compile(r"\D")
_PHONE_SHAPED = re.compile(r"[\d\s()+\-.]+")


def normalize_phone_number(raw: str | None) -> str:
    """Canonical storage/lookup key: digits only."""
    if not raw:
        return ""
    return _NON_DIGIT.sub("", raw)


def is_valid_phone_number(raw: str | None) -> bool:
    return MIN_DIGITS <= len(normalize_phone_number(raw)) <= MAX_DIGITS


def looks_like_phone_number(text: str | None) -> bool:
    """True when ``text`` holds only digits and phone punctuation, with at least one digit."""
    if not text or not _PHONE_SHAPED.fullmatch(text):
        return False
    return bool(normalize_phone_number(text))


def format_phone_number(raw: str | None) -> str:
    """Display grouping only; never used as a key.

    Up to 10 digits are grouped North-American style, 11 digits with a leading 1
    get a ``+1`` prefix, and longer numbers treat everything before the last ten
    digits as the country code.
    """
    digits = normalize_phone_number(raw)
    n = len(digits)
    if n <= 3:
        return digits
    if n <= 6:
        return f"({digits[:3]}) {digits[3:]}"
    if n <= 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if n == 11 and digits.startswith("1"):
        return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:11]}"
    return f"+{digits[:-10]} ({digits[-10:-7]}) {digits[-7:-4]}-{digits[-4:]}"

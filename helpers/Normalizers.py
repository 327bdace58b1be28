import re
from typing import Optional
from zoneinfo import ZoneInfo

import phonenumbers
from phonenumbers.phonenumberutil import NumberParseException

_TZ_ALIASES = {
    "pst": "America/Los_Angeles",
    "pdt": "America/Los_Angeles",
    "pacific time": "America/Los_Angeles",
    "mst": "America/Denver",
    "mdt": "America/Denver",
    "mountain time": "America/Denver",
    "cst": "America/Chicago",
    "cdt": "America/Chicago",
    "central time": "America/Chicago",
    "est": "America/New_York",
    "edt": "America/New_York",
    "eastern time": "America/New_York",
}


def normalize_phone(raw: Optional[str], default_region: str = "US") -> Optional[str]:
    """
    Canonicalise a phone number to E.164.

    "(415) 555-0100", "415.555.0100", "+1 415 555 0100" and "14155550100" all become
    "+14155550100". Returns None for empty input. Numbers phonenumbers can't parse
    still come back as '+' + digits so that exact matching stays stable.
    """
    s = (raw or "").strip().lower()
    if not s:
        return None
    s = re.sub(r"\bplus\b", "+", s)
    s = re.sub(r"[^\d+]", "", s)
    if not s:
        return None
    try:
        if s.startswith("+"):
            num = phonenumbers.parse(s, None)
        else:
            num = phonenumbers.parse(s, default_region)
        if phonenumbers.is_valid_number(num) or phonenumbers.is_possible_number(num):
            return phonenumbers.format_number(num, phonenumbers.PhoneNumberFormat.E164)
    except NumberParseException:
        pass
    # last resort: ensure '+' + digits
    if not s.startswith("+"):
        s = "+" + s
    return s


def normalize_timezone(raw: Optional[str]) -> str:
    s = (raw or "").strip()
    if not s:
        return "UTC"
    try:
        ZoneInfo(s)
        return s
    except Exception:
        pass
    low = s.lower().replace("-", " ").replace("_", " ").strip()
    if low in _TZ_ALIASES:
        return _TZ_ALIASES[low]
    # "america los angeles" -> "America/Los_Angeles"
    if " " in low and "/" not in low:
        parts = [p.capitalize() for p in low.split()]
        guess = "/".join([parts[0], "_".join(parts[1:])])
        try:
            ZoneInfo(guess)
            return guess
        except Exception:
            pass
    return "UTC"

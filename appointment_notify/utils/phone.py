from __future__ import annotations

import re

DEFAULT_COUNTRY_CODE = "+91"

_BARE_LOCAL_NUMBER = re.compile(r"\d{10}")


def normalize_phone(phone: str | None, country_code: str = DEFAULT_COUNTRY_CODE) -> str | None:
    """Return a dialable phone for the messaging transport.

    Rules:
    - a bare 10-digit numeric string gets the country code prefix
    - anything else (already prefixed, other lengths, punctuation) is returned unchanged
    """
    if not phone:
        return None
    if _BARE_LOCAL_NUMBER.fullmatch(phone):
        return f"{country_code}{phone}"
    return phone

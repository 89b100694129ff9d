from __future__ import annotations

import re

DEFAULT_COUNTRY_CODE = "254"


def validate_phone(phone: str | None, default_country_code: str = DEFAULT_COUNTRY_CODE) -> str | None:
    """Return an E.164 phone number if valid, else None.

    Normalization:
    - strip whitespace and punctuation
    - accept leading + or 00 international prefix
    - a leading 0 is a trunk prefix and is replaced by the default country code
    - 11-15 bare digits are taken as already carrying a country code
    """
    if not phone:
        return None

    cleaned = re.sub(r"[^\d+]", "", phone.strip())
    digits = re.sub(r"\D", "", cleaned)
    if cleaned.startswith("+"):
        normalized = f"+{digits}"
    elif digits.startswith("00"):
        normalized = f"+{digits[2:]}"
    elif digits.startswith("0") and 9 <= len(digits) <= 11:
        normalized = f"+{default_country_code}{digits[1:]}"
    elif 11 <= len(digits) <= 15:
        normalized = f"+{digits}"
    else:
        return None

    if not re.fullmatch(r"\+[1-9]\d{7,14}", normalized):
        return None

    return normalized

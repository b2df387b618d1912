"""Indian GST state codes and GSTIN helpers."""

from __future__ import annotations

import re

from ..errors import ValidationError

GSTIN_RE = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")

STATE_CODES: dict[str, str] = {
    "01": "Jammu and Kashmir",
    "02": "Himachal Pradesh",
    "03": "Punjab",
    "04": "Chandigarh",
    "05": "Uttarakhand",
    "06": "Haryana",
    "07": "Delhi",
    "08": "Rajasthan",
    "09": "Uttar Pradesh",
    "10": "Bihar",
    "11": "Sikkim",
    "12": "Arunachal Pradesh",
    "13": "Nagaland",
    "14": "Manipur",
    "15": "Mizoram",
    "16": "Tripura",
    "17": "Meghalaya",
    "18": "Assam",
    "19": "West Bengal",
    "20": "Jharkhand",
    "21": "Odisha",
    "22": "Chhattisgarh",
    "23": "Madhya Pradesh",
    "24": "Gujarat",
    "26": "Dadra and Nagar Haveli and Daman and Diu",
    "27": "Maharashtra",
    "29": "Karnataka",
    "30": "Goa",
    "31": "Lakshadweep",
    "32": "Kerala",
    "33": "Tamil Nadu",
    "34": "Puducherry",
    "35": "Andaman and Nicobar Islands",
    "36": "Telangana",
    "37": "Andhra Pradesh",
    "38": "Ladakh",
}


def is_valid_gstin(gstin: str) -> bool:
    return bool(GSTIN_RE.match(gstin))


def validate_gstin(gstin: str, *, field: str = "gstin") -> str:
    """Return the normalised ``gstin`` or raise :class:`ValidationError`."""
    value = gstin.strip().upper()
    if not is_valid_gstin(value):
        raise ValidationError(
            f"Malformed {field}: {gstin!r}",
            code="INVALID_GSTIN",
            hint="Expected 15 characters such as 33ABCDE1234F1Z5",
        )
    return value


def state_code_from_gstin(gstin: str | None) -> str | None:
    """The first two digits of a GSTIN identify the registering state."""
    if gstin and len(gstin) >= 2:
        return gstin[:2]
    return None


def normalise_state_code(code: str | None) -> str | None:
    """Accept ``"7"``, ``"07"`` or a state name and return the two digit code."""
    if code is None:
        return None
    code = code.strip()
    if not code:
        return None
    if code.isdigit():
        return code.zfill(2)
    for key, name in STATE_CODES.items():
        if name.lower() == code.lower():
            return key
    raise ValidationError(f"Unknown state: {code!r}", code="INVALID_STATE")

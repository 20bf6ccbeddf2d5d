"""
Field validators for Italian company identifiers and addresses.

Each ``validate_*`` function normalizes its input and returns it, or raises
``ValidationError`` naming the offending field.
"""

import re

from collaboranexio.core.exceptions import ValidationError

FISCAL_CODE_RE = re.compile(r"^[A-Z0-9]{16}$")
VAT_NUMBER_RE = re.compile(r"^[0-9]{11}$")
PROVINCE_RE = re.compile(r"^[A-Z]{2}$")


def vat_checksum(digits: str) -> int:
    """
    Mod-10 checksum of a partita IVA.

    Digits in odd positions (1st, 3rd, ...) are summed as-is; digits in
    even positions are doubled, subtracting 9 when the double exceeds 9.
    A valid number sums to a multiple of 10.
    """
    total = 0
    for index, char in enumerate(digits):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10


def is_valid_vat(value: str) -> bool:
    """True for an 11-digit partita IVA whose checksum is zero."""
    return bool(VAT_NUMBER_RE.match(value)) and vat_checksum(value) == 0


def is_valid_fiscal_code(value: str) -> bool:
    """True for a 16-character alphanumeric codice fiscale (any case)."""
    return bool(FISCAL_CODE_RE.match(value.upper()))


def validate_fiscal_code(value: str) -> str:
    normalized = value.strip().upper()
    if not is_valid_fiscal_code(normalized):
        raise ValidationError(
            "Invalid fiscal code (16 alphanumeric characters)",
            field="codice_fiscale",
        )
    return normalized


def validate_vat_number(value: str) -> str:
    normalized = value.strip()
    if not VAT_NUMBER_RE.match(normalized):
        raise ValidationError("Invalid VAT number (11 digits)", field="partita_iva")
    if not is_valid_vat(normalized):
        raise ValidationError("Invalid VAT number checksum", field="partita_iva")
    return normalized


def validate_province(value: str | None) -> str | None:
    """Province codes are two letters (``MI``, ``rm`` -> ``RM``); empty means unset."""
    if value is None or not value.strip():
        return None
    normalized = value.strip().upper()
    if not PROVINCE_RE.match(normalized):
        raise ValidationError(
            "Invalid province (2 letters)",
            field="sede_legale_provincia",
        )
    return normalized

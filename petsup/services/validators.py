"""Brazilian document and phone validation."""
import re
from typing import Optional

from petsup.errors import ValidationError

_NON_DIGITS = re.compile(r"\D")
_FORMATTED_PHONE = re.compile(r"^\(\d{2}\)\s?\d{4,5}-\d{4}$")
_DIGIT_PHONE = re.compile(r"^\d{10,11}$")


def only_digits(value: Optional[str]) -> str:
    return _NON_DIGITS.sub("", value or "")


def is_valid_cpf(value: str) -> bool:
    """
    Check a CPF (formatted or digits only) against its two check digits.

    Sequences of a single repeated digit pass the check-digit math but are
    not issued, so they are rejected.
    """
    cpf = only_digits(value)
    if len(cpf) != 11 or cpf == cpf[0] * 11:
        return False

    for position in (9, 10):
        total = sum(int(cpf[i]) * (position + 1 - i) for i in range(position))
        digit = (total * 10) % 11
        if digit == 10:
            digit = 0
        if digit != int(cpf[position]):
            return False
    return True


def is_valid_phone(value: str) -> bool:
    """Accept (XX) XXXXX-XXXX, (XX) XXXX-XXXX or 10-11 bare digits."""
    raw = (value or "").strip()
    if _FORMATTED_PHONE.match(raw):
        return True
    return bool(_DIGIT_PHONE.match(raw.replace(" ", "")))


def normalize_cpf(value: str) -> str:
    """Return the CPF as 11 digits or raise ValidationError."""
    if not is_valid_cpf(value):
        raise ValidationError("Invalid CPF", {"field": "cpf"})
    return only_digits(value)


def normalize_phone(value: str) -> str:
    """Return the phone as digits only or raise ValidationError."""
    if not is_valid_phone(value):
        raise ValidationError(
            "Phone must be formatted as (XX) XXXXX-XXXX or contain 10-11 digits",
            {"field": "phone"},
        )
    return only_digits(value)


def format_cpf(value: Optional[str]) -> Optional[str]:
    digits = only_digits(value)
    if len(digits) != 11:
        return value
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_phone(value: Optional[str]) -> Optional[str]:
    digits = only_digits(value)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return value

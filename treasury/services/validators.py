"""
Validation functions for bank data and business rules
"""

import re
from dataclasses import dataclass
from typing import Optional

from .exceptions import ValidationError

IBAN_LENGTHS = {
    "ES": 24,
    "AD": 24,
    "AT": 20,
    "BE": 16,
    "CH": 21,
    "DE": 22,
    "FR": 27,
    "GB": 22,
    "IT": 27,
    "NL": 18,
    "PT": 25,
}

MIN_IBAN_LENGTH = 15
MAX_IBAN_LENGTH = 34

_ALPHANUMERIC = re.compile(r"^[A-Z0-9]+$")
_COUNTRY = re.compile(r"^[A-Z]{2}$")
_CHECK_DIGITS = re.compile(r"^\d{2}$")


@dataclass
class IbanValidationResult:
    """Outcome of an IBAN check"""

    is_valid: bool
    error: Optional[str] = None
    country_code: Optional[str] = None
    formatted_iban: Optional[str] = None


def clean_iban(iban: Optional[str]) -> str:
    """Remove spaces and dashes and uppercase."""
    if not iban:
        return ""
    return re.sub(r"[\s-]", "", iban).upper()


def format_iban(iban: Optional[str]) -> str:
    """Group an IBAN in blocks of four characters."""
    cleaned = clean_iban(iban)
    return " ".join(cleaned[i:i + 4] for i in range(0, len(cleaned), 4))


def _mod97(iban: str) -> int:
    rearranged = iban[4:] + iban[:4]
    digits = "".join(str(int(ch, 36)) for ch in rearranged)
    remainder = 0
    for start in range(0, len(digits), 9):
        remainder = int(str(remainder) + digits[start:start + 9]) % 97
    return remainder


def validate_iban(iban: Optional[str], allow_international: bool = False) -> IbanValidationResult:
    """
    Validate an IBAN (ISO 13616) with its MOD-97 checksum.

    An empty value is valid because the field is optional wherever it appears.

    Args:
        iban: IBAN as typed, spaces and dashes allowed
        allow_international: Accept non Spanish countries

    Returns:
        IbanValidationResult with a Spanish error message when invalid
    """
    cleaned = clean_iban(iban)
    if not cleaned:
        return IbanValidationResult(is_valid=True)

    if not _ALPHANUMERIC.match(cleaned):
        return IbanValidationResult(False, "El IBAN solo puede contener letras y números")

    if len(cleaned) < MIN_IBAN_LENGTH:
        return IbanValidationResult(False, "El IBAN es demasiado corto")

    country = cleaned[:2]
    if not _COUNTRY.match(country):
        return IbanValidationResult(False, "El IBAN debe comenzar con el código de país (2 letras)")

    if not allow_international and country != "ES":
        return IbanValidationResult(False, "Solo se admiten IBAN españoles (ES)", country_code=country)

    expected = IBAN_LENGTHS.get(country)
    if expected is not None and len(cleaned) != expected:
        return IbanValidationResult(
            False,
            f"El IBAN de {country} debe tener {expected} caracteres",
            country_code=country,
        )
    if expected is None and not MIN_IBAN_LENGTH <= len(cleaned) <= MAX_IBAN_LENGTH:
        return IbanValidationResult(False, "Longitud de IBAN no válida", country_code=country)

    if not _CHECK_DIGITS.match(cleaned[2:4]):
        return IbanValidationResult(
            False, "Los dígitos de control deben ser numéricos", country_code=country
        )

    if _mod97(cleaned) != 1:
        return IbanValidationResult(
            False, "El IBAN no es válido (dígito de control incorrecto)", country_code=country
        )

    return IbanValidationResult(True, country_code=country, formatted_iban=format_iban(cleaned))


def validate_spanish_iban(iban: Optional[str]) -> IbanValidationResult:
    """Spanish IBAN check, additionally requiring numeric bank entity and office codes."""
    result = validate_iban(iban, allow_international=False)
    cleaned = clean_iban(iban)
    if not result.is_valid or not cleaned:
        return result
    if not cleaned[4:8].isdigit():
        return IbanValidationResult(False, "El código de entidad debe ser numérico", country_code="ES")
    if not cleaned[8:12].isdigit():
        return IbanValidationResult(False, "El código de oficina debe ser numérico", country_code="ES")
    return result


def require_valid_iban(iban: Optional[str], field: str = "iban", allow_international: bool = True) -> str:
    """
    Validate and normalize an IBAN or raise.

    Raises:
        ValidationError: If the IBAN is not valid
    """
    result = validate_iban(iban, allow_international=allow_international)
    if not result.is_valid:
        raise ValidationError(result.error, field=field, value=iban)
    return clean_iban(iban)


def require_fields(data: dict, *fields: str) -> None:
    """Raise when any of the given keys is missing or blank."""
    missing = [name for name in fields if data.get(name) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            errors=[f"{name}: field required" for name in missing],
        )

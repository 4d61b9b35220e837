"""Currency -- ISO 4217 code validation and minor-unit precision."""

from __future__ import annotations

from decimal import Decimal
from typing import Final

from statement_kernel.exceptions import InvalidCurrencyError

DEFAULT_MINOR_UNITS: Final[int] = 2

# Currencies whose minor unit differs from the two-decimal default.
_MINOR_UNITS: Final[dict[str, int]] = {
    # Zero decimal currencies
    "BIF": 0,
    "CLP": 0,
    "DJF": 0,
    "GNF": 0,
    "ISK": 0,
    "JPY": 0,
    "KMF": 0,
    "KRW": 0,
    "PYG": 0,
    "RWF": 0,
    "UGX": 0,
    "UYI": 0,
    "VND": 0,
    "VUV": 0,
    "XAF": 0,
    "XOF": 0,
    "XPF": 0,
    # Three decimal currencies
    "BHD": 3,
    "IQD": 3,
    "JOD": 3,
    "KWD": 3,
    "LYD": 3,
    "OMR": 3,
    "TND": 3,
    # Four decimal currencies
    "CLF": 4,
    "UYW": 4,
}


def normalize_currency(code: str) -> str:
    """
    Validate and normalize a currency code.

    Postconditions:
        - Returns the code upper-cased and stripped.
    Raises:
        InvalidCurrencyError: if the result is not three ASCII letters.
    """
    normalized = code.strip().upper() if isinstance(code, str) else ""
    if len(normalized) != 3 or not normalized.isascii() or not normalized.isalpha():
        raise InvalidCurrencyError(str(code))
    return normalized


def minor_units(code: str) -> int:
    """Number of decimal places used by ``code`` (2 when not listed)."""
    return _MINOR_UNITS.get(code.upper(), DEFAULT_MINOR_UNITS)


def quantize(amount: Decimal, code: str) -> Decimal:
    """Round ``amount`` to the minor-unit precision of ``code``.

    Amounts already carrying more precision than the currency allows are
    left untouched so that writers never lose digits silently.
    """
    places = minor_units(code)
    exponent = amount.as_tuple().exponent
    if isinstance(exponent, int) and -exponent > places:
        return amount
    return amount.quantize(Decimal(1).scaleb(-places))

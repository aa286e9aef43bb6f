"""
Amount parser for ledger inputs typed by staff or read from spreadsheets.

``parse_amount`` understands Indian grouping, rupee prefixes and the usual
negative notations. The ``to_*`` coercers wrap it with the zero fallback
every ledger field relies on: a bad value never raises, it becomes 0.
"""
import math
import numbers
import re
from typing import Any, Optional, Union

# Rupee spellings seen on delivery sheets, plus a few foreign ones
_CURRENCY_PATTERNS = [
    r'₹\s*',
    r'Rs\.?\s*',
    r'INR\s*',
    r'\$\s*',
]

_DR_SUFFIX = re.compile(r'\s*DR\s*$', re.IGNORECASE)
_CR_SUFFIX = re.compile(r'\s*CR\s*$', re.IGNORECASE)


def parse_amount(value: Union[str, int, float, None]) -> float:
    """
    Parse an amount value from various formats into a float.

    Handles:
    - Indian number format: "9,17,390.58"
    - International format: "917,390.58"
    - Currency prefixes: ₹, Rs, Rs., INR
    - Negative formats: -1000, (1000), 1000 DR

    Args:
        value: A string/number that might be an amount

    Returns:
        A float value (positive or negative), or 0.0 if unparseable
    """
    if value is None or isinstance(value, bool):
        return 0.0

    # Decimal and numpy scalars count as numbers too
    if isinstance(value, numbers.Number):
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    value_str = str(value).strip()
    if not value_str:
        return 0.0

    return _parse_signed_amount(value_str)


def _parse_signed_amount(value_str: str) -> float:
    """Parse an amount string, applying DR, parenthesis and minus signs."""
    is_negative = False

    dr_match = _DR_SUFFIX.search(value_str)
    cr_match = _CR_SUFFIX.search(value_str)
    if dr_match:
        is_negative = True
        value_str = value_str[:dr_match.start()]
    elif cr_match:
        value_str = value_str[:cr_match.start()]

    value_str = value_str.strip()

    # (1000) is how accountants write a negative
    if value_str.startswith('(') and value_str.endswith(')'):
        is_negative = True
        value_str = value_str[1:-1]

    if value_str.startswith('-'):
        is_negative = True
        value_str = value_str[1:]
    if value_str.endswith('-'):
        is_negative = True
        value_str = value_str[:-1]

    value_str = _remove_currency_symbols(value_str).strip()
    value_str = value_str.replace(',', '').replace(' ', '')

    if not value_str:
        return 0.0

    try:
        amount = float(value_str)
    except ValueError:
        return 0.0

    if is_negative:
        amount = -abs(amount)
    return amount


def _remove_currency_symbols(value_str: str) -> str:
    for pattern in _CURRENCY_PATTERNS:
        value_str = re.sub(pattern, '', value_str, flags=re.IGNORECASE)
    return value_str


def has_valid_amount(value: Any) -> bool:
    """
    Check if a value contains a parseable amount.

    Args:
        value: A value to check

    Returns:
        True if the value contains a valid, finite amount
    """
    if value is None or isinstance(value, bool):
        return False

    if isinstance(value, numbers.Number):
        try:
            return math.isfinite(float(value))
        except (TypeError, ValueError):
            return False

    cleaned = _remove_currency_symbols(str(value).strip())
    cleaned = _DR_SUFFIX.sub('', cleaned)
    cleaned = _CR_SUFFIX.sub('', cleaned).strip()
    if cleaned.startswith('(') and cleaned.endswith(')'):
        cleaned = cleaned[1:-1]
    cleaned = cleaned.strip('-').replace(',', '').replace(' ', '')

    if not cleaned:
        return False

    try:
        return math.isfinite(float(cleaned))
    except ValueError:
        return False


def to_amount(value: Any) -> float:
    """
    Coerce any input to a finite float, falling back to 0.0.

    Used for the signed cash adjustments (old pending, old balance, coins).
    """
    amount = parse_amount(value) if _is_scalar(value) else 0.0
    if not math.isfinite(amount):
        return 0.0
    return amount


def to_non_negative_amount(value: Any) -> float:
    """Coerce to a finite float >= 0; negatives and junk become 0.0."""
    amount = to_amount(value)
    return amount if amount > 0 else 0.0


def to_count(value: Any) -> int:
    """
    Coerce to a whole count >= 0 (cylinder quantities, note counts).

    Fractions are truncated: "2.9" counts as 2.
    """
    return int(to_non_negative_amount(value))


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, numbers.Number))


def format_indian_currency(amount: Optional[float], include_symbol: bool = True) -> str:
    """
    Format an amount in Indian currency format.

    Args:
        amount: The amount to format
        include_symbol: Whether to include the ₹ symbol

    Returns:
        Formatted currency string, e.g. "₹9,17,390.58"
    """
    if amount is None:
        return ""

    is_negative = amount < 0
    # Round once up front so 0.999 does not render as "0.100"
    paise = int(round(abs(amount) * 100))
    integer_part, decimal_part = divmod(paise, 100)

    int_str = str(integer_part)
    if len(int_str) > 3:
        # Last three digits, then groups of two (lakhs, crores)
        result = int_str[-3:]
        int_str = int_str[:-3]
        while int_str:
            result = int_str[-2:] + ',' + result
            int_str = int_str[:-2]
    else:
        result = int_str

    result = f"{result}.{decimal_part:02d}"

    if is_negative:
        result = "-" + result

    if include_symbol:
        result = "₹" + result

    return result

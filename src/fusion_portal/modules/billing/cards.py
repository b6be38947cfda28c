"""
Fusion Portal Billing - Card field helpers.

Formatting and format-only validation for payment card inputs. These never
check that a card is real; the payment backend does.
"""

import re

from fusion_portal.exceptions import ValidationException

CARD_DIGITS = 16
_NON_DIGITS = re.compile(r"\D")


def digits_only(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def format_card_number(value: str) -> str:
    """Group up to 16 digits in blocks of four: '4242424242424242' -> '4242 4242 4242 4242'."""
    digits = digits_only(value)[:CARD_DIGITS]
    return " ".join(digits[i:i + 4] for i in range(0, len(digits), 4))


def format_expiry(value: str) -> str:
    """Turn typed digits into MM/YY: '1228' -> '12/28', '1' -> '1'."""
    digits = digits_only(value)
    if len(digits) >= 2:
        return f"{digits[:2]}/{digits[2:4]}"
    return digits


def validate_card_number(value: str, message: str = "Please enter a valid 16-digit card number") -> str:
    """Return the bare digits of a 16-digit card number."""
    digits = digits_only(value)
    if len(digits) != CARD_DIGITS:
        raise ValidationException(message, errors=[{"field": "card_number", "message": message}])
    return digits


def normalize_expiry_year(year: int) -> int:
    """Two-digit years are in the 2000s."""
    return 2000 + year if year < 100 else year


def validate_expiry_month(month: int | str | None) -> int:
    message = "Please enter a valid expiration date"
    try:
        value = int(month)
    except (TypeError, ValueError):
        raise ValidationException(message, errors=[{"field": "exp_month", "message": message}]) from None
    if not 1 <= value <= 12:
        raise ValidationException(message, errors=[{"field": "exp_month", "message": message}])
    return value


def parse_expiry(value: str) -> tuple[int, int]:
    """
    Parse 'MM/YY' (or 'MM/YYYY') into (month, four-digit year).

    Raises ValidationException for anything else.
    """
    message = "Please enter a valid expiration date"
    month_part, _, year_part = (value or "").partition("/")
    if not month_part.isdigit() or not year_part.isdigit() or len(year_part) not in (2, 4):
        raise ValidationException(message, errors=[{"field": "expiry", "message": message}])

    month = validate_expiry_month(month_part)
    return month, normalize_expiry_year(int(year_part))


def validate_cvc(value: str) -> str:
    """Three or four digits."""
    message = "Please enter a valid CVC"
    if not value or not value.isdigit() or not 3 <= len(value) <= 4:
        raise ValidationException(message, errors=[{"field": "cvc", "message": message}])
    return value

"""
Input validation for amounts typed by household members
"""
import re
from decimal import Decimal, InvalidOperation


def normalize_decimal_input(value: str) -> str:
    """
    Accept a decimal comma as well as a dot

    Example:
        >>> normalize_decimal_input("250,50")
        "250.50"
    """
    return value.strip().replace(",", ".")


def validate_decimal_amount(value: str, max_decimal_places: int = 2) -> tuple[bool, str | None]:
    """
    Check an amount string

    Returns:
        (is_valid, error_message)

    Example:
        >>> validate_decimal_amount("120.5")
        (True, None)
        >>> validate_decimal_amount("120.505")
        (False, "At most 2 decimal places")
    """
    normalized = normalize_decimal_input(value)

    try:
        Decimal(normalized)
    except (InvalidOperation, ValueError):
        return False, "Invalid amount"

    pattern = rf"^-?\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        return False, f"At most {max_decimal_places} decimal places"

    return True, None


def validate_and_normalize_amount(value: str, max_decimal_places: int = 2) -> str:
    """
    Validate and normalise an amount

    Raises:
        ValueError: if the amount is malformed
    """
    is_valid, error = validate_decimal_amount(value, max_decimal_places)
    if not is_valid:
        raise ValueError(error)

    return normalize_decimal_input(value)

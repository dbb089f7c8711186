from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


# Maximum money value: 9,999,999,999.99 fits Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level missing or foreign record."""


def require_fields(data: dict | None, *fields: str) -> dict:
    """Return data, raising ValidationError if any field is missing or blank."""
    if not isinstance(data, dict):
        raise ValidationError("JSON body required")
    missing = [name for name in fields if data.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return data


def parse_money(value: Any, field: str, *, allow_negative: bool = False) -> Decimal:
    """
    Strict money parsing: ints, decimal strings and floats with at most
    two decimal places. Booleans are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"{field} must have at most two decimal places")
    if not allow_negative and amount < 0:
        raise ValidationError(f"{field} must not be negative")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large")
    return amount.quantize(Decimal("0.01"))


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    # Reject floats and bools explicitly
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise ValidationError(f"{field} must be an integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return value


def parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValidationError(f"{field} must be true or false")

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from .errors import ValidationError


# Maximum money amount: 9,999,999.99 (999,999,999 cents)
# Keeps aggregates well inside a 64-bit column
MAX_AMOUNT_CENTS = 999_999_999

# Quantities are Numeric(12, 3)
QUANTITY_PLACES = Decimal("0.001")
MAX_QUANTITY = Decimal("999999999.999")


def parse_cents(
    value: Any,
    field: str,
    *,
    required: bool = True,
    positive: bool = False,
    default: int | None = None,
) -> int | None:
    """
    Strictly coerce a money amount in cents.

    Accepts ints and plain digit strings. Rejects floats, decimals,
    scientific notation and booleans so no fractional cent ever reaches
    a stored aggregate.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required and default is None:
            raise ValidationError(f"{field} is required")
        return default

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer number of cents")

    if isinstance(value, int):
        cents = value
    elif isinstance(value, str):
        stripped = value.strip()
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer number of cents (no decimals)")
        try:
            cents = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer number of cents")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer number of cents, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer number of cents")

    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if positive and cents == 0:
        raise ValidationError(f"{field} must be > 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return cents


def parse_quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False) -> Decimal:
    """Coerce a quantity into a Decimal with at most three places."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")

    try:
        if isinstance(value, float):
            qty = Decimal(repr(value))
        else:
            qty = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")

    if not qty.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if qty != qty.quantize(QUANTITY_PLACES):
        raise ValidationError(f"{field} supports at most 3 decimal places")
    if qty < 0 or (qty == 0 and not allow_zero):
        raise ValidationError(f"{field} must be positive")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return qty.quantize(QUANTITY_PLACES)


def parse_id(value: Any, field: str, *, required: bool = True) -> int | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer id")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id")
    if parsed <= 0 or (isinstance(value, float) and value != parsed):
        raise ValidationError(f"{field} must be a positive integer id")
    return parsed


def parse_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    options = tuple(choices)
    if not isinstance(value, str) or value.strip().upper() not in options:
        raise ValidationError(f"{field} must be one of: {', '.join(options)}")
    return value.strip().upper()


def parse_text(value: Any, field: str, *, required: bool = False, max_length: int = 255) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    text = str(value).strip()
    if not text:
        if required:
            raise ValidationError(f"{field} cannot be blank")
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def parse_line_items(raw: Any, *, price_field: str) -> list[dict]:
    """
    Normalize `[{item_id, quantity, <price_field>?}]` request lines.

    The price is optional; services fall back to the item's catalogue price.
    """
    if not isinstance(raw, list) or not raw:
        raise ValidationError("At least one item is required")

    lines = []
    for index, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(f"Line {index}: each item must be an object")
        lines.append({
            "item_id": parse_id(entry.get("item_id"), f"items[{index}].item_id"),
            "quantity": parse_quantity(entry.get("quantity"), f"items[{index}].quantity"),
            price_field: parse_cents(entry.get(price_field), f"items[{index}].{price_field}", required=False),
        })
    return lines


def decimal_to_json(value: Decimal | None) -> str | None:
    """Render a quantity without float rounding ("4", "2.5")."""
    if value is None:
        return None
    normalized = Decimal(value).normalize()
    # normalize() turns 100 into 1E+2
    if normalized == normalized.to_integral_value():
        return str(normalized.quantize(Decimal(1)))
    return format(normalized, "f")

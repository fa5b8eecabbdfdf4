# Overview: Pure arithmetic over stock and balances; no session access.

"""
Ledger primitives.

Invariants (authoritative)

- Money is integer cents; quantities are Decimal. No float ever reaches
  a stored aggregate.
- Stock can never go below zero through these helpers.
- decrease_balance_clamped never drives a balance below zero and reports
  how much it actually applied; decrease_balance has no floor and is used
  for exact reversals and store-credit returns.
- Edits validate ONE composed projection (current + reversed - applied),
  never the intermediate state between reversal and application.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from ..errors import InsufficientStock


CENT = Decimal("1")


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def apply_stock_delta(current, delta, *, item_id: int | None = None, item_name: str | None = None) -> Decimal:
    """Return current + delta, refusing any negative result."""
    current = _as_decimal(current)
    delta = _as_decimal(delta)
    result = current + delta
    if result < 0:
        label = item_name or (f"item {item_id}" if item_id is not None else "item")
        raise InsufficientStock(
            f"Insufficient stock for {label}: {current} available, {-delta} requested",
            item_id=item_id,
            item_name=item_name,
            current=current,
            requested=-delta,
        )
    return result


def project_stock(current, reversed_qty, applied_qty, *, item_id: int | None = None, item_name: str | None = None) -> Decimal:
    """
    Validate and return `current + reversed_qty - applied_qty`.

    Sale edit: reversed = old qty, applied = new qty.
    Purchase edit: reversed = -old qty, applied = -new qty.
    """
    current = _as_decimal(current)
    reversed_qty = _as_decimal(reversed_qty)
    applied_qty = _as_decimal(applied_qty)
    result = current + reversed_qty - applied_qty
    if result < 0:
        label = item_name or (f"item {item_id}" if item_id is not None else "item")
        raise InsufficientStock(
            f"Insufficient stock for {label}: {current + reversed_qty} available, {applied_qty} requested",
            item_id=item_id,
            item_name=item_name,
            current=current + reversed_qty,
            requested=applied_qty,
        )
    return result


def increase_balance(current: int, amount: int) -> int:
    return int(current) + int(amount)


def decrease_balance_clamped(current: int, amount: int) -> tuple[int, int]:
    """
    Decrease a balance without crossing zero.

    Returns (new_balance, applied). A balance that is already negative
    (store credit) is left untouched.
    """
    applied = min(int(amount), max(int(current), 0))
    return int(current) - applied, applied


def decrease_balance(current: int, amount: int) -> int:
    return int(current) - int(amount)


def compute_credit_amount(total_cents: int, paid_cents: int) -> int:
    return int(total_cents) - int(paid_cents)


def resolve_payment_type(total_cents: int, paid_cents: int) -> str:
    return "CREDIT" if compute_credit_amount(total_cents, paid_cents) > 0 else "CASH"


def line_total_cents(unit_price_cents: int, quantity) -> int:
    """Price x quantity rounded half-up to a whole cent."""
    total = Decimal(int(unit_price_cents)) * _as_decimal(quantity)
    return int(total.quantize(CENT, rounding=ROUND_HALF_UP))


def aggregate_quantities(lines) -> dict[int, Decimal]:
    """Sum requested quantity per item_id across request lines."""
    totals: dict[int, Decimal] = {}
    for line in lines:
        item_id = line["item_id"] if isinstance(line, dict) else line.item_id
        quantity = line["quantity"] if isinstance(line, dict) else line.quantity
        totals[item_id] = totals.get(item_id, Decimal("0")) + _as_decimal(quantity)
    return totals

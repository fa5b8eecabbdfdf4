"""
Manual adjustments: stock corrections and absolute balance overrides.

Stock adjustments always leave a StockAdjustment row. Balance overrides
leave an audit row carrying the previous balance and the delta, which the
drift check in reporting_service reads back when it recomputes balances.

Bulk variants process each row in its own transaction and report per-row
errors instead of failing the whole batch.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import LedgerError, ValidationError
from ..models import Customer, StockAdjustment, Supplier
from ..validation import parse_cents, parse_choice, parse_id, parse_quantity, parse_text
from .audit_service import record_audit
from .concurrency import run_atomic
from .ledger_primitives import apply_stock_delta
from .tenant_service import load_items, require_in_tenant


ADJUSTMENT_MODES = ("ADD", "REMOVE", "SET")
MAX_BULK_ROWS = 500

BALANCE_SET_ACTIONS = {
    "customer": "customer.balance_set",
    "supplier": "supplier.balance_set",
}


def adjust_stock(tenant_id: int, item_id, *, mode, quantity, reason=None, user_id: int | None = None) -> StockAdjustment:
    """
    Apply a manual stock correction.

    mode ADD/REMOVE move stock by `quantity` (> 0); SET replaces it with
    `quantity` (>= 0). REMOVE below zero raises InsufficientStock.
    """
    item_id = parse_id(item_id, "item_id")
    mode = parse_choice(mode, "type", ADJUSTMENT_MODES)
    qty = parse_quantity(quantity, allow_zero=(mode == "SET"))
    reason = parse_text(reason, "reason")

    def _op():
        item = load_items(tenant_id, [item_id], lock=True)[item_id]
        previous = item.quantity
        if mode == "ADD":
            delta = qty
        elif mode == "REMOVE":
            delta = -qty
        else:
            delta = qty - previous
        item.quantity = apply_stock_delta(previous, delta, item_id=item.id, item_name=item.name)

        adjustment = StockAdjustment(
            tenant_id=tenant_id,
            item_id=item.id,
            user_id=user_id,
            type="DECREASE" if delta < 0 else "INCREASE",
            quantity=abs(delta),
            previous_quantity=previous,
            new_quantity=item.quantity,
            reason=reason,
        )
        db.session.add(adjustment)
        db.session.flush()

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="item.stock_adjusted",
            entity="item",
            entity_id=item.id,
            details={
                "mode": mode,
                "previous_quantity": str(previous),
                "new_quantity": str(item.quantity),
                "reason": reason,
            },
        )
        return adjustment

    return run_atomic(_op)


def adjust_stock_bulk(tenant_id: int, rows, *, user_id: int | None = None) -> dict:
    """Rows: [{item_id, type, quantity, reason?}]."""
    return _run_bulk(
        rows,
        lambda row: adjust_stock(
            tenant_id,
            row.get("item_id"),
            mode=row.get("type"),
            quantity=row.get("quantity"),
            reason=row.get("reason"),
            user_id=user_id,
        ),
    )


def _set_balance(tenant_id: int, model, kind: str, entity_id, balance_cents, reason=None, user_id=None):
    entity_id = parse_id(entity_id, f"{kind}_id")
    balance = parse_cents(balance_cents, "balance_cents")
    reason = parse_text(reason, "reason")

    def _op():
        entity = require_in_tenant(model, entity_id, tenant_id, label=kind.capitalize(), lock=True)
        previous = entity.balance_cents
        entity.balance_cents = balance
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action=BALANCE_SET_ACTIONS[kind],
            entity=kind,
            entity_id=entity.id,
            details={
                "previous_balance_cents": previous,
                "new_balance_cents": balance,
                "delta_cents": balance - previous,
                "reason": reason,
            },
        )
        return entity, previous

    return run_atomic(_op)


def set_customer_balance(tenant_id: int, customer_id, balance_cents, *, reason=None, user_id: int | None = None):
    """Override a customer's balance. Returns (customer, previous_balance_cents)."""
    return _set_balance(tenant_id, Customer, "customer", customer_id, balance_cents, reason, user_id)


def set_supplier_balance(tenant_id: int, supplier_id, balance_cents, *, reason=None, user_id: int | None = None):
    return _set_balance(tenant_id, Supplier, "supplier", supplier_id, balance_cents, reason, user_id)


def set_customer_balances(tenant_id: int, rows, *, user_id: int | None = None) -> dict:
    """Rows: [{customer_id, balance_cents, reason?}]."""
    return _run_bulk(
        rows,
        lambda row: set_customer_balance(
            tenant_id, row.get("customer_id"), row.get("balance_cents"), reason=row.get("reason"), user_id=user_id
        ),
    )


def set_supplier_balances(tenant_id: int, rows, *, user_id: int | None = None) -> dict:
    return _run_bulk(
        rows,
        lambda row: set_supplier_balance(
            tenant_id, row.get("supplier_id"), row.get("balance_cents"), reason=row.get("reason"), user_id=user_id
        ),
    )


def _run_bulk(rows, apply_row) -> dict:
    if not isinstance(rows, list) or not rows:
        raise ValidationError("No adjustments provided")
    if len(rows) > MAX_BULK_ROWS:
        raise ValidationError(f"Maximum {MAX_BULK_ROWS} adjustments per request")

    results = {"updated": 0, "skipped": 0, "errors": []}
    for row_num, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            results["errors"].append(f"Row {row_num}: must be an object")
            results["skipped"] += 1
            continue
        try:
            apply_row(row)
        except LedgerError as exc:
            results["errors"].append(f"Row {row_num}: {exc.message}")
            results["skipped"] += 1
        else:
            results["updated"] += 1

    if results["skipped"]:
        current_app.logger.info("Bulk adjustment skipped %d of %d rows", results["skipped"], len(rows))
    return results

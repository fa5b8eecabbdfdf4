"""
Purchase Service - atomic purchase create / edit / void (mirror of sales)

Purchases add stock and post any unpaid remainder to the supplier's
payable balance. Reversing a purchase removes stock again, so void and
edit are checked against the item's current quantity:

- void: every item must still hold at least the purchased quantity,
        otherwise CannotVoid names the item and the shortfall
- edit: current - old + new must stay >= 0 per item
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import CannotVoid, StateError, ValidationError
from ..models import Purchase, PurchaseItem, Supplier, SupplierReturn
from ..validation import parse_cents, parse_id, parse_line_items
from petros.time_utils import utcnow
from .audit_service import record_audit
from .concurrency import run_atomic
from .ledger_primitives import (
    aggregate_quantities,
    apply_stock_delta,
    compute_credit_amount,
    decrease_balance,
    increase_balance,
    line_total_cents,
    project_stock,
    resolve_payment_type,
)
from .tenant_service import load_items, require_in_tenant


def _price_lines(lines: list[dict], items: dict) -> tuple[list[dict], int]:
    priced = []
    total = 0
    for line in lines:
        item = items[line["item_id"]]
        cost = line["cost_price_cents"]
        if cost is None:
            cost = item.cost_price_cents
        line_total = line_total_cents(cost, line["quantity"])
        total += line_total
        priced.append({
            "item_id": line["item_id"],
            "quantity": line["quantity"],
            "cost_price_cents": cost,
            "line_total_cents": line_total,
        })
    return priced, total


def _insert_lines(purchase: Purchase, priced: list[dict]) -> None:
    for line in priced:
        purchase.lines.append(PurchaseItem(
            item_id=line["item_id"],
            quantity=line["quantity"],
            cost_price_cents=line["cost_price_cents"],
            line_total_cents=line["line_total_cents"],
        ))


def _ensure_no_returns(purchase: Purchase) -> None:
    if db.session.query(SupplierReturn.id).filter_by(purchase_id=purchase.id).first():
        raise StateError(
            "Purchase has returns recorded against it and can no longer be changed",
            {"purchase_id": purchase.id},
        )


def create_purchase_locked(
    tenant_id: int,
    *,
    supplier_id: int,
    lines: list[dict],
    paid_amount_cents: int,
    user_id: int | None = None,
    purchase_order_id: int | None = None,
    update_cost_price: bool = False,
) -> Purchase:
    """
    Create-purchase procedure body. Caller owns the transaction.

    With update_cost_price the item's catalogue cost follows the line cost
    (used when receiving a purchase order).
    """
    supplier = require_in_tenant(Supplier, supplier_id, tenant_id, label="Supplier", lock=True)
    items = load_items(tenant_id, [line["item_id"] for line in lines], lock=True)

    priced, total = _price_lines(lines, items)
    if paid_amount_cents > total:
        raise ValidationError(
            "Paid amount cannot exceed total amount",
            {"total_amount_cents": total, "paid_amount_cents": paid_amount_cents},
        )
    credit = compute_credit_amount(total, paid_amount_cents)

    purchase = Purchase(
        tenant_id=tenant_id,
        supplier_id=supplier.id,
        total_amount_cents=total,
        paid_amount_cents=paid_amount_cents,
        payment_type=resolve_payment_type(total, paid_amount_cents),
        created_by_user_id=user_id,
        purchase_order_id=purchase_order_id,
    )
    db.session.add(purchase)
    _insert_lines(purchase, priced)

    for line in priced:
        item = items[line["item_id"]]
        item.quantity = apply_stock_delta(item.quantity, line["quantity"], item_id=item.id, item_name=item.name)
        if update_cost_price:
            item.cost_price_cents = line["cost_price_cents"]

    if credit > 0:
        supplier.balance_cents = increase_balance(supplier.balance_cents, credit)

    db.session.flush()
    record_audit(
        tenant_id=tenant_id,
        user_id=user_id,
        action="purchase.created",
        entity="purchase",
        entity_id=purchase.id,
        details={
            "supplier_id": supplier.id,
            "total_amount_cents": total,
            "paid_amount_cents": paid_amount_cents,
            "purchase_order_id": purchase_order_id,
        },
    )
    return purchase


def create_purchase(
    tenant_id: int,
    *,
    supplier_id,
    items,
    paid_amount_cents=0,
    user_id: int | None = None,
) -> Purchase:
    """Create a purchase, add stock and post any credit to the supplier."""
    supplier_id = parse_id(supplier_id, "supplier_id")
    lines = parse_line_items(items, price_field="cost_price_cents")
    paid = parse_cents(paid_amount_cents, "paid_amount_cents", default=0)

    def _op():
        return create_purchase_locked(
            tenant_id,
            supplier_id=supplier_id,
            lines=lines,
            paid_amount_cents=paid,
            user_id=user_id,
        )

    return run_atomic(_op)


def edit_purchase(
    tenant_id: int,
    purchase_id: int,
    *,
    supplier_id,
    items,
    paid_amount_cents=0,
    user_id: int | None = None,
) -> Purchase:
    """
    Replace a purchase in place: reverse(old) then apply(new).

    Raises InsufficientStock when removing the old quantities and adding
    the new ones would leave an item negative (stock already sold).
    """
    supplier_id = parse_id(supplier_id, "supplier_id")
    lines = parse_line_items(items, price_field="cost_price_cents")
    paid = parse_cents(paid_amount_cents, "paid_amount_cents", default=0)

    def _op():
        purchase = require_in_tenant(Purchase, purchase_id, tenant_id, label="Purchase", lock=True)
        _ensure_no_returns(purchase)

        old_lines = list(purchase.lines)
        old_total = purchase.total_amount_cents
        old_credit = purchase.credit_amount_cents
        old_qty = aggregate_quantities(old_lines)
        new_qty = aggregate_quantities(lines)

        items_by_id = load_items(tenant_id, set(old_qty) | set(new_qty), lock=True)
        old_supplier = require_in_tenant(Supplier, purchase.supplier_id, tenant_id, label="Supplier", lock=True)
        if supplier_id == old_supplier.id:
            new_supplier = old_supplier
        else:
            new_supplier = require_in_tenant(Supplier, supplier_id, tenant_id, label="Supplier", lock=True)

        for item_id, item in items_by_id.items():
            project_stock(
                item.quantity,
                -old_qty.get(item_id, Decimal("0")),
                -new_qty.get(item_id, Decimal("0")),
                item_id=item.id,
                item_name=item.name,
            )

        priced, total = _price_lines(lines, items_by_id)
        new_paid = min(paid, total)
        new_credit = compute_credit_amount(total, new_paid)

        # Stock moves by the net of reverse(old) and apply(new) so the
        # intermediate state is never materialized
        for item_id, item in items_by_id.items():
            delta = new_qty.get(item_id, Decimal("0")) - old_qty.get(item_id, Decimal("0"))
            item.quantity = apply_stock_delta(item.quantity, delta, item_id=item.id, item_name=item.name)
        if old_credit > 0:
            old_supplier.balance_cents = decrease_balance(old_supplier.balance_cents, old_credit)
        purchase.lines.clear()
        db.session.flush()

        # apply(new)
        _insert_lines(purchase, priced)
        if new_credit > 0:
            new_supplier.balance_cents = increase_balance(new_supplier.balance_cents, new_credit)

        purchase.supplier_id = new_supplier.id
        purchase.total_amount_cents = total
        purchase.paid_amount_cents = new_paid
        purchase.payment_type = resolve_payment_type(total, new_paid)
        purchase.updated_at = utcnow()

        db.session.flush()
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="purchase.edited",
            entity="purchase",
            entity_id=purchase.id,
            details={"old_total_cents": old_total, "new_total_cents": total, "paid_amount_cents": new_paid},
        )
        return purchase

    purchase = run_atomic(_op)
    current_app.logger.info("Purchase %s edited for tenant %s", purchase_id, tenant_id)
    return purchase


def void_purchase(tenant_id: int, purchase_id: int, *, user_id: int | None = None) -> dict:
    """
    Remove a purchase's stock and payable, then delete it.

    Pre-checks every item before any write: if stock was sold since the
    purchase, CannotVoid reports the first item that falls short.
    """
    def _op():
        purchase = require_in_tenant(Purchase, purchase_id, tenant_id, label="Purchase", lock=True)
        _ensure_no_returns(purchase)

        lines = list(purchase.lines)
        purchased = aggregate_quantities(lines)
        items_by_id = load_items(tenant_id, purchased, lock=True)

        for item_id, qty in purchased.items():
            item = items_by_id[item_id]
            if item.quantity < qty:
                raise CannotVoid(
                    f'Cannot void purchase: insufficient stock for item "{item.name}". '
                    f"Current: {item.quantity}, required: {qty}",
                    {
                        "item_id": item.id,
                        "item_name": item.name,
                        "current": str(item.quantity),
                        "required": str(qty),
                        "shortfall": str(qty - item.quantity),
                    },
                )

        for item_id, qty in purchased.items():
            item = items_by_id[item_id]
            item.quantity = apply_stock_delta(item.quantity, -qty, item_id=item.id, item_name=item.name)

        credit = purchase.credit_amount_cents
        if credit > 0:
            supplier = require_in_tenant(Supplier, purchase.supplier_id, tenant_id, label="Supplier", lock=True)
            supplier.balance_cents = decrease_balance(supplier.balance_cents, credit)

        result = {
            "voided_amount_cents": purchase.total_amount_cents,
            "reversed_item_count": len(lines),
        }
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="purchase.voided",
            entity="purchase",
            entity_id=purchase.id,
            details=result,
        )
        db.session.delete(purchase)
        return result

    result = run_atomic(_op)
    current_app.logger.info(
        "Purchase %s voided for tenant %s (%s cents)", purchase_id, tenant_id, result["voided_amount_cents"]
    )
    return result


def get_purchase(tenant_id: int, purchase_id: int) -> Purchase:
    return require_in_tenant(Purchase, purchase_id, tenant_id, label="Purchase")


def list_purchases(
    tenant_id: int,
    *,
    supplier_id: int | None = None,
    payment_type: str | None = None,
    start=None,
    end=None,
) -> tuple[list[Purchase], dict]:
    query = db.session.query(Purchase).filter(Purchase.tenant_id == tenant_id)
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if payment_type:
        query = query.filter(Purchase.payment_type == payment_type)
    if start is not None:
        query = query.filter(Purchase.created_at >= start)
    if end is not None:
        query = query.filter(Purchase.created_at <= end)
    purchases = query.order_by(Purchase.created_at.desc(), Purchase.id.desc()).all()

    summary = {
        "total": len(purchases),
        "total_amount_cents": sum(p.total_amount_cents for p in purchases),
        "total_paid_cents": sum(p.paid_amount_cents for p in purchases),
        "total_credit_cents": sum(p.credit_amount_cents for p in purchases),
    }
    return purchases, summary

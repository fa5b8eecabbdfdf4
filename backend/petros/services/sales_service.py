"""
Sales Service - atomic sale create / edit / void

Every public operation validates its input first, then runs one
read -> check -> write procedure inside run_atomic:

- create: insert sale + lines, decrement stock, credit -> customer balance
- edit:   reverse(old) then apply(new), checked as one composed stock
          projection per item
- void:   reverse(old), then delete the sale and its lines

A failure at any step rolls back every write of that procedure.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import StateError, ValidationError
from ..models import Customer, CustomerReturn, Sale, SaleItem
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
    """Fill in catalogue prices and compute line and document totals."""
    priced = []
    total = 0
    for line in lines:
        item = items[line["item_id"]]
        price = line["price_cents"]
        if price is None:
            price = item.selling_price_cents
        line_total = line_total_cents(price, line["quantity"])
        total += line_total
        priced.append({
            "item_id": line["item_id"],
            "quantity": line["quantity"],
            "price_cents": price,
            "line_total_cents": line_total,
        })
    return priced, total


def _lock_customer(tenant_id: int, customer_id: int | None) -> Customer | None:
    if customer_id is None:
        return None
    return require_in_tenant(Customer, customer_id, tenant_id, label="Customer", lock=True)


def _insert_lines(sale: Sale, priced: list[dict]) -> None:
    for line in priced:
        sale.lines.append(SaleItem(
            item_id=line["item_id"],
            quantity=line["quantity"],
            price_cents=line["price_cents"],
            line_total_cents=line["line_total_cents"],
        ))


def _ensure_no_returns(sale: Sale) -> None:
    has_returns = db.session.query(CustomerReturn.id).filter_by(sale_id=sale.id).first()
    if has_returns:
        raise StateError(
            "Sale has returns recorded against it and can no longer be changed",
            {"sale_id": sale.id},
        )


def create_sale_locked(
    tenant_id: int,
    *,
    lines: list[dict],
    paid_amount_cents: int,
    customer_id: int | None = None,
    user_id: int | None = None,
    quotation_id: int | None = None,
) -> Sale:
    """
    Create-sale procedure body. Caller owns the transaction.

    `lines` must already be normalized by parse_line_items.
    """
    items = load_items(tenant_id, [line["item_id"] for line in lines], lock=True)
    customer = _lock_customer(tenant_id, customer_id)

    for item_id, requested in aggregate_quantities(lines).items():
        item = items[item_id]
        apply_stock_delta(item.quantity, -requested, item_id=item.id, item_name=item.name)

    priced, total = _price_lines(lines, items)
    if paid_amount_cents > total:
        raise ValidationError(
            "Paid amount cannot exceed total amount",
            {"total_amount_cents": total, "paid_amount_cents": paid_amount_cents},
        )
    credit = compute_credit_amount(total, paid_amount_cents)
    if credit > 0 and customer is None:
        raise ValidationError("Customer is required for credit sales")

    sale = Sale(
        tenant_id=tenant_id,
        customer_id=customer.id if customer else None,
        total_amount_cents=total,
        paid_amount_cents=paid_amount_cents,
        payment_type=resolve_payment_type(total, paid_amount_cents),
        created_by_user_id=user_id,
        quotation_id=quotation_id,
    )
    db.session.add(sale)
    _insert_lines(sale, priced)

    for line in priced:
        item = items[line["item_id"]]
        item.quantity = apply_stock_delta(item.quantity, -line["quantity"], item_id=item.id, item_name=item.name)

    if credit > 0:
        customer.balance_cents = increase_balance(customer.balance_cents, credit)

    db.session.flush()
    record_audit(
        tenant_id=tenant_id,
        user_id=user_id,
        action="sale.created",
        entity="sale",
        entity_id=sale.id,
        details={
            "total_amount_cents": total,
            "paid_amount_cents": paid_amount_cents,
            "customer_id": sale.customer_id,
            "line_count": len(priced),
        },
    )
    return sale


def create_sale(
    tenant_id: int,
    *,
    items,
    paid_amount_cents=0,
    customer_id=None,
    user_id: int | None = None,
) -> Sale:
    """Create a sale, decrement stock and post any credit to the customer."""
    lines = parse_line_items(items, price_field="price_cents")
    paid = parse_cents(paid_amount_cents, "paid_amount_cents", default=0)
    customer_id = parse_id(customer_id, "customer_id", required=False)

    def _op():
        return create_sale_locked(
            tenant_id,
            lines=lines,
            paid_amount_cents=paid,
            customer_id=customer_id,
            user_id=user_id,
        )

    return run_atomic(_op)


def edit_sale(
    tenant_id: int,
    sale_id: int,
    *,
    items,
    paid_amount_cents=0,
    customer_id=None,
    user_id: int | None = None,
) -> Sale:
    """
    Replace a sale's lines, payment and customer in place.

    Always reverses the full old sale (even unchanged lines) and applies the
    new one. Stock is validated per item as current + old - new, so moving
    quantity between lines of the same item never trips a false shortage.
    The paid amount is capped at the new total and the payment type follows
    from the resulting credit.
    """
    lines = parse_line_items(items, price_field="price_cents")
    paid = parse_cents(paid_amount_cents, "paid_amount_cents", default=0)
    customer_id = parse_id(customer_id, "customer_id", required=False)

    def _op():
        sale = require_in_tenant(Sale, sale_id, tenant_id, label="Sale", lock=True)
        _ensure_no_returns(sale)

        old_lines = list(sale.lines)
        old_total = sale.total_amount_cents
        old_qty = aggregate_quantities(old_lines)
        new_qty = aggregate_quantities(lines)

        items_by_id = load_items(tenant_id, set(old_qty) | set(new_qty), lock=True)
        old_customer = _lock_customer(tenant_id, sale.customer_id)
        new_customer = old_customer if customer_id == sale.customer_id else _lock_customer(tenant_id, customer_id)

        for item_id, item in items_by_id.items():
            project_stock(
                item.quantity,
                old_qty.get(item_id, Decimal("0")),
                new_qty.get(item_id, Decimal("0")),
                item_id=item.id,
                item_name=item.name,
            )

        priced, total = _price_lines(lines, items_by_id)
        new_paid = min(paid, total)
        new_credit = compute_credit_amount(total, new_paid)
        if new_credit > 0 and new_customer is None:
            raise ValidationError("Customer is required for credit sales")

        # reverse(old)
        for line in old_lines:
            item = items_by_id[line.item_id]
            item.quantity = apply_stock_delta(item.quantity, line.quantity, item_id=item.id, item_name=item.name)
        old_credit = sale.credit_amount_cents
        if old_credit > 0 and old_customer is not None:
            old_customer.balance_cents = decrease_balance(old_customer.balance_cents, old_credit)
        sale.lines.clear()
        db.session.flush()

        # apply(new)
        _insert_lines(sale, priced)
        for line in priced:
            item = items_by_id[line["item_id"]]
            item.quantity = apply_stock_delta(item.quantity, -line["quantity"], item_id=item.id, item_name=item.name)
        if new_credit > 0:
            new_customer.balance_cents = increase_balance(new_customer.balance_cents, new_credit)

        sale.customer_id = new_customer.id if new_customer else None
        sale.total_amount_cents = total
        sale.paid_amount_cents = new_paid
        sale.payment_type = resolve_payment_type(total, new_paid)
        sale.updated_at = utcnow()

        db.session.flush()
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="sale.edited",
            entity="sale",
            entity_id=sale.id,
            details={
                "old_total_cents": old_total,
                "new_total_cents": total,
                "paid_amount_cents": new_paid,
            },
        )
        return sale

    sale = run_atomic(_op)
    current_app.logger.info("Sale %s edited for tenant %s", sale_id, tenant_id)
    return sale


def void_sale(tenant_id: int, sale_id: int, *, user_id: int | None = None) -> dict:
    """
    Reverse a sale and delete it.

    Stock is restored for every line and any credit is taken back off the
    customer exactly. A second void of the same id raises NotFoundError.
    """
    def _op():
        sale = require_in_tenant(Sale, sale_id, tenant_id, label="Sale", lock=True)
        _ensure_no_returns(sale)

        lines = list(sale.lines)
        items_by_id = load_items(tenant_id, [line.item_id for line in lines], lock=True)
        for line in lines:
            item = items_by_id[line.item_id]
            item.quantity = apply_stock_delta(item.quantity, line.quantity, item_id=item.id, item_name=item.name)

        credit = sale.credit_amount_cents
        if credit > 0 and sale.customer_id is not None:
            customer = _lock_customer(tenant_id, sale.customer_id)
            customer.balance_cents = decrease_balance(customer.balance_cents, credit)

        result = {
            "voided_amount_cents": sale.total_amount_cents,
            "reversed_item_count": len(lines),
        }
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="sale.voided",
            entity="sale",
            entity_id=sale.id,
            details=result,
        )
        db.session.delete(sale)
        return result

    result = run_atomic(_op)
    current_app.logger.info(
        "Sale %s voided for tenant %s (%s cents)", sale_id, tenant_id, result["voided_amount_cents"]
    )
    return result


def get_sale(tenant_id: int, sale_id: int) -> Sale:
    return require_in_tenant(Sale, sale_id, tenant_id, label="Sale")


def list_sales(
    tenant_id: int,
    *,
    customer_id: int | None = None,
    payment_type: str | None = None,
    start=None,
    end=None,
) -> tuple[list[Sale], dict]:
    """Sales newest first plus a summary of amounts, paid and credit."""
    query = db.session.query(Sale).filter(Sale.tenant_id == tenant_id)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    if payment_type:
        query = query.filter(Sale.payment_type == payment_type)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)
    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    summary = {
        "total": len(sales),
        "total_amount_cents": sum(s.total_amount_cents for s in sales),
        "total_paid_cents": sum(s.paid_amount_cents for s in sales),
        "total_credit_cents": sum(s.credit_amount_cents for s in sales),
    }
    return sales, summary

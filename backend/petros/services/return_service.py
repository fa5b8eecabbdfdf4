"""
Return Service - customer and supplier returns

Rules shared by both directions:
- the item must appear on the referenced sale/purchase
- cumulative returned quantity per (document, item) never exceeds the
  quantity on the document
- CASH refunds reduce the counterparty balance through the clamped
  primitive; CREDIT reduces it with no floor (store credit); EXCHANGE
  leaves it alone

A customer CASH return therefore reduces what the customer owes, which is
how refunds against an open tab are settled.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError
from ..models import (
    Customer,
    CustomerReturn,
    Purchase,
    RETURN_TYPES,
    Sale,
    Supplier,
    SupplierReturn,
)
from ..validation import parse_cents, parse_choice, parse_id, parse_quantity, parse_text
from .audit_service import record_audit
from .concurrency import run_atomic
from .ledger_primitives import aggregate_quantities, apply_stock_delta, decrease_balance, decrease_balance_clamped
from .tenant_service import load_items, require_in_tenant


def _returned_so_far(return_model, doc_field: str, doc_id: int, item_id: int) -> Decimal:
    total = (
        db.session.query(func.coalesce(func.sum(return_model.quantity), 0))
        .filter(getattr(return_model, doc_field) == doc_id, return_model.item_id == item_id)
        .scalar()
    )
    return Decimal(str(total))


def _check_returnable(document, return_model, doc_field: str, item_id: int, quantity: Decimal, label: str) -> None:
    transacted = aggregate_quantities(document.lines).get(item_id)
    if transacted is None:
        raise ValidationError(f"Item was not part of this {label}", {"item_id": item_id})

    already = _returned_so_far(return_model, doc_field, document.id, item_id)
    if already + quantity > transacted:
        raise ValidationError(
            f"Return quantity exceeds {'sold' if label == 'sale' else 'purchased'} quantity",
            {
                "item_id": item_id,
                "transacted": str(transacted),
                "already_returned": str(already),
                "requested": str(quantity),
            },
        )


def _balance_effect(balance: int, return_type: str, amount: int) -> tuple[int, int]:
    """Return (new_balance, adjustment) for a return against a counterparty."""
    if return_type == "CASH":
        return decrease_balance_clamped(balance, amount)
    if return_type == "CREDIT":
        return decrease_balance(balance, amount), amount
    return balance, 0


def process_customer_return(
    tenant_id: int,
    *,
    sale_id,
    item_id,
    quantity,
    type,
    amount_cents,
    reason=None,
    user_id: int | None = None,
) -> CustomerReturn:
    """Take goods back against a sale: stock +qty and adjust the customer balance."""
    sale_id = parse_id(sale_id, "sale_id")
    item_id = parse_id(item_id, "item_id")
    qty = parse_quantity(quantity)
    return_type = parse_choice(type, "type", RETURN_TYPES)
    amount = parse_cents(amount_cents, "amount_cents")
    reason = parse_text(reason, "reason")

    def _op():
        sale = require_in_tenant(Sale, sale_id, tenant_id, label="Sale", lock=True)
        _check_returnable(sale, CustomerReturn, "sale_id", item_id, qty, "sale")

        item = load_items(tenant_id, [item_id], lock=True)[item_id]
        item.quantity = apply_stock_delta(item.quantity, qty, item_id=item.id, item_name=item.name)

        adjustment = 0
        if sale.customer_id is not None:
            customer = require_in_tenant(Customer, sale.customer_id, tenant_id, label="Customer", lock=True)
            customer.balance_cents, adjustment = _balance_effect(customer.balance_cents, return_type, amount)

        record = CustomerReturn(
            tenant_id=tenant_id,
            sale_id=sale.id,
            item_id=item.id,
            customer_id=sale.customer_id,
            quantity=qty,
            type=return_type,
            amount_cents=amount,
            balance_adjustment_cents=adjustment,
            reason=reason,
            created_by_user_id=user_id,
        )
        db.session.add(record)
        db.session.flush()

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="customer_return.processed",
            entity="customer_return",
            entity_id=record.id,
            details={
                "sale_id": sale.id,
                "item_id": item.id,
                "quantity": str(qty),
                "type": return_type,
                "amount_cents": amount,
                "balance_adjustment_cents": adjustment,
            },
        )
        return record

    return run_atomic(_op)


def process_supplier_return(
    tenant_id: int,
    *,
    purchase_id,
    item_id,
    quantity,
    type,
    amount_cents,
    reason=None,
    user_id: int | None = None,
) -> SupplierReturn:
    """Send goods back against a purchase: stock -qty (checked) and adjust the supplier balance."""
    purchase_id = parse_id(purchase_id, "purchase_id")
    item_id = parse_id(item_id, "item_id")
    qty = parse_quantity(quantity)
    return_type = parse_choice(type, "type", RETURN_TYPES)
    amount = parse_cents(amount_cents, "amount_cents")
    reason = parse_text(reason, "reason")

    def _op():
        purchase = require_in_tenant(Purchase, purchase_id, tenant_id, label="Purchase", lock=True)
        _check_returnable(purchase, SupplierReturn, "purchase_id", item_id, qty, "purchase")

        item = load_items(tenant_id, [item_id], lock=True)[item_id]
        item.quantity = apply_stock_delta(item.quantity, -qty, item_id=item.id, item_name=item.name)

        supplier = require_in_tenant(Supplier, purchase.supplier_id, tenant_id, label="Supplier", lock=True)
        supplier.balance_cents, adjustment = _balance_effect(supplier.balance_cents, return_type, amount)

        record = SupplierReturn(
            tenant_id=tenant_id,
            purchase_id=purchase.id,
            item_id=item.id,
            supplier_id=supplier.id,
            quantity=qty,
            type=return_type,
            amount_cents=amount,
            balance_adjustment_cents=adjustment,
            reason=reason,
            created_by_user_id=user_id,
        )
        db.session.add(record)
        db.session.flush()

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="supplier_return.processed",
            entity="supplier_return",
            entity_id=record.id,
            details={
                "purchase_id": purchase.id,
                "item_id": item.id,
                "quantity": str(qty),
                "type": return_type,
                "amount_cents": amount,
                "balance_adjustment_cents": adjustment,
            },
        )
        return record

    return run_atomic(_op)


def list_customer_returns(tenant_id: int, *, sale_id: int | None = None) -> list[CustomerReturn]:
    query = db.session.query(CustomerReturn).filter(CustomerReturn.tenant_id == tenant_id)
    if sale_id is not None:
        query = query.filter(CustomerReturn.sale_id == sale_id)
    return query.order_by(CustomerReturn.created_at.desc(), CustomerReturn.id.desc()).all()


def list_supplier_returns(tenant_id: int, *, purchase_id: int | None = None) -> list[SupplierReturn]:
    query = db.session.query(SupplierReturn).filter(SupplierReturn.tenant_id == tenant_id)
    if purchase_id is not None:
        query = query.filter(SupplierReturn.purchase_id == purchase_id)
    return query.order_by(SupplierReturn.created_at.desc(), SupplierReturn.id.desc()).all()

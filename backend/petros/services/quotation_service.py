"""
Quotation Service

A quotation is a priced offer with no ledger effect. Converting it runs
the full create-sale procedure (stock check, stock decrement, customer
credit) and marks the quotation ACCEPTED in the same transaction.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import StateError, ValidationError
from ..models import Customer, Quotation, QuotationItem, QUOTATION_STATUSES
from ..validation import parse_cents, parse_choice, parse_id, parse_line_items, parse_text
from petros.time_utils import parse_iso_datetime
from .audit_service import record_audit
from .concurrency import run_atomic
from .ledger_primitives import line_total_cents
from .sales_service import create_sale_locked
from .tenant_service import load_items, require_in_tenant


_CLOSED_STATUSES = ("ACCEPTED", "REJECTED", "EXPIRED")


def create_quotation(
    tenant_id: int,
    *,
    items,
    customer_id=None,
    note=None,
    valid_until=None,
    user_id: int | None = None,
) -> Quotation:
    lines = parse_line_items(items, price_field="price_cents")
    customer_id = parse_id(customer_id, "customer_id", required=False)
    note = parse_text(note, "note", max_length=2000)
    try:
        valid = parse_iso_datetime(valid_until) if valid_until else None
    except ValueError:
        raise ValidationError("valid_until must be an ISO-8601 date")

    def _op():
        if customer_id is not None:
            require_in_tenant(Customer, customer_id, tenant_id, label="Customer")
        items_by_id = load_items(tenant_id, [line["item_id"] for line in lines])

        quotation = Quotation(tenant_id=tenant_id, customer_id=customer_id, status="DRAFT", note=note, valid_until=valid)
        total = 0
        for line in lines:
            item = items_by_id[line["item_id"]]
            price = line["price_cents"]
            if price is None:
                price = item.selling_price_cents
            total += line_total_cents(price, line["quantity"])
            quotation.lines.append(QuotationItem(
                item_id=item.id,
                item_name=item.name,
                quantity=line["quantity"],
                price_cents=price,
            ))
        quotation.total_amount_cents = total
        db.session.add(quotation)
        db.session.flush()

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="quotation.created",
            entity="quotation",
            entity_id=quotation.id,
            details={"total_amount_cents": total},
        )
        return quotation

    return run_atomic(_op)


def update_quotation_status(tenant_id: int, quotation_id: int, status, *, user_id: int | None = None) -> Quotation:
    """Move an open quotation to SENT, REJECTED or EXPIRED."""
    new_status = parse_choice(status, "status", QUOTATION_STATUSES)
    if new_status == "ACCEPTED":
        raise ValidationError("Quotations are accepted through conversion")

    def _op():
        quotation = require_in_tenant(Quotation, quotation_id, tenant_id, label="Quotation", lock=True)
        if quotation.status in _CLOSED_STATUSES:
            raise StateError(f"Quotation is already {quotation.status}", {"status": quotation.status})
        if new_status == "DRAFT" and quotation.status != "DRAFT":
            raise StateError("A sent quotation cannot return to DRAFT")
        previous = quotation.status
        quotation.status = new_status
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="quotation.status_changed",
            entity="quotation",
            entity_id=quotation.id,
            details={"from": previous, "to": new_status},
        )
        return quotation

    return run_atomic(_op)


def convert_quotation(tenant_id: int, quotation_id: int, *, paid_amount_cents=None, user_id: int | None = None) -> dict:
    """Turn a quotation into a sale. Paid defaults to the full total."""
    paid = parse_cents(paid_amount_cents, "paid_amount_cents", required=False)

    def _op():
        quotation = require_in_tenant(Quotation, quotation_id, tenant_id, label="Quotation", lock=True)
        if quotation.status in _CLOSED_STATUSES:
            raise StateError(
                f"Cannot convert a quotation that is {quotation.status}",
                {"status": quotation.status},
            )
        if not quotation.lines:
            raise ValidationError("Quotation has no items")

        lines = [
            {"item_id": line.item_id, "quantity": line.quantity, "price_cents": line.price_cents}
            for line in quotation.lines
        ]
        sale = create_sale_locked(
            tenant_id,
            lines=lines,
            paid_amount_cents=quotation.total_amount_cents if paid is None else paid,
            customer_id=quotation.customer_id,
            user_id=user_id,
            quotation_id=quotation.id,
        )
        quotation.status = "ACCEPTED"
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="quotation.converted",
            entity="quotation",
            entity_id=quotation.id,
            details={"sale_id": sale.id},
        )
        return {"sale_id": sale.id}

    result = run_atomic(_op)
    current_app.logger.info("Quotation %s converted to sale %s", quotation_id, result["sale_id"])
    return result


def get_quotation(tenant_id: int, quotation_id: int) -> Quotation:
    return require_in_tenant(Quotation, quotation_id, tenant_id, label="Quotation")


def list_quotations(tenant_id: int, *, status: str | None = None) -> list[Quotation]:
    query = db.session.query(Quotation).filter(Quotation.tenant_id == tenant_id)
    if status:
        query = query.filter(Quotation.status == status)
    return query.order_by(Quotation.created_at.desc(), Quotation.id.desc()).all()

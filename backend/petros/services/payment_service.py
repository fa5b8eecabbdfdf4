"""
Payment Service - customer receipts and supplier payouts

A payment may never exceed what the counterparty owes (OverLimit). The
balance is then reduced through the clamped primitive, so concurrent
payments serialized behind the row lock can never push it below zero.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import OverLimit
from ..models import Customer, CustomerPayment, PAYMENT_METHODS, Supplier, SupplierPayment
from ..validation import parse_cents, parse_choice, parse_id, parse_text
from .audit_service import record_audit
from .concurrency import run_atomic
from .ledger_primitives import decrease_balance_clamped
from .tenant_service import require_in_tenant


def _record_payment(
    tenant_id: int,
    *,
    model,
    payment_model,
    fk_name: str,
    label: str,
    counterparty_id,
    amount_cents,
    method,
    note=None,
    user_id: int | None = None,
):
    counterparty_id = parse_id(counterparty_id, fk_name)
    amount = parse_cents(amount_cents, "amount_cents", positive=True)
    method = parse_choice(method, "method", PAYMENT_METHODS)
    note = parse_text(note, "note")

    def _op():
        counterparty = require_in_tenant(model, counterparty_id, tenant_id, label=label, lock=True)
        if amount > counterparty.balance_cents:
            raise OverLimit(
                f"Payment amount exceeds {label.lower()} balance",
                {"balance_cents": counterparty.balance_cents, "amount_cents": amount},
            )

        counterparty.balance_cents, applied = decrease_balance_clamped(counterparty.balance_cents, amount)
        payment = payment_model(
            tenant_id=tenant_id,
            amount_cents=amount,
            method=method,
            note=note,
            created_by_user_id=user_id,
            **{fk_name: counterparty.id},
        )
        db.session.add(payment)
        db.session.flush()

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action=f"{payment_model.__tablename__[:-1]}.recorded",
            entity=payment_model.__tablename__[:-1],
            entity_id=payment.id,
            details={fk_name: counterparty.id, "amount_cents": applied, "method": method},
        )
        return payment

    return run_atomic(_op)


def record_customer_payment(tenant_id: int, *, customer_id, amount_cents, method="CASH", note=None, user_id=None) -> CustomerPayment:
    return _record_payment(
        tenant_id,
        model=Customer,
        payment_model=CustomerPayment,
        fk_name="customer_id",
        label="Customer",
        counterparty_id=customer_id,
        amount_cents=amount_cents,
        method=method,
        note=note,
        user_id=user_id,
    )


def record_supplier_payment(tenant_id: int, *, supplier_id, amount_cents, method="CASH", note=None, user_id=None) -> SupplierPayment:
    return _record_payment(
        tenant_id,
        model=Supplier,
        payment_model=SupplierPayment,
        fk_name="supplier_id",
        label="Supplier",
        counterparty_id=supplier_id,
        amount_cents=amount_cents,
        method=method,
        note=note,
        user_id=user_id,
    )


def list_customer_payments(tenant_id: int, *, customer_id: int | None = None, start=None, end=None) -> list[CustomerPayment]:
    query = db.session.query(CustomerPayment).filter(CustomerPayment.tenant_id == tenant_id)
    if customer_id is not None:
        query = query.filter(CustomerPayment.customer_id == customer_id)
    if start is not None:
        query = query.filter(CustomerPayment.created_at >= start)
    if end is not None:
        query = query.filter(CustomerPayment.created_at <= end)
    return query.order_by(CustomerPayment.created_at.desc(), CustomerPayment.id.desc()).all()


def list_supplier_payments(tenant_id: int, *, supplier_id: int | None = None, start=None, end=None) -> list[SupplierPayment]:
    query = db.session.query(SupplierPayment).filter(SupplierPayment.tenant_id == tenant_id)
    if supplier_id is not None:
        query = query.filter(SupplierPayment.supplier_id == supplier_id)
    if start is not None:
        query = query.filter(SupplierPayment.created_at >= start)
    if end is not None:
        query = query.filter(SupplierPayment.created_at <= end)
    return query.order_by(SupplierPayment.created_at.desc(), SupplierPayment.id.desc()).all()

"""
Till Service - shift open / running totals / close

Expected cash for an open shift is recomputed from scratch on every call:

    expected = opening float
             + paid amount of CASH-type sales since opened_at
             + CASH customer payments since opened_at
             - expenses since opened_at

The window is tenant-wide from the moment the shift opened. Closing
freezes expected cash and the variance (count - expected) on the shift;
neither is ever posted back into item, customer or supplier balances.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..extensions import db
from ..errors import NotFoundError, ShiftAlreadyOpen
from ..models import CashRegister, CustomerPayment, Expense, Sale
from ..validation import parse_cents, parse_text
from petros.time_utils import start_of_day, utcnow
from .audit_service import record_audit
from .concurrency import lock_for_update, run_atomic


def get_open_shift(tenant_id: int, user_id: int, *, lock: bool = False) -> CashRegister | None:
    query = (
        db.session.query(CashRegister)
        .filter_by(tenant_id=tenant_id, user_id=user_id, status="OPEN")
        .order_by(CashRegister.opened_at.desc())
    )
    if lock:
        query = lock_for_update(query)
    return query.first()


def _sum(column, *criteria) -> int:
    return int(db.session.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar() or 0)


def _compute_totals(shift: CashRegister) -> dict:
    cash_sales = _sum(
        Sale.paid_amount_cents,
        Sale.tenant_id == shift.tenant_id,
        Sale.payment_type == "CASH",
        Sale.created_at >= shift.opened_at,
    )
    cash_payments = _sum(
        CustomerPayment.amount_cents,
        CustomerPayment.tenant_id == shift.tenant_id,
        CustomerPayment.method == "CASH",
        CustomerPayment.created_at >= shift.opened_at,
    )
    expenses = _sum(
        Expense.amount_cents,
        Expense.tenant_id == shift.tenant_id,
        Expense.created_at >= shift.opened_at,
    )
    cash_in = cash_sales + cash_payments
    return {
        "opening_float_cents": shift.opening_float_cents,
        "cash_sales_cents": cash_sales,
        "cash_payments_cents": cash_payments,
        "cash_expenses_cents": expenses,
        "cash_in_cents": cash_in,
        "cash_out_cents": expenses,
        "expected_cash_cents": shift.opening_float_cents + cash_in - expenses,
    }


def open_shift(tenant_id: int, user_id: int, opening_float_cents=0) -> CashRegister:
    opening = parse_cents(opening_float_cents, "opening_float_cents", default=0)

    def _op():
        if get_open_shift(tenant_id, user_id, lock=True):
            raise ShiftAlreadyOpen("You already have an open shift. Close it first.")
        shift = CashRegister(
            tenant_id=tenant_id,
            user_id=user_id,
            status="OPEN",
            opening_float_cents=opening,
        )
        db.session.add(shift)
        db.session.flush()
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="till.opened",
            entity="cash_register",
            entity_id=shift.id,
            details={"opening_float_cents": opening},
        )
        return shift

    return run_atomic(_op)


def get_running_totals(tenant_id: int, user_id: int) -> dict | None:
    """Live totals for the user's open shift, or None when no shift is open."""
    shift = get_open_shift(tenant_id, user_id)
    if shift is None:
        return None
    return _compute_totals(shift)


def close_shift(tenant_id: int, user_id: int, closing_count_cents, note=None) -> CashRegister:
    count = parse_cents(closing_count_cents, "closing_count_cents")
    note = parse_text(note, "note", max_length=2000)

    def _op():
        shift = get_open_shift(tenant_id, user_id, lock=True)
        if shift is None:
            raise NotFoundError("No open shift found")

        expected = _compute_totals(shift)["expected_cash_cents"]
        shift.status = "CLOSED"
        shift.closing_count_cents = count
        shift.expected_cash_cents = expected
        shift.variance_cents = count - expected
        shift.note = note
        shift.closed_at = utcnow()

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="till.closed",
            entity="cash_register",
            entity_id=shift.id,
            details={
                "closing_count_cents": count,
                "expected_cash_cents": expected,
                "variance_cents": shift.variance_cents,
            },
        )
        return shift

    return run_atomic(_op)


def list_shifts_today(tenant_id: int, user_id: int, *, today: date | None = None) -> list[CashRegister]:
    day = today or utcnow().date()
    return (
        db.session.query(CashRegister)
        .filter(
            CashRegister.tenant_id == tenant_id,
            CashRegister.user_id == user_id,
            CashRegister.opened_at >= start_of_day(day),
        )
        .order_by(CashRegister.opened_at.desc(), CashRegister.id.desc())
        .all()
    )


def list_open_shifts(tenant_id: int | None = None) -> list[CashRegister]:
    query = db.session.query(CashRegister).filter(CashRegister.status == "OPEN")
    if tenant_id is not None:
        query = query.filter(CashRegister.tenant_id == tenant_id)
    return query.order_by(CashRegister.opened_at).all()

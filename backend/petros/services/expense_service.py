# Overview: Expense recording; every expense is cash out of the till.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Expense, EXPENSE_CATEGORIES
from ..validation import parse_cents, parse_choice, parse_text
from .audit_service import record_audit
from .concurrency import run_atomic


def record_expense(
    tenant_id: int,
    *,
    amount_cents,
    category="OTHER",
    description=None,
    paid_by=None,
    user_id: int | None = None,
) -> Expense:
    amount = parse_cents(amount_cents, "amount_cents", positive=True)
    category = parse_choice(category or "OTHER", "category", EXPENSE_CATEGORIES)
    description = parse_text(description, "description")
    paid_by = parse_text(paid_by, "paid_by", max_length=128)

    def _op():
        expense = Expense(
            tenant_id=tenant_id,
            amount_cents=amount,
            category=category,
            description=description,
            paid_by=paid_by,
            created_by_user_id=user_id,
        )
        db.session.add(expense)
        db.session.flush()
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="expense.recorded",
            entity="expense",
            entity_id=expense.id,
            details={"amount_cents": amount, "category": category},
        )
        return expense

    return run_atomic(_op)


def list_expenses(tenant_id: int, *, category: str | None = None, start=None, end=None) -> tuple[list[Expense], dict]:
    """Expenses newest first, with the total and a per-category breakdown."""
    query = db.session.query(Expense).filter(Expense.tenant_id == tenant_id)
    if category:
        query = query.filter(Expense.category == category)
    if start is not None:
        query = query.filter(Expense.created_at >= start)
    if end is not None:
        query = query.filter(Expense.created_at <= end)
    expenses = query.order_by(Expense.created_at.desc(), Expense.id.desc()).all()

    by_category = {name: 0 for name in EXPENSE_CATEGORIES}
    for expense in expenses:
        by_category[expense.category] = by_category.get(expense.category, 0) + expense.amount_cents
    summary = {
        "count": len(expenses),
        "total_amount_cents": sum(e.amount_cents for e in expenses),
        "by_category": by_category,
    }
    return expenses, summary


def total_expenses(tenant_id: int, *, start=None, end=None) -> int:
    query = db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0)).filter(Expense.tenant_id == tenant_id)
    if start is not None:
        query = query.filter(Expense.created_at >= start)
    if end is not None:
        query = query.filter(Expense.created_at <= end)
    return int(query.scalar() or 0)

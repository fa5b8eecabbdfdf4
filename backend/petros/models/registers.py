from __future__ import annotations

from ..extensions import db
from petros.time_utils import to_utc_z, utcnow


EXPENSE_CATEGORIES = ("RENT", "SALARIES", "UTILITIES", "TRANSPORT", "SUPPLIES", "MAINTENANCE", "OTHER")


class CashRegister(db.Model):
    """
    Till shift for one user.

    LIFECYCLE:
    - OPEN: expected cash is recomputed on every read
    - CLOSED: closing count, expected cash and variance are frozen

    At most one OPEN shift per (tenant, user). The variance is informational
    and never posts back into ledger balances.
    """
    __tablename__ = "cash_registers"
    __table_args__ = (
        db.Index("ix_cash_registers_tenant_user_status", "tenant_id", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="OPEN", index=True)  # OPEN, CLOSED

    # All amounts in cents
    opening_float_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_count_cents = db.Column(db.Integer, nullable=True)
    expected_cash_cents = db.Column(db.Integer, nullable=True)
    variance_cents = db.Column(db.Integer, nullable=True)  # count - expected

    note = db.Column(db.Text, nullable=True)

    opened_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    closed_at = db.Column(db.DateTime, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("cash_registers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "status": self.status,
            "opening_float_cents": self.opening_float_cents,
            "closing_count_cents": self.closing_count_cents,
            "expected_cash_cents": self.expected_cash_cents,
            "variance_cents": self.variance_cents,
            "note": self.note,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "version_id": self.version_id,
        }


class Expense(db.Model):
    """Cash paid out of the business. Every expense reduces expected till cash."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(32), nullable=False, default="OTHER")
    description = db.Column(db.String(255), nullable=True)
    paid_by = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "amount_cents": self.amount_cents,
            "category": self.category,
            "description": self.description,
            "paid_by": self.paid_by,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }

from __future__ import annotations

from ..extensions import db
from petros.time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer with a receivable balance.

    balance_cents grows with credit sales and shrinks with payments and
    returns. A CREDIT return may take it below zero (store credit).
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_tenant_balance", "tenant_id", "balance_cents"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "phone": self.phone,
            "balance_cents": self.balance_cents,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class Supplier(db.Model):
    """Supplier with a payable balance (mirror of Customer)."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_tenant_balance", "tenant_id", "balance_cents"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "phone": self.phone,
            "balance_cents": self.balance_cents,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }

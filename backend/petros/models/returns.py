from __future__ import annotations

from ..extensions import db
from petros.time_utils import to_utc_z, utcnow
from petros.validation import decimal_to_json


RETURN_TYPES = ("CASH", "CREDIT", "EXCHANGE")


class CustomerReturn(db.Model):
    """
    Goods coming back from a customer against a sale.

    IMMUTABLE: never edited. balance_adjustment_cents records the amount
    actually taken off Customer.balance_cents (0 for EXCHANGE, clamped for
    CASH). While a sale has returns it cannot be edited or voided.
    """
    __tablename__ = "customer_returns"
    __table_args__ = (
        db.Index("ix_customer_returns_sale_item", "sale_id", "item_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    type = db.Column(db.String(16), nullable=False)  # CASH, CREDIT, EXCHANGE
    amount_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_adjustment_cents = db.Column(db.Integer, nullable=False, default=0)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "customer_id": self.customer_id,
            "quantity": decimal_to_json(self.quantity),
            "type": self.type,
            "amount_cents": self.amount_cents,
            "balance_adjustment_cents": self.balance_adjustment_cents,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }


class SupplierReturn(db.Model):
    """Goods sent back to a supplier against a purchase (mirror of CustomerReturn)."""
    __tablename__ = "supplier_returns"
    __table_args__ = (
        db.Index("ix_supplier_returns_purchase_item", "purchase_id", "item_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    type = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_adjustment_cents = db.Column(db.Integer, nullable=False, default=0)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "purchase_id": self.purchase_id,
            "item_id": self.item_id,
            "supplier_id": self.supplier_id,
            "quantity": decimal_to_json(self.quantity),
            "type": self.type,
            "amount_cents": self.amount_cents,
            "balance_adjustment_cents": self.balance_adjustment_cents,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }

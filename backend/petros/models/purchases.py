from __future__ import annotations

from ..extensions import db
from petros.time_utils import to_utc_z, utcnow
from petros.validation import decimal_to_json


PURCHASE_ORDER_STATUSES = ("DRAFT", "SENT", "RECEIVED", "CANCELLED")


class Purchase(db.Model):
    """
    Purchase document (mirror of Sale).

    Stock increases by each line quantity; any unpaid remainder is owed to
    the supplier and lands on Supplier.balance_cents.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_type = db.Column(db.String(16), nullable=False, default="CASH")

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=True)

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))

    @property
    def credit_amount_cents(self) -> int:
        return self.total_amount_cents - self.paid_amount_cents

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "supplier_id": self.supplier_id,
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "credit_amount_cents": self.credit_amount_cents,
            "payment_type": self.payment_type,
            "created_by_user_id": self.created_by_user_id,
            "purchase_order_id": self.purchase_order_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship(
        "Purchase",
        backref=db.backref("lines", lazy=True, order_by="PurchaseItem.id", cascade="all, delete-orphan"),
    )
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "quantity": decimal_to_json(self.quantity),
            "cost_price_cents": self.cost_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class PurchaseOrder(db.Model):
    """
    Intent to buy from a supplier.

    LIFECYCLE:
    - DRAFT -> SENT -> RECEIVED (receiving creates a Purchase)
    - DRAFT/SENT -> CANCELLED
    RECEIVED and CANCELLED are terminal. Only DRAFT orders can be deleted.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    note = db.Column(db.Text, nullable=True)
    expected_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    received_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "supplier_id": self.supplier_id,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "note": self.note,
            "expected_at": to_utc_z(self.expected_at),
            "created_at": to_utc_z(self.created_at),
            "received_at": to_utc_z(self.received_at),
            "items": [line.to_dict() for line in self.lines],
        }


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    item_name = db.Column(db.String(255), nullable=False)  # snapshot at order time

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False)

    purchase_order = db.relationship(
        "PurchaseOrder",
        backref=db.backref("lines", lazy=True, order_by="PurchaseOrderItem.id", cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": decimal_to_json(self.quantity),
            "cost_price_cents": self.cost_price_cents,
        }

from __future__ import annotations

from ..extensions import db
from petros.time_utils import to_utc_z, utcnow
from petros.validation import decimal_to_json


PAYMENT_TYPES = ("CASH", "CREDIT")
QUOTATION_STATUSES = ("DRAFT", "SENT", "ACCEPTED", "REJECTED", "EXPIRED")


class Sale(db.Model):
    """
    Sale document.

    INVARIANTS:
    - total_amount_cents == sum(line_total_cents)
    - paid_amount_cents <= total_amount_cents
    - payment_type CREDIT only when paid < total, and then customer_id is set

    Lines are replaced as a unit on edit; a void deletes the sale and its
    lines after reversing their stock and balance effects.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_tenant_created", "tenant_id", "created_at"),
        db.Index("ix_sales_tenant_type_created", "tenant_id", "payment_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_type = db.Column(db.String(16), nullable=False, default="CASH")

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    quotation_id = db.Column(db.Integer, db.ForeignKey("quotations.id"), nullable=True)

    # Python-side default keeps sub-second ordering against till shift open times
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=True)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))

    @property
    def credit_amount_cents(self) -> int:
        return self.total_amount_cents - self.paid_amount_cents

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "customer_id": self.customer_id,
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "credit_amount_cents": self.credit_amount_cents,
            "payment_type": self.payment_type,
            "created_by_user_id": self.created_by_user_id,
            "quotation_id": self.quotation_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class SaleItem(db.Model):
    """Line on a sale, priced at the moment of sale."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship(
        "Sale",
        backref=db.backref("lines", lazy=True, order_by="SaleItem.id", cascade="all, delete-orphan"),
    )
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "quantity": decimal_to_json(self.quantity),
            "price_cents": self.price_cents,
            "line_total_cents": self.line_total_cents,
        }


class Quotation(db.Model):
    """
    Priced offer to a customer.

    Converting a quotation runs the full create-sale procedure and marks it
    ACCEPTED; REJECTED and EXPIRED quotations cannot be converted.
    """
    __tablename__ = "quotations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    note = db.Column(db.Text, nullable=True)
    valid_until = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "customer_id": self.customer_id,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "note": self.note,
            "valid_until": to_utc_z(self.valid_until),
            "created_at": to_utc_z(self.created_at),
            "items": [line.to_dict() for line in self.lines],
        }


class QuotationItem(db.Model):
    __tablename__ = "quotation_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    quotation_id = db.Column(db.Integer, db.ForeignKey("quotations.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    item_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    quotation = db.relationship(
        "Quotation",
        backref=db.backref("lines", lazy=True, order_by="QuotationItem.id", cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": decimal_to_json(self.quantity),
            "price_cents": self.price_cents,
        }

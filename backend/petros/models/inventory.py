from __future__ import annotations

from ..extensions import db
from petros.time_utils import to_utc_z, utcnow
from petros.validation import decimal_to_json


STOCK_ADJUSTMENT_TYPES = ("INCREASE", "DECREASE")


class Item(db.Model):
    """
    Stock-keeping item.

    `quantity` is a cached aggregate: only orchestrator services change it,
    always inside an atomic procedure. version_id turns a lost update
    between two concurrent procedures into a StaleDataError that the
    atomic runner retries.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "quantity": decimal_to_json(self.quantity),
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class StockAdjustment(db.Model):
    """Manual stock correction (count fix, breakage, opening stock)."""
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.Index("ix_stock_adjustments_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    type = db.Column(db.String(16), nullable=False)  # INCREASE, DECREASE
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    previous_quantity = db.Column(db.Numeric(12, 3), nullable=False)
    new_quantity = db.Column(db.Numeric(12, 3), nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "item_id": self.item_id,
            "user_id": self.user_id,
            "type": self.type,
            "quantity": decimal_to_json(self.quantity),
            "previous_quantity": decimal_to_json(self.previous_quantity),
            "new_quantity": decimal_to_json(self.new_quantity),
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }

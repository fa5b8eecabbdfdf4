"""
Purchase Order Service

LIFECYCLE:
- DRAFT -> SENT
- DRAFT/SENT -> CANCELLED
- DRAFT/SENT -> RECEIVED, only through convert_purchase_order
RECEIVED and CANCELLED are terminal; only DRAFT orders may be deleted.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import StateError, ValidationError
from ..models import PurchaseOrder, PurchaseOrderItem, PURCHASE_ORDER_STATUSES, Supplier
from ..validation import parse_cents, parse_choice, parse_id, parse_line_items, parse_text
from petros.time_utils import parse_iso_datetime, utcnow
from .audit_service import record_audit
from .concurrency import run_atomic
from .ledger_primitives import line_total_cents
from .purchase_service import create_purchase_locked
from .tenant_service import load_items, require_in_tenant


# Transitions allowed through update_purchase_order_status
_MANUAL_TRANSITIONS = {
    "DRAFT": {"SENT", "CANCELLED"},
    "SENT": {"CANCELLED"},
}


def create_purchase_order(
    tenant_id: int,
    *,
    items,
    supplier_id=None,
    note=None,
    expected_at=None,
    user_id: int | None = None,
) -> PurchaseOrder:
    """Create a DRAFT order. No stock or balance effect until it is received."""
    lines = parse_line_items(items, price_field="cost_price_cents")
    supplier_id = parse_id(supplier_id, "supplier_id", required=False)
    note = parse_text(note, "note", max_length=2000)
    try:
        expected = parse_iso_datetime(expected_at) if expected_at else None
    except ValueError:
        raise ValidationError("expected_at must be an ISO-8601 date")

    def _op():
        if supplier_id is not None:
            require_in_tenant(Supplier, supplier_id, tenant_id, label="Supplier")
        items_by_id = load_items(tenant_id, [line["item_id"] for line in lines])

        order = PurchaseOrder(
            tenant_id=tenant_id,
            supplier_id=supplier_id,
            status="DRAFT",
            note=note,
            expected_at=expected,
        )
        total = 0
        for line in lines:
            item = items_by_id[line["item_id"]]
            cost = line["cost_price_cents"]
            if cost is None:
                cost = item.cost_price_cents
            total += line_total_cents(cost, line["quantity"])
            order.lines.append(PurchaseOrderItem(
                item_id=item.id,
                item_name=item.name,
                quantity=line["quantity"],
                cost_price_cents=cost,
            ))
        order.total_amount_cents = total
        db.session.add(order)
        db.session.flush()

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="purchase_order.created",
            entity="purchase_order",
            entity_id=order.id,
            details={"total_amount_cents": total, "supplier_id": supplier_id},
        )
        return order

    return run_atomic(_op)


def update_purchase_order_status(tenant_id: int, po_id: int, status, *, user_id: int | None = None) -> PurchaseOrder:
    new_status = parse_choice(status, "status", PURCHASE_ORDER_STATUSES)
    if new_status == "RECEIVED":
        raise ValidationError("Purchase orders are received through conversion")

    def _op():
        order = require_in_tenant(PurchaseOrder, po_id, tenant_id, label="Purchase order", lock=True)
        if new_status == order.status:
            return order
        if new_status not in _MANUAL_TRANSITIONS.get(order.status, set()):
            raise StateError(
                f"Cannot move purchase order from {order.status} to {new_status}",
                {"from": order.status, "to": new_status},
            )
        previous = order.status
        order.status = new_status
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="purchase_order.status_changed",
            entity="purchase_order",
            entity_id=order.id,
            details={"from": previous, "to": new_status},
        )
        return order

    return run_atomic(_op)


def delete_purchase_order(tenant_id: int, po_id: int, *, user_id: int | None = None) -> None:
    def _op():
        order = require_in_tenant(PurchaseOrder, po_id, tenant_id, label="Purchase order", lock=True)
        if order.status != "DRAFT":
            raise StateError("Only DRAFT purchase orders can be deleted", {"status": order.status})
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="purchase_order.deleted",
            entity="purchase_order",
            entity_id=order.id,
        )
        db.session.delete(order)

    run_atomic(_op)


def convert_purchase_order(tenant_id: int, po_id: int, *, paid_amount_cents=0, user_id: int | None = None) -> dict:
    """
    Receive an order: create the purchase, add stock, refresh item cost
    prices from the order lines and mark the order RECEIVED.
    """
    paid = parse_cents(paid_amount_cents, "paid_amount_cents", default=0)

    def _op():
        order = require_in_tenant(PurchaseOrder, po_id, tenant_id, label="Purchase order", lock=True)
        if order.status == "RECEIVED":
            raise StateError("Purchase order has already been received")
        if order.status == "CANCELLED":
            raise StateError("Cannot receive a cancelled purchase order")
        if order.supplier_id is None:
            raise ValidationError("A supplier must be set before receiving")
        if not order.lines:
            raise ValidationError("Purchase order has no items")

        lines = [
            {"item_id": line.item_id, "quantity": line.quantity, "cost_price_cents": line.cost_price_cents}
            for line in order.lines
        ]
        purchase = create_purchase_locked(
            tenant_id,
            supplier_id=order.supplier_id,
            lines=lines,
            paid_amount_cents=paid,
            user_id=user_id,
            purchase_order_id=order.id,
            update_cost_price=True,
        )
        order.status = "RECEIVED"
        order.received_at = utcnow()
        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="purchase_order.received",
            entity="purchase_order",
            entity_id=order.id,
            details={"purchase_id": purchase.id},
        )
        return {"purchase_id": purchase.id}

    result = run_atomic(_op)
    current_app.logger.info("Purchase order %s received as purchase %s", po_id, result["purchase_id"])
    return result


def get_purchase_order(tenant_id: int, po_id: int) -> PurchaseOrder:
    return require_in_tenant(PurchaseOrder, po_id, tenant_id, label="Purchase order")


def list_purchase_orders(tenant_id: int, *, status: str | None = None) -> list[PurchaseOrder]:
    query = db.session.query(PurchaseOrder).filter(PurchaseOrder.tenant_id == tenant_id)
    if status:
        query = query.filter(PurchaseOrder.status == status)
    return query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).all()

# Overview: Flask API routes for purchase orders.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..services import purchase_order_service
from ..decorators import require_permission, require_tenant


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("/")
@require_tenant
@require_permission("VIEW_PURCHASE_ORDERS")
def list_purchase_orders_route():
    status = (request.args.get("status") or "").upper() or None
    orders = purchase_order_service.list_purchase_orders(g.tenant_id, status=status)
    return jsonify({"purchase_orders": [o.to_dict() for o in orders]}), 200


@purchase_orders_bp.post("/")
@require_tenant
@require_permission("CREATE_PURCHASE_ORDER")
def create_purchase_order_route():
    """
    Request body:
    {
        "supplier_id": 2,          (optional until receiving)
        "note": "...",
        "expected_at": "2026-05-01",
        "items": [{"item_id": 1, "quantity": 24, "cost_price_cents": 650}]
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        order = purchase_order_service.create_purchase_order(
            g.tenant_id,
            items=data.get("items"),
            supplier_id=data.get("supplier_id"),
            note=data.get("note"),
            expected_at=data.get("expected_at"),
            user_id=g.current_user.id,
        )
        return jsonify({"purchase_order": order.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.get("/<int:po_id>")
@require_tenant
@require_permission("VIEW_PURCHASE_ORDERS")
def get_purchase_order_route(po_id: int):
    try:
        order = purchase_order_service.get_purchase_order(g.tenant_id, po_id)
        return jsonify({"purchase_order": order.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to fetch purchase order %s", po_id)
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.patch("/<int:po_id>")
@require_tenant
@require_permission("CREATE_PURCHASE_ORDER")
def update_purchase_order_status_route(po_id: int):
    """Request body: {"status": "SENT" | "CANCELLED"}"""
    try:
        data = request.get_json(silent=True) or {}
        order = purchase_order_service.update_purchase_order_status(
            g.tenant_id, po_id, data.get("status"), user_id=g.current_user.id
        )
        return jsonify({"purchase_order": order.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update purchase order %s", po_id)
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.delete("/<int:po_id>")
@require_tenant
@require_permission("DELETE_PURCHASE_ORDER")
def delete_purchase_order_route(po_id: int):
    try:
        purchase_order_service.delete_purchase_order(g.tenant_id, po_id, user_id=g.current_user.id)
        return jsonify({"message": "Purchase order deleted"}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete purchase order %s", po_id)
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.post("/<int:po_id>/convert")
@require_tenant
@require_permission("CREATE_PURCHASE")
def convert_purchase_order_route(po_id: int):
    """Receive the order as a purchase. Body: {"paid_amount_cents": 0}"""
    try:
        data = request.get_json(silent=True) or {}
        result = purchase_order_service.convert_purchase_order(
            g.tenant_id,
            po_id,
            paid_amount_cents=data.get("paid_amount_cents", 0),
            user_id=g.current_user.id,
        )
        return jsonify(result), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to convert purchase order %s", po_id)
        return jsonify({"error": "Internal server error"}), 500

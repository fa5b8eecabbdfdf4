# Overview: Flask API routes for manual stock and balance adjustments.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..services import adjustment_service
from ..decorators import require_permission, require_tenant


adjustments_bp = Blueprint("adjustments", __name__, url_prefix="/api")


@adjustments_bp.post("/items/<int:item_id>/adjust")
@require_tenant
@require_permission("ADJUST_STOCK")
def adjust_stock_route(item_id: int):
    """Request body: {"type": "add" | "remove" | "set", "quantity": 5, "reason": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        adjustment = adjustment_service.adjust_stock(
            g.tenant_id,
            item_id,
            mode=data.get("type"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
            user_id=g.current_user.id,
        )
        return jsonify({"item": adjustment.item.to_dict(), "adjustment": adjustment.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock for item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@adjustments_bp.post("/items/adjust-bulk")
@require_tenant
@require_permission("ADJUST_STOCK")
def adjust_stock_bulk_route():
    """Request body: {"adjustments": [{"item_id": 1, "type": "set", "quantity": 12}]}"""
    try:
        data = request.get_json(silent=True) or {}
        results = adjustment_service.adjust_stock_bulk(
            g.tenant_id, data.get("adjustments"), user_id=g.current_user.id
        )
        return jsonify(results), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed bulk stock adjustment")
        return jsonify({"error": "Internal server error"}), 500


def _balance_route(kind: str, set_one, set_many):
    data = request.get_json(silent=True) or {}
    if "adjustments" in data:
        return jsonify(set_many(g.tenant_id, data.get("adjustments"), user_id=g.current_user.id)), 200

    entity, previous = set_one(
        g.tenant_id,
        data.get(f"{kind}_id"),
        data.get("balance_cents"),
        reason=data.get("reason"),
        user_id=g.current_user.id,
    )
    return jsonify({kind: entity.to_dict(), "previous_balance_cents": previous}), 200


@adjustments_bp.post("/customers/adjust-balance")
@require_tenant
@require_permission("ADJUST_BALANCES")
def adjust_customer_balance_route():
    """
    Single: {"customer_id": 1, "balance_cents": 0, "reason": "..."}
    Bulk:   {"adjustments": [{"customer_id": 1, "balance_cents": 0}, ...]}
    """
    try:
        return _balance_route(
            "customer", adjustment_service.set_customer_balance, adjustment_service.set_customer_balances
        )
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Customer balance adjustment failed")
        return jsonify({"error": "Internal server error"}), 500


@adjustments_bp.post("/suppliers/adjust-balance")
@require_tenant
@require_permission("ADJUST_BALANCES")
def adjust_supplier_balance_route():
    try:
        return _balance_route(
            "supplier", adjustment_service.set_supplier_balance, adjustment_service.set_supplier_balances
        )
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Supplier balance adjustment failed")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Flask API routes for customer and supplier returns.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..services import return_service
from ..decorators import require_permission, require_tenant


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("/customers")
@require_tenant
@require_permission("PROCESS_RETURNS")
def process_customer_return_route():
    """
    Request body:
    {
        "sale_id": 12,
        "item_id": 3,
        "quantity": 2,
        "type": "CASH" | "CREDIT" | "EXCHANGE",
        "amount_cents": 20000,
        "reason": "damaged"   (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        record = return_service.process_customer_return(
            g.tenant_id,
            sale_id=data.get("sale_id"),
            item_id=data.get("item_id"),
            quantity=data.get("quantity"),
            type=data.get("type"),
            amount_cents=data.get("amount_cents"),
            reason=data.get("reason"),
            user_id=g.current_user.id,
        )
        return jsonify({"return": record.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process customer return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("/customers")
@require_tenant
def list_customer_returns_route():
    records = return_service.list_customer_returns(g.tenant_id, sale_id=request.args.get("sale_id", type=int))
    return jsonify({"returns": [r.to_dict() for r in records]}), 200


@returns_bp.post("/suppliers")
@require_tenant
@require_permission("PROCESS_RETURNS")
def process_supplier_return_route():
    try:
        data = request.get_json(silent=True) or {}
        record = return_service.process_supplier_return(
            g.tenant_id,
            purchase_id=data.get("purchase_id"),
            item_id=data.get("item_id"),
            quantity=data.get("quantity"),
            type=data.get("type"),
            amount_cents=data.get("amount_cents"),
            reason=data.get("reason"),
            user_id=g.current_user.id,
        )
        return jsonify({"return": record.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process supplier return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("/suppliers")
@require_tenant
def list_supplier_returns_route():
    records = return_service.list_supplier_returns(g.tenant_id, purchase_id=request.args.get("purchase_id", type=int))
    return jsonify({"returns": [r.to_dict() for r in records]}), 200

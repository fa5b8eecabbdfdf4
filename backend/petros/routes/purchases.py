# Overview: Flask API routes for purchases; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError, ValidationError
from ..services import purchase_service
from ..decorators import require_permission, require_tenant
from petros.time_utils import parse_date_range


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("/")
@require_tenant
def list_purchases_route():
    try:
        try:
            start, end = parse_date_range(request.args.get("start"), request.args.get("end"))
        except ValueError:
            raise ValidationError("start/end must be ISO-8601 dates")

        purchases, summary = purchase_service.list_purchases(
            g.tenant_id,
            supplier_id=request.args.get("supplier_id", type=int),
            payment_type=(request.args.get("payment_type") or "").upper() or None,
            start=start,
            end=end,
        )
        return jsonify({"purchases": [p.to_dict(include_lines=True) for p in purchases], "summary": summary}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list purchases")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("/")
@require_tenant
@require_permission("CREATE_PURCHASE")
def create_purchase_route():
    """
    Request body:
    {
        "supplier_id": 2,
        "paid_amount_cents": 0,
        "items": [{"item_id": 1, "quantity": 10, "cost_price_cents": 700}]
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        purchase = purchase_service.create_purchase(
            g.tenant_id,
            supplier_id=data.get("supplier_id"),
            items=data.get("items"),
            paid_amount_cents=data.get("paid_amount_cents", 0),
            user_id=g.current_user.id,
        )
        return jsonify({"purchase": purchase.to_dict(include_lines=True)}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("/<int:purchase_id>")
@require_tenant
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(g.tenant_id, purchase_id)
        return jsonify({"purchase": purchase.to_dict(include_lines=True)}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to fetch purchase %s", purchase_id)
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.put("/<int:purchase_id>")
@require_tenant
@require_permission("VOID_PURCHASES")
def edit_purchase_route(purchase_id: int):
    try:
        data = request.get_json(silent=True) or {}
        purchase = purchase_service.edit_purchase(
            g.tenant_id,
            purchase_id,
            supplier_id=data.get("supplier_id"),
            items=data.get("items"),
            paid_amount_cents=data.get("paid_amount_cents", 0),
            user_id=g.current_user.id,
        )
        return jsonify({"purchase": purchase.to_dict(include_lines=True)}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to edit purchase %s", purchase_id)
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.delete("/<int:purchase_id>")
@require_tenant
@require_permission("VOID_PURCHASES")
def void_purchase_route(purchase_id: int):
    try:
        result = purchase_service.void_purchase(g.tenant_id, purchase_id, user_id=g.current_user.id)
        return jsonify({"message": "Purchase voided", **result}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void purchase %s", purchase_id)
        return jsonify({"error": "Internal server error"}), 500

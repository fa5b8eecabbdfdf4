# Overview: Flask API routes for quotations.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..services import quotation_service
from ..decorators import require_permission, require_tenant


quotations_bp = Blueprint("quotations", __name__, url_prefix="/api/quotations")


@quotations_bp.get("/")
@require_tenant
@require_permission("VIEW_QUOTATIONS")
def list_quotations_route():
    status = (request.args.get("status") or "").upper() or None
    quotations = quotation_service.list_quotations(g.tenant_id, status=status)
    return jsonify({"quotations": [q.to_dict() for q in quotations]}), 200


@quotations_bp.post("/")
@require_tenant
@require_permission("CREATE_QUOTATION")
def create_quotation_route():
    try:
        data = request.get_json(silent=True) or {}
        quotation = quotation_service.create_quotation(
            g.tenant_id,
            items=data.get("items"),
            customer_id=data.get("customer_id"),
            note=data.get("note"),
            valid_until=data.get("valid_until"),
            user_id=g.current_user.id,
        )
        return jsonify({"quotation": quotation.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create quotation")
        return jsonify({"error": "Internal server error"}), 500


@quotations_bp.get("/<int:quotation_id>")
@require_tenant
@require_permission("VIEW_QUOTATIONS")
def get_quotation_route(quotation_id: int):
    try:
        quotation = quotation_service.get_quotation(g.tenant_id, quotation_id)
        return jsonify({"quotation": quotation.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to fetch quotation %s", quotation_id)
        return jsonify({"error": "Internal server error"}), 500


@quotations_bp.patch("/<int:quotation_id>")
@require_tenant
@require_permission("CREATE_QUOTATION")
def update_quotation_status_route(quotation_id: int):
    try:
        data = request.get_json(silent=True) or {}
        quotation = quotation_service.update_quotation_status(
            g.tenant_id, quotation_id, data.get("status"), user_id=g.current_user.id
        )
        return jsonify({"quotation": quotation.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update quotation %s", quotation_id)
        return jsonify({"error": "Internal server error"}), 500


@quotations_bp.post("/<int:quotation_id>/convert")
@require_tenant
@require_permission("CREATE_SALE")
def convert_quotation_route(quotation_id: int):
    """Body: {"paid_amount_cents": ...} (optional, defaults to the full total)"""
    try:
        data = request.get_json(silent=True) or {}
        result = quotation_service.convert_quotation(
            g.tenant_id,
            quotation_id,
            paid_amount_cents=data.get("paid_amount_cents"),
            user_id=g.current_user.id,
        )
        return jsonify(result), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to convert quotation %s", quotation_id)
        return jsonify({"error": "Internal server error"}), 500

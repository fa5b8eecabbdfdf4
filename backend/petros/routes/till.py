# Overview: Flask API routes for till shifts.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..services import till_service
from ..decorators import require_permission, require_tenant


till_bp = Blueprint("till", __name__, url_prefix="/api/till")


@till_bp.get("/")
@require_tenant
@require_permission("MANAGE_TILL")
def till_status_route():
    """Current open shift (if any), today's shifts and live running totals."""
    user_id = g.current_user.id
    shift = till_service.get_open_shift(g.tenant_id, user_id)
    return jsonify({
        "open_shift": shift.to_dict() if shift else None,
        "today_shifts": [s.to_dict() for s in till_service.list_shifts_today(g.tenant_id, user_id)],
        "running_totals": till_service.get_running_totals(g.tenant_id, user_id),
    }), 200


@till_bp.post("/")
@require_tenant
@require_permission("MANAGE_TILL")
def open_shift_route():
    """Request body: {"opening_float_cents": 50000}"""
    try:
        data = request.get_json(silent=True) or {}
        shift = till_service.open_shift(g.tenant_id, g.current_user.id, data.get("opening_float_cents", 0))
        return jsonify({"shift": shift.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to open shift")
        return jsonify({"error": "Internal server error"}), 500


@till_bp.put("/")
@require_tenant
@require_permission("MANAGE_TILL")
def close_shift_route():
    """Request body: {"closing_count_cents": 74000, "note": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        shift = till_service.close_shift(
            g.tenant_id,
            g.current_user.id,
            data.get("closing_count_cents"),
            note=data.get("note"),
        )
        return jsonify({"shift": shift.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to close shift")
        return jsonify({"error": "Internal server error"}), 500

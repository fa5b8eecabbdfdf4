# Overview: Flask API routes for expenses.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError, ValidationError
from ..services import expense_service
from ..decorators import require_permission, require_tenant
from petros.time_utils import parse_date_range


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("/")
@require_tenant
@require_permission("VIEW_EXPENSES")
def list_expenses_route():
    try:
        try:
            start, end = parse_date_range(request.args.get("start"), request.args.get("end"))
        except ValueError:
            raise ValidationError("start/end must be ISO-8601 dates")
        expenses, summary = expense_service.list_expenses(
            g.tenant_id,
            category=(request.args.get("category") or "").upper() or None,
            start=start,
            end=end,
        )
        return jsonify({"expenses": [e.to_dict() for e in expenses], "summary": summary}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list expenses")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.post("/")
@require_tenant
@require_permission("CREATE_EXPENSES")
def record_expense_route():
    """Request body: {"amount_cents": 5000, "category": "TRANSPORT", "description": "...", "paid_by": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        expense = expense_service.record_expense(
            g.tenant_id,
            amount_cents=data.get("amount_cents"),
            category=data.get("category"),
            description=data.get("description"),
            paid_by=data.get("paid_by"),
            user_id=g.current_user.id,
        )
        return jsonify({"expense": expense.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Flask API routes for reports, dashboard and the audit trail.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError, ValidationError
from ..permissions import has_permission
from ..services import audit_service, reporting_service
from ..decorators import require_permission, require_tenant
from petros.time_utils import parse_date_range, parse_iso_datetime


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


# Report type -> permission required on top of VIEW_BASIC_REPORTS
_REPORT_PERMISSIONS = {
    "sales": "VIEW_ALL_REPORTS",
    "purchases": "VIEW_ALL_REPORTS",
    "inventory": None,
    "debtors": "VIEW_ALL_REPORTS",
    "creditors": "VIEW_ALL_REPORTS",
    "profit": "VIEW_PROFIT_MARGINS",
    "dashboard": None,
    "end-of-day": "VIEW_ALL_REPORTS",
}


def _range_args():
    try:
        return parse_date_range(request.args.get("start"), request.args.get("end"))
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 dates")


@reports_bp.get("/")
@require_tenant
@require_permission("VIEW_BASIC_REPORTS")
def report_route():
    """
    GET /api/reports?type=<sales|purchases|inventory|debtors|creditors|profit|dashboard|end-of-day>

    Optional: start, end (ISO-8601); date for end-of-day.
    """
    report_type = (request.args.get("type") or "").strip().lower()
    if report_type not in _REPORT_PERMISSIONS:
        return jsonify({"error": f"type must be one of: {', '.join(_REPORT_PERMISSIONS)}"}), 400

    required = _REPORT_PERMISSIONS[report_type]
    role = g.current_user.role
    if required and not has_permission(role, required):
        return jsonify({"error": "Permission denied", "required_permission": required, "role": role}), 403

    try:
        tenant_id = g.tenant_id
        if report_type == "sales":
            payload = reporting_service.sales_report(tenant_id, *_range_args())
        elif report_type == "purchases":
            payload = reporting_service.purchases_report(tenant_id, *_range_args())
        elif report_type == "inventory":
            payload = reporting_service.inventory_report(tenant_id)
        elif report_type == "debtors":
            payload = reporting_service.debtors(tenant_id)
        elif report_type == "creditors":
            payload = reporting_service.creditors(tenant_id)
        elif report_type == "profit":
            payload = reporting_service.profit_report(tenant_id, *_range_args())
        elif report_type == "dashboard":
            payload = reporting_service.dashboard(tenant_id)
        else:
            try:
                day = parse_iso_datetime(request.args.get("date"))
            except ValueError:
                raise ValidationError("date must be an ISO-8601 date")
            payload = reporting_service.end_of_day(
                tenant_id,
                day=day.date() if day else None,
                include_profit=has_permission(role, "VIEW_PROFIT_MARGINS"),
            )
        return jsonify({"type": report_type, **payload}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to generate %s report", report_type)
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/audit-logs")
@require_tenant
@require_permission("VIEW_AUDIT_LOGS")
def audit_logs_route():
    limit = min(request.args.get("limit", 100, type=int), 500)
    logs = audit_service.list_audit_logs(
        g.tenant_id,
        entity=request.args.get("entity"),
        entity_id=request.args.get("entity_id", type=int),
        limit=limit,
    )
    return jsonify({"audit_logs": [log.to_dict() for log in logs]}), 200

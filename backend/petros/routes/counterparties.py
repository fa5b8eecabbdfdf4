# Overview: Flask API routes for customers and suppliers.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError, ValidationError
from ..permissions import has_permission
from ..services import catalog_service
from ..decorators import require_permission, require_tenant


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")
suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


def _opening_balance_denied(data: dict):
    """A non-zero opening balance is a balance override and needs ADJUST_BALANCES."""
    role = g.current_user.role
    if data.get("opening_balance_cents") and not has_permission(role, "ADJUST_BALANCES"):
        return jsonify({"error": "Permission denied", "required_permission": "ADJUST_BALANCES", "role": role}), 403
    return None


def _create(kind: str, create):
    try:
        data = request.get_json(silent=True) or {}
        denied = _opening_balance_denied(data)
        if denied:
            return denied
        entity = create(
            g.tenant_id,
            name=data.get("name"),
            phone=data.get("phone"),
            opening_balance_cents=data.get("opening_balance_cents", 0),
            user_id=g.current_user.id,
        )
        return jsonify({kind: entity.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create %s", kind)
        return jsonify({"error": "Internal server error"}), 500


def _update(kind: str, update, entity_id: int):
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        entity = update(g.tenant_id, entity_id, data, user_id=g.current_user.id)
        return jsonify({kind: entity.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update %s %s", kind, entity_id)
        return jsonify({"error": "Internal server error"}), 500


def _get(kind: str, fetch, entity_id: int):
    try:
        return jsonify({kind: fetch(g.tenant_id, entity_id).to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to fetch %s %s", kind, entity_id)
        return jsonify({"error": "Internal server error"}), 500


# Customers

@customers_bp.get("/")
@require_tenant
def list_customers_route():
    """
    Customers with the largest balances first.

    Query: search (name or phone), with_debt=true
    """
    try:
        customers, summary = catalog_service.list_customers(
            g.tenant_id,
            search=request.args.get("search"),
            with_debt=request.args.get("with_debt", "").lower() == "true",
        )
        return jsonify({"customers": [c.to_dict() for c in customers], "summary": summary}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list customers")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("/")
@require_tenant
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    """Request body: {"name": "Yaw Mensah", "phone": "024...", "opening_balance_cents": 0}"""
    return _create("customer", catalog_service.create_customer)


@customers_bp.get("/<int:customer_id>")
@require_tenant
def get_customer_route(customer_id: int):
    return _get("customer", catalog_service.get_customer, customer_id)


@customers_bp.put("/<int:customer_id>")
@require_tenant
@require_permission("MANAGE_CUSTOMERS")
def update_customer_route(customer_id: int):
    return _update("customer", catalog_service.update_customer, customer_id)


# Suppliers

@suppliers_bp.get("/")
@require_tenant
def list_suppliers_route():
    """Query: search (name or phone), owed=true"""
    try:
        suppliers, summary = catalog_service.list_suppliers(
            g.tenant_id,
            search=request.args.get("search"),
            owed_only=request.args.get("owed", "").lower() == "true",
        )
        return jsonify({"suppliers": [s.to_dict() for s in suppliers], "summary": summary}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list suppliers")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.post("/")
@require_tenant
@require_permission("MANAGE_SUPPLIERS")
def create_supplier_route():
    return _create("supplier", catalog_service.create_supplier)


@suppliers_bp.get("/<int:supplier_id>")
@require_tenant
def get_supplier_route(supplier_id: int):
    return _get("supplier", catalog_service.get_supplier, supplier_id)


@suppliers_bp.put("/<int:supplier_id>")
@require_tenant
@require_permission("MANAGE_SUPPLIERS")
def update_supplier_route(supplier_id: int):
    return _update("supplier", catalog_service.update_supplier, supplier_id)

# Overview: Flask API routes for the item catalogue.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError, ValidationError
from ..services import catalog_service
from ..decorators import require_permission, require_tenant


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("/")
@require_tenant
@require_permission("VIEW_ITEMS")
def list_items_route():
    """
    List items by name.

    Query: search, low_stock=true (uses LOW_STOCK_THRESHOLD)
    """
    try:
        threshold = None
        if request.args.get("low_stock", "").lower() == "true":
            threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
        items = catalog_service.list_items(g.tenant_id, search=request.args.get("search"), low_stock_threshold=threshold)
        return jsonify({"items": [i.to_dict() for i in items], "count": len(items)}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list items")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.post("/")
@require_tenant
@require_permission("MANAGE_ITEMS")
def create_item_route():
    """Request body: {"name": "Rice 5kg", "cost_price_cents": 6000, "selling_price_cents": 7500, "quantity": 20}"""
    try:
        data = request.get_json(silent=True) or {}
        item = catalog_service.create_item(
            g.tenant_id,
            name=data.get("name"),
            cost_price_cents=data.get("cost_price_cents"),
            selling_price_cents=data.get("selling_price_cents"),
            quantity=data.get("quantity", 0),
            user_id=g.current_user.id,
        )
        return jsonify({"item": item.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.get("/<int:item_id>")
@require_tenant
@require_permission("VIEW_ITEMS")
def get_item_route(item_id: int):
    try:
        item = catalog_service.get_item(g.tenant_id, item_id)
        return jsonify({"item": item.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to fetch item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@items_bp.put("/<int:item_id>")
@require_tenant
@require_permission("MANAGE_ITEMS")
def update_item_route(item_id: int):
    """Request body: any of name, cost_price_cents, selling_price_cents."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        item = catalog_service.update_item(g.tenant_id, item_id, data, user_id=g.current_user.id)
        return jsonify({"item": item.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500

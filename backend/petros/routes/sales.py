# Overview: Flask API routes for sales; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError, ValidationError
from ..services import sales_service
from ..decorators import require_permission, require_tenant
from petros.time_utils import parse_date_range


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("/")
@require_tenant
def list_sales_route():
    """
    List sales newest first.

    Query: customer_id, payment_type (CASH|CREDIT), start, end
    """
    try:
        try:
            start, end = parse_date_range(request.args.get("start"), request.args.get("end"))
        except ValueError:
            raise ValidationError("start/end must be ISO-8601 dates")

        sales, summary = sales_service.list_sales(
            g.tenant_id,
            customer_id=request.args.get("customer_id", type=int),
            payment_type=(request.args.get("payment_type") or "").upper() or None,
            start=start,
            end=end,
        )
        return jsonify({"sales": [s.to_dict(include_lines=True) for s in sales], "summary": summary}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/")
@require_tenant
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Create a sale.

    Request body:
    {
        "customer_id": 3,              (optional, required for credit)
        "paid_amount_cents": 10000,
        "items": [{"item_id": 1, "quantity": 2, "price_cents": 5000}]
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.create_sale(
            g.tenant_id,
            items=data.get("items"),
            paid_amount_cents=data.get("paid_amount_cents", 0),
            customer_id=data.get("customer_id"),
            user_id=g.current_user.id,
        )
        return jsonify({"sale": sale.to_dict(include_lines=True)}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_tenant
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.tenant_id, sale_id)
        return jsonify({"sale": sale.to_dict(include_lines=True)}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to fetch sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:sale_id>")
@require_tenant
@require_permission("VOID_SALES")
def edit_sale_route(sale_id: int):
    """Replace a sale's items, payment and customer (same body as create)."""
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.edit_sale(
            g.tenant_id,
            sale_id,
            items=data.get("items"),
            paid_amount_cents=data.get("paid_amount_cents", 0),
            customer_id=data.get("customer_id"),
            user_id=g.current_user.id,
        )
        return jsonify({"sale": sale.to_dict(include_lines=True)}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to edit sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_tenant
@require_permission("VOID_SALES")
def void_sale_route(sale_id: int):
    try:
        result = sales_service.void_sale(g.tenant_id, sale_id, user_id=g.current_user.id)
        return jsonify({"message": "Sale voided", **result}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500

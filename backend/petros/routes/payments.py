# Overview: Flask API routes for customer and supplier payments.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..services import payment_service
from ..decorators import require_permission, require_tenant


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/customers")
@require_tenant
@require_permission("RECORD_PAYMENTS")
def record_customer_payment_route():
    """
    Request body:
    {
        "customer_id": 4,
        "amount_cents": 2500,
        "method": "CASH" | "MOMO" | "BANK",
        "note": "..."   (optional)
    }

    Returns:
        201: payment plus the customer's previous and new balance
        400: invalid input or amount exceeds balance
        404: customer not found
    """
    try:
        data = request.get_json(silent=True) or {}
        payment = payment_service.record_customer_payment(
            g.tenant_id,
            customer_id=data.get("customer_id"),
            amount_cents=data.get("amount_cents"),
            method=data.get("method") or "CASH",
            note=data.get("note"),
            user_id=g.current_user.id,
        )
        customer = payment.customer
        return jsonify({
            "payment": payment.to_dict(),
            "customer": {
                "id": customer.id,
                "name": customer.name,
                "previous_balance_cents": customer.balance_cents + payment.amount_cents,
                "new_balance_cents": customer.balance_cents,
            },
        }), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record customer payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/customers")
@require_tenant
def list_customer_payments_route():
    payments = payment_service.list_customer_payments(
        g.tenant_id, customer_id=request.args.get("customer_id", type=int)
    )
    return jsonify({"payments": [p.to_dict() for p in payments]}), 200


@payments_bp.post("/suppliers")
@require_tenant
@require_permission("RECORD_PAYMENTS")
def record_supplier_payment_route():
    try:
        data = request.get_json(silent=True) or {}
        payment = payment_service.record_supplier_payment(
            g.tenant_id,
            supplier_id=data.get("supplier_id"),
            amount_cents=data.get("amount_cents"),
            method=data.get("method") or "CASH",
            note=data.get("note"),
            user_id=g.current_user.id,
        )
        supplier = payment.supplier
        return jsonify({
            "payment": payment.to_dict(),
            "supplier": {
                "id": supplier.id,
                "name": supplier.name,
                "previous_balance_cents": supplier.balance_cents + payment.amount_cents,
                "new_balance_cents": supplier.balance_cents,
            },
        }), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record supplier payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/suppliers")
@require_tenant
def list_supplier_payments_route():
    payments = payment_service.list_supplier_payments(
        g.tenant_id, supplier_id=request.args.get("supplier_id", type=int)
    )
    return jsonify({"payments": [p.to_dict() for p in payments]}), 200

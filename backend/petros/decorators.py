# Overview: Tenant-context and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .extensions import db
from .models import Tenant, User
from .permissions import has_permission


def _is_authenticated() -> bool:
    return hasattr(g, "current_user") and hasattr(g, "tenant_id")


def _header_id(name: str) -> int | None:
    raw = request.headers.get(name, "").strip()
    if not raw.isdigit():
        return None
    return int(raw)


def require_tenant(f):
    """
    Establish tenant context for the request.

    Session issuance lives outside this service; the upstream gateway
    forwards the resolved identity as X-Tenant-Id / X-User-Id.

    MULTI-TENANT: Sets
    - g.current_user: the acting User (must belong to the tenant)
    - g.tenant_id: the tenant every query in the request is scoped to
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant_id = _header_id("X-Tenant-Id")
        user_id = _header_id("X-User-Id")
        if tenant_id is None or user_id is None:
            return jsonify({"error": "Authentication required"}), 401

        tenant = db.session.get(Tenant, tenant_id)
        if tenant is None or not tenant.is_active:
            return jsonify({"error": "Invalid tenant context"}), 401

        user = db.session.get(User, user_id)
        if user is None or not user.is_active or user.tenant_id != tenant_id:
            current_app.logger.warning(
                "Rejected request for user %s outside tenant %s on %s", user_id, tenant_id, request.path
            )
            return jsonify({"error": "Invalid tenant context"}), 401

        g.current_user = user
        g.tenant_id = tenant_id
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a permission from the static role map. Use after @require_tenant."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not has_permission(g.current_user.role, permission_code):
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "role": g.current_user.role,
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator

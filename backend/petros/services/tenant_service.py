"""
Tenant scoping helpers.

SECURITY INVARIANTS:
1. Every service call receives an explicit tenant_id
2. Every entity id coming from client input is resolved through these
   helpers before it is read or written
3. An entity owned by another tenant is reported exactly like a missing
   one (404), and the attempt is logged

USAGE:
    customer = require_in_tenant(Customer, customer_id, tenant_id, label="Customer", lock=True)
    items = load_items(tenant_id, [1, 2, 3], lock=True)
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import ItemNotFound, NotFoundError, TenantMismatch, ValidationError
from ..models import Item, Tenant, User, USER_ROLES
from .concurrency import lock_for_update, run_atomic


def _log_cross_tenant_attempt(model, entity_id: int, tenant_id: int) -> None:
    current_app.logger.warning(
        "Cross-tenant reference blocked: %s %s requested by tenant %s",
        model.__tablename__, entity_id, tenant_id,
    )


def require_in_tenant(model, entity_id: int, tenant_id: int, *, label: str | None = None, lock: bool = False):
    """
    Load `model` by id and verify it belongs to `tenant_id`.

    Raises NotFoundError when absent and TenantMismatch (also 404) when the
    row belongs to someone else.
    """
    label = label or model.__name__
    # Only rows inside the tenant are ever locked
    query = db.session.query(model).filter_by(id=entity_id, tenant_id=tenant_id)
    if lock:
        query = lock_for_update(query)
    entity = query.first()
    if entity is not None:
        return entity

    owner = db.session.query(model.tenant_id).filter_by(id=entity_id).scalar()
    if owner is None:
        raise NotFoundError(f"{label} not found", {"id": entity_id})
    _log_cross_tenant_attempt(model, entity_id, tenant_id)
    raise TenantMismatch(f"{label} not found", {"id": entity_id})


def load_items(tenant_id: int, item_ids, *, lock: bool = False) -> dict[int, Item]:
    """
    Fetch every referenced item for the tenant, keyed by id.

    Raises ItemNotFound listing the ids that are missing or foreign.
    """
    wanted = sorted(set(item_ids))
    if not wanted:
        return {}
    # Stable lock order across concurrent procedures
    query = db.session.query(Item).filter(Item.tenant_id == tenant_id, Item.id.in_(wanted)).order_by(Item.id)
    if lock:
        query = lock_for_update(query)
    items = {item.id: item for item in query.all()}
    missing = [item_id for item_id in wanted if item_id not in items]
    if missing:
        raise ItemNotFound("One or more items not found", {"item_ids": missing})
    return items


def create_tenant(name: str, code: str) -> Tenant:
    name = (name or "").strip()
    code = (code or "").strip().lower()
    if not name or not code:
        raise ValidationError("name and code are required")

    def _op():
        if db.session.query(Tenant).filter_by(code=code).first():
            raise ValidationError(f"Tenant code '{code}' already exists")
        tenant = Tenant(name=name, code=code)
        db.session.add(tenant)
        db.session.flush()
        return tenant

    return run_atomic(_op)


def create_user(tenant_id: int, name: str, email: str, role: str = "STAFF") -> User:
    role = (role or "STAFF").strip().upper()
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")
    email = (email or "").strip().lower()
    if not name or not email:
        raise ValidationError("name and email are required")

    def _op():
        tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
        if not tenant:
            raise NotFoundError("Tenant not found", {"id": tenant_id})
        if db.session.query(User).filter_by(email=email).first():
            raise ValidationError(f"User '{email}' already exists")
        user = User(tenant_id=tenant_id, name=name.strip(), email=email, role=role)
        db.session.add(user)
        db.session.flush()
        return user

    return run_atomic(_op)

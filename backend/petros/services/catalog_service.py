"""
Catalogue maintenance: items, customers and suppliers.

Creation sets the opening stock or balance and leaves the same trail the
adjustment procedures leave (a StockAdjustment row for opening stock, a
balance-set audit row for an opening balance), so the drift check in
reporting_service reconciles from day one.

Updates only touch descriptive fields. Stock moves through sales,
purchases, returns and adjustment_service.adjust_stock; balances move
through the ledger procedures and adjustment_service.set_*_balance.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..errors import ConflictError, ValidationError
from ..models import Customer, Item, StockAdjustment, Supplier
from ..validation import parse_cents, parse_id, parse_quantity, parse_text
from .adjustment_service import BALANCE_SET_ACTIONS
from .audit_service import record_audit
from .concurrency import run_atomic
from .tenant_service import load_items, require_in_tenant


OPENING_STOCK_REASON = "Opening stock"

_LOCKED_FIELDS = {
    "item": ("quantity",),
    "customer": ("balance_cents", "balance"),
    "supplier": ("balance_cents", "balance"),
}
_LOCKED_HINTS = {
    "item": "Use stock adjustments",
    "customer": "Use sales, payments or a balance adjustment",
    "supplier": "Use purchases, payments or a balance adjustment",
}


def _reject_locked_fields(kind: str, data: dict) -> None:
    for field in _LOCKED_FIELDS[kind]:
        if field in data:
            raise ValidationError(
                f"Cannot update {field} directly. {_LOCKED_HINTS[kind]}.",
                {"field": field},
            )


def _ensure_unique_name(model, tenant_id: int, name: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(model.id).filter(
        model.tenant_id == tenant_id, func.lower(model.name) == name.lower()
    )
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"A {model.__name__.lower()} named '{name}' already exists", {"name": name})


def _check_prices(cost: int, selling: int) -> None:
    if selling < cost:
        raise ValidationError(
            "Selling price should not be less than cost price",
            {"cost_price_cents": cost, "selling_price_cents": selling},
        )


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

def create_item(
    tenant_id: int,
    *,
    name,
    cost_price_cents,
    selling_price_cents,
    quantity=0,
    user_id: int | None = None,
) -> Item:
    """Create an item; a non-zero opening quantity is booked as an INCREASE adjustment."""
    name = parse_text(name, "name", required=True)
    cost = parse_cents(cost_price_cents, "cost_price_cents")
    selling = parse_cents(selling_price_cents, "selling_price_cents")
    opening = parse_quantity(0 if quantity is None else quantity, "quantity", allow_zero=True)
    _check_prices(cost, selling)

    def _op():
        _ensure_unique_name(Item, tenant_id, name)
        item = Item(
            tenant_id=tenant_id,
            name=name,
            quantity=opening,
            cost_price_cents=cost,
            selling_price_cents=selling,
        )
        db.session.add(item)
        db.session.flush()

        if opening > 0:
            db.session.add(StockAdjustment(
                tenant_id=tenant_id,
                item_id=item.id,
                user_id=user_id,
                type="INCREASE",
                quantity=opening,
                previous_quantity=Decimal("0"),
                new_quantity=opening,
                reason=OPENING_STOCK_REASON,
            ))

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="item.created",
            entity="item",
            entity_id=item.id,
            details={
                "name": name,
                "quantity": str(opening),
                "cost_price_cents": cost,
                "selling_price_cents": selling,
            },
        )
        return item

    return run_atomic(_op)


def update_item(tenant_id: int, item_id, data: dict, *, user_id: int | None = None) -> Item:
    """Rename or reprice an item. `quantity` is rejected."""
    item_id = parse_id(item_id, "item_id")
    data = data or {}
    _reject_locked_fields("item", data)

    changes = {}
    if "name" in data:
        changes["name"] = parse_text(data.get("name"), "name", required=True)
    for field in ("cost_price_cents", "selling_price_cents"):
        if field in data:
            changes[field] = parse_cents(data.get(field), field)
    if not changes:
        raise ValidationError("No updatable fields provided")

    def _op():
        item = load_items(tenant_id, [item_id], lock=True)[item_id]
        if "name" in changes:
            _ensure_unique_name(Item, tenant_id, changes["name"], exclude_id=item.id)
        _check_prices(
            changes.get("cost_price_cents", item.cost_price_cents),
            changes.get("selling_price_cents", item.selling_price_cents),
        )

        previous = {field: getattr(item, field) for field in changes}
        for field, value in changes.items():
            setattr(item, field, value)

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action="item.updated",
            entity="item",
            entity_id=item.id,
            details={"previous": previous, "new": changes},
        )
        return item

    return run_atomic(_op)


def get_item(tenant_id: int, item_id: int) -> Item:
    return load_items(tenant_id, [item_id])[item_id]


def list_items(tenant_id: int, *, search: str | None = None, low_stock_threshold=None) -> list[Item]:
    """Items by name; `low_stock_threshold` keeps only items at or below it."""
    query = db.session.query(Item).filter(Item.tenant_id == tenant_id)
    if search:
        query = query.filter(Item.name.ilike(f"%{search.strip()}%"))
    if low_stock_threshold is not None:
        query = query.filter(Item.quantity <= Decimal(str(low_stock_threshold)))
    return query.order_by(Item.name, Item.id).all()


# ---------------------------------------------------------------------------
# Customers and suppliers
# ---------------------------------------------------------------------------

def _create_counterparty(model, kind: str, tenant_id: int, name, phone, opening_balance_cents, user_id):
    name = parse_text(name, "name", required=True)
    phone = parse_text(phone, "phone", max_length=32)
    opening = parse_cents(opening_balance_cents, "opening_balance_cents", required=False, default=0)

    def _op():
        _ensure_unique_name(model, tenant_id, name)
        entity = model(tenant_id=tenant_id, name=name, phone=phone, balance_cents=opening)
        db.session.add(entity)
        db.session.flush()

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action=f"{kind}.created",
            entity=kind,
            entity_id=entity.id,
            details={"name": name, "phone": phone},
        )
        if opening:
            # Read back by the drift check as a manual balance delta
            record_audit(
                tenant_id=tenant_id,
                user_id=user_id,
                action=BALANCE_SET_ACTIONS[kind],
                entity=kind,
                entity_id=entity.id,
                details={
                    "previous_balance_cents": 0,
                    "new_balance_cents": opening,
                    "delta_cents": opening,
                    "reason": "Opening balance",
                },
            )
        return entity

    return run_atomic(_op)


def _update_counterparty(model, kind: str, tenant_id: int, entity_id, data: dict, user_id):
    entity_id = parse_id(entity_id, f"{kind}_id")
    data = data or {}
    _reject_locked_fields(kind, data)

    changes = {}
    if "name" in data:
        changes["name"] = parse_text(data.get("name"), "name", required=True)
    if "phone" in data:
        changes["phone"] = parse_text(data.get("phone"), "phone", max_length=32)
    if not changes:
        raise ValidationError("No updatable fields provided")

    def _op():
        entity = require_in_tenant(model, entity_id, tenant_id, label=kind.capitalize(), lock=True)
        if "name" in changes:
            _ensure_unique_name(model, tenant_id, changes["name"], exclude_id=entity.id)

        previous = {field: getattr(entity, field) for field in changes}
        for field, value in changes.items():
            setattr(entity, field, value)

        record_audit(
            tenant_id=tenant_id,
            user_id=user_id,
            action=f"{kind}.updated",
            entity=kind,
            entity_id=entity.id,
            details={"previous": previous, "new": changes},
        )
        return entity

    return run_atomic(_op)


def _list_counterparties(model, tenant_id: int, search: str | None, outstanding_only: bool) -> tuple[list, dict]:
    query = db.session.query(model).filter(model.tenant_id == tenant_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(model.name.ilike(pattern) | model.phone.ilike(pattern))
    if outstanding_only:
        query = query.filter(model.balance_cents > 0)
    # Largest balances first, then by name
    entities = query.order_by(model.balance_cents.desc(), model.name, model.id).all()

    outstanding = [e for e in entities if e.balance_cents > 0]
    summary = {
        "total": len(entities),
        "with_balance": len(outstanding),
        "total_balance_cents": sum(e.balance_cents for e in outstanding),
    }
    return entities, summary


def create_customer(tenant_id: int, *, name, phone=None, opening_balance_cents=0, user_id: int | None = None) -> Customer:
    return _create_counterparty(Customer, "customer", tenant_id, name, phone, opening_balance_cents, user_id)


def update_customer(tenant_id: int, customer_id, data: dict, *, user_id: int | None = None) -> Customer:
    """Change a customer's name or phone. Balance fields are rejected."""
    return _update_counterparty(Customer, "customer", tenant_id, customer_id, data, user_id)


def get_customer(tenant_id: int, customer_id: int) -> Customer:
    return require_in_tenant(Customer, customer_id, tenant_id, label="Customer")


def list_customers(tenant_id: int, *, search: str | None = None, with_debt: bool = False) -> tuple[list[Customer], dict]:
    return _list_counterparties(Customer, tenant_id, search, with_debt)


def create_supplier(tenant_id: int, *, name, phone=None, opening_balance_cents=0, user_id: int | None = None) -> Supplier:
    return _create_counterparty(Supplier, "supplier", tenant_id, name, phone, opening_balance_cents, user_id)


def update_supplier(tenant_id: int, supplier_id, data: dict, *, user_id: int | None = None) -> Supplier:
    return _update_counterparty(Supplier, "supplier", tenant_id, supplier_id, data, user_id)


def get_supplier(tenant_id: int, supplier_id: int) -> Supplier:
    return require_in_tenant(Supplier, supplier_id, tenant_id, label="Supplier")


def list_suppliers(tenant_id: int, *, search: str | None = None, owed_only: bool = False) -> tuple[list[Supplier], dict]:
    return _list_counterparties(Supplier, tenant_id, search, owed_only)

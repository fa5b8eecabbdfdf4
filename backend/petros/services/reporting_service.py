# Overview: Read-only aggregates over sales, payments, purchases, stock and balances.

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    AuditLog,
    Customer,
    CustomerPayment,
    CustomerReturn,
    Item,
    PAYMENT_METHODS,
    Purchase,
    Sale,
    SaleItem,
    StockAdjustment,
    Supplier,
    SupplierPayment,
    SupplierReturn,
)
from ..validation import QUANTITY_PLACES, decimal_to_json
from petros.time_utils import end_of_day as day_end, start_of_day, to_utc_z, trailing_days, utcnow
from .adjustment_service import BALANCE_SET_ACTIONS
from .ledger_primitives import line_total_cents


def _window(query, column, start: datetime | None, end: datetime | None):
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query


def _period(start: datetime | None, end: datetime | None) -> dict:
    return {"start": to_utc_z(start), "end": to_utc_z(end)}


def _low_stock_threshold(threshold) -> Decimal:
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    return Decimal(str(threshold))


def _margin(profit: int, revenue: int) -> float:
    if revenue <= 0:
        return 0.0
    return round(profit / revenue * 100, 2)


def _sales_in(tenant_id: int, start, end) -> list[Sale]:
    query = db.session.query(Sale).filter(Sale.tenant_id == tenant_id)
    return _window(query, Sale.created_at, start, end).order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def _cost_of_goods(sales: list[Sale]) -> int:
    """Cost at the item's current cost price, rounded per line."""
    return sum(
        line_total_cents(line.item.cost_price_cents, line.quantity)
        for sale in sales
        for line in sale.lines
    )


def daily_revenue(tenant_id: int, *, days: int = 7, today: date | None = None) -> list[dict]:
    """
    Trailing `days` calendar days ending today, oldest first.

    Days without sales appear with revenue 0.
    """
    today = today or utcnow().date()
    buckets = {day: 0 for day in trailing_days(today, days)}
    if not buckets:
        return []

    rows = (
        db.session.query(Sale.created_at, Sale.total_amount_cents)
        .filter(
            Sale.tenant_id == tenant_id,
            Sale.created_at >= start_of_day(min(buckets)),
            Sale.created_at <= day_end(today),
        )
        .all()
    )
    for created_at, amount in rows:
        day = created_at.date()
        if day in buckets:
            buckets[day] += int(amount)

    return [
        {"date": day.isoformat(), "label": day.strftime("%a %d"), "revenue_cents": revenue}
        for day, revenue in buckets.items()
    ]


def payment_method_totals(tenant_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    """Customer payments per method; every method present, zero-filled."""
    query = db.session.query(
        CustomerPayment.method,
        func.coalesce(func.sum(CustomerPayment.amount_cents), 0),
    ).filter(CustomerPayment.tenant_id == tenant_id)
    rows = _window(query, CustomerPayment.created_at, start, end).group_by(CustomerPayment.method).all()

    totals = {method: 0 for method in PAYMENT_METHODS}
    for method, amount in rows:
        totals[method] = totals.get(method, 0) + int(amount)
    return totals


def top_items(
    tenant_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    limit: int = 5,
    rank_by: str = "revenue",
) -> list[dict]:
    """
    Best sellers, highest first, ranked by `revenue` or `quantity`.

    Ties keep the order in which items were first sold.
    """
    if rank_by not in ("revenue", "quantity"):
        raise ValueError(f"Unknown ranking: {rank_by}")
    query = (
        db.session.query(
            Item.id,
            Item.name,
            func.coalesce(func.sum(SaleItem.line_total_cents), 0).label("revenue"),
            func.coalesce(func.sum(SaleItem.quantity), 0).label("quantity"),
            func.min(SaleItem.id).label("first_seen"),
        )
        .join(SaleItem, SaleItem.item_id == Item.id)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.tenant_id == tenant_id)
    )
    rows = _window(query, Sale.created_at, start, end).group_by(Item.id, Item.name).all()

    rows = sorted(rows, key=lambda row: row.first_seen)
    # SQLite sums Numeric columns as floats
    ranked = sorted(rows, key=lambda row: -Decimal(str(getattr(row, rank_by))).quantize(QUANTITY_PLACES))[:limit]
    return [
        {
            "item_id": row.id,
            "name": row.name,
            "revenue_cents": int(row.revenue),
            "quantity": decimal_to_json(Decimal(str(row.quantity)).quantize(QUANTITY_PLACES)),
        }
        for row in ranked
    ]


def _outstanding(model, tenant_id: int) -> list:
    return (
        db.session.query(model)
        .filter(model.tenant_id == tenant_id, model.balance_cents > 0)
        .order_by(model.balance_cents.desc(), model.id)
        .all()
    )


def debtors(tenant_id: int) -> dict:
    customers = _outstanding(Customer, tenant_id)
    total = sum(c.balance_cents for c in customers)
    return {
        "summary": {
            "total_debtors": len(customers),
            "total_debt_cents": total,
            "average_debt_cents": total // len(customers) if customers else 0,
        },
        "debtors": [c.to_dict() for c in customers],
    }


def creditors(tenant_id: int) -> dict:
    suppliers = _outstanding(Supplier, tenant_id)
    total = sum(s.balance_cents for s in suppliers)
    return {
        "summary": {
            "total_creditors": len(suppliers),
            "total_credit_cents": total,
            "average_credit_cents": total // len(suppliers) if suppliers else 0,
        },
        "creditors": [s.to_dict() for s in suppliers],
    }


def profit_report(tenant_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    sales = _sales_in(tenant_id, start, end)
    revenue = sum(s.total_amount_cents for s in sales)
    cost = _cost_of_goods(sales)
    profit = revenue - cost
    return {
        "period": _period(start, end),
        "summary": {
            "total_revenue_cents": revenue,
            "total_cost_cents": cost,
            "gross_profit_cents": profit,
            "profit_margin": _margin(profit, revenue),
            "total_transactions": len(sales),
            "average_profit_cents": profit // len(sales) if sales else 0,
        },
    }


def sales_report(tenant_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    sales = _sales_in(tenant_id, start, end)
    total = sum(s.total_amount_cents for s in sales)
    paid = sum(s.paid_amount_cents for s in sales)
    return {
        "period": _period(start, end),
        "summary": {
            "total_transactions": len(sales),
            "total_sales_cents": total,
            "total_paid_cents": paid,
            "total_credit_cents": total - paid,
            "cash_sales": sum(1 for s in sales if s.payment_type == "CASH"),
            "credit_sales": sum(1 for s in sales if s.payment_type == "CREDIT"),
            "average_transaction_cents": total // len(sales) if sales else 0,
        },
        "sales": [s.to_dict(include_lines=True) for s in sales],
    }


def purchases_report(tenant_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    query = db.session.query(Purchase).filter(Purchase.tenant_id == tenant_id)
    purchases = _window(query, Purchase.created_at, start, end).order_by(Purchase.created_at.desc(), Purchase.id.desc()).all()
    total = sum(p.total_amount_cents for p in purchases)
    paid = sum(p.paid_amount_cents for p in purchases)
    return {
        "period": _period(start, end),
        "summary": {
            "total_transactions": len(purchases),
            "total_purchases_cents": total,
            "total_paid_cents": paid,
            "total_credit_cents": total - paid,
            "average_transaction_cents": total // len(purchases) if purchases else 0,
        },
        "purchases": [p.to_dict(include_lines=True) for p in purchases],
    }


def inventory_report(tenant_id: int, *, low_stock_threshold=None) -> dict:
    threshold = _low_stock_threshold(low_stock_threshold)
    items = db.session.query(Item).filter(Item.tenant_id == tenant_id).order_by(Item.name, Item.id).all()

    stock_value = sum(line_total_cents(i.cost_price_cents, i.quantity) for i in items)
    potential_revenue = sum(line_total_cents(i.selling_price_cents, i.quantity) for i in items)
    low_stock = [i for i in items if i.quantity <= threshold]
    out_of_stock = [i for i in items if i.quantity == 0]
    return {
        "summary": {
            "total_items": len(items),
            "total_stock_value_cents": stock_value,
            "potential_revenue_cents": potential_revenue,
            "potential_profit_cents": potential_revenue - stock_value,
            "low_stock_count": len(low_stock),
            "out_of_stock_count": len(out_of_stock),
        },
        "items": [i.to_dict() for i in items],
        "low_stock_items": [i.to_dict() for i in low_stock],
        "out_of_stock_items": [i.to_dict() for i in out_of_stock],
    }


def dashboard(tenant_id: int, *, today: date | None = None, days: int | None = None) -> dict:
    today = today or utcnow().date()
    if days is None:
        days = int(current_app.config.get("DASHBOARD_WINDOW_DAYS", 7))
    window = trailing_days(today, days)
    start, end = start_of_day(window[0]), day_end(today)

    today_revenue = (
        db.session.query(func.coalesce(func.sum(Sale.total_amount_cents), 0))
        .filter(Sale.tenant_id == tenant_id, Sale.created_at >= start_of_day(today), Sale.created_at <= end)
        .scalar()
    )
    items = db.session.query(Item).filter(Item.tenant_id == tenant_id).all()
    outstanding = (
        db.session.query(func.coalesce(func.sum(Customer.balance_cents), 0))
        .filter(Customer.tenant_id == tenant_id, Customer.balance_cents > 0)
        .scalar()
    )

    return {
        "sales_by_day": daily_revenue(tenant_id, days=days, today=today),
        "payment_method_split": payment_method_totals(tenant_id, start, end),
        "top_items": top_items(tenant_id, start, end),
        "kpis": {
            "today_revenue_cents": int(today_revenue or 0),
            "total_customers": db.session.query(Customer).filter(Customer.tenant_id == tenant_id).count(),
            "stock_value_cents": sum(line_total_cents(i.cost_price_cents, i.quantity) for i in items),
            "outstanding_debt_cents": int(outstanding or 0),
        },
    }


def end_of_day(tenant_id: int, *, day: date | None = None, include_profit: bool = False, low_stock_threshold=None) -> dict:
    """
    Close-of-business summary for one calendar day.

    Profit figures are only included when `include_profit` is set (callers
    pass the view_profit_margins permission).
    """
    day = day or utcnow().date()
    start, end = start_of_day(day), day_end(day)
    threshold = _low_stock_threshold(low_stock_threshold)

    sales = _sales_in(tenant_id, start, end)
    purchases = _window(
        db.session.query(Purchase).filter(Purchase.tenant_id == tenant_id), Purchase.created_at, start, end
    ).all()
    customer_payments = _window(
        db.session.query(CustomerPayment).filter(CustomerPayment.tenant_id == tenant_id),
        CustomerPayment.created_at, start, end,
    ).all()
    supplier_payments = _window(
        db.session.query(SupplierPayment).filter(SupplierPayment.tenant_id == tenant_id),
        SupplierPayment.created_at, start, end,
    ).all()
    adjustment_count = _window(
        db.session.query(StockAdjustment).filter(StockAdjustment.tenant_id == tenant_id),
        StockAdjustment.created_at, start, end,
    ).count()

    items = db.session.query(Item).filter(Item.tenant_id == tenant_id).order_by(Item.quantity, Item.id).all()
    low_stock = [i for i in items if 0 < i.quantity <= threshold]
    out_of_stock = [i for i in items if i.quantity == 0]

    revenue = sum(s.total_amount_cents for s in sales)
    cash_sales = [s for s in sales if s.payment_type == "CASH"]
    credit_sales = [s for s in sales if s.payment_type == "CREDIT"]
    new_credit = sum(s.credit_amount_cents for s in credit_sales)
    by_method = {method: 0 for method in PAYMENT_METHODS}
    for payment in customer_payments:
        by_method[payment.method] = by_method.get(payment.method, 0) + payment.amount_cents
    collected = sum(by_method.values())

    debt = debtors(tenant_id)
    report = {
        "date": day.isoformat(),
        "sales_summary": {
            "total_count": len(sales),
            "total_revenue_cents": revenue,
            "cash_sales_count": len(cash_sales),
            "cash_sales_amount_cents": sum(s.total_amount_cents for s in cash_sales),
            "credit_sales_count": len(credit_sales),
            "credit_sales_amount_cents": sum(s.total_amount_cents for s in credit_sales),
            "average_sale_value_cents": revenue // len(sales) if sales else 0,
            "top_selling_items": top_items(tenant_id, start, end, rank_by="quantity"),
        },
        "cash_and_payments": {
            "cash_sales_received_cents": sum(s.paid_amount_cents for s in cash_sales),
            "customer_payments_by_method": by_method,
            "total_customer_payments_cents": collected,
            "new_credit_issued_cents": new_credit,
        },
        "purchases_summary": {
            "total_count": len(purchases),
            "total_amount_cents": sum(p.total_amount_cents for p in purchases),
            "cash_purchases_count": sum(1 for p in purchases if p.payment_type == "CASH"),
            "credit_purchases_count": sum(1 for p in purchases if p.payment_type == "CREDIT"),
            "total_supplier_payments_cents": sum(p.amount_cents for p in supplier_payments),
        },
        "inventory_alerts": {
            "low_stock_items": [i.to_dict() for i in low_stock],
            "low_stock_count": len(low_stock),
            "out_of_stock_items": [i.to_dict() for i in out_of_stock],
            "out_of_stock_count": len(out_of_stock),
            "stock_adjustments_count": adjustment_count,
        },
        "credit_and_debt": {
            "total_outstanding_debt_cents": debt["summary"]["total_debt_cents"],
            "total_debtors_count": debt["summary"]["total_debtors"],
            "new_debt_today_cents": new_credit,
            "debt_collected_today_cents": collected,
            "top_debtors": debt["debtors"][:5],
        },
    }

    if include_profit:
        cost = _cost_of_goods(sales)
        report["profit_summary"] = {
            "total_revenue_cents": revenue,
            "total_cogs_cents": cost,
            "gross_profit_cents": revenue - cost,
            "profit_margin": _margin(revenue - cost, revenue),
        }
    return report


# ---------------------------------------------------------------------------
# Balance drift: recompute cached balances from their transaction history
# ---------------------------------------------------------------------------

def _grouped_sum(column, group_column, *criteria) -> dict[int, int]:
    rows = (
        db.session.query(group_column, func.coalesce(func.sum(column), 0))
        .filter(*criteria)
        .group_by(group_column)
        .all()
    )
    return {key: int(total) for key, total in rows if key is not None}


def _manual_deltas(tenant_id: int, kind: str) -> dict[int, int]:
    deltas: dict[int, int] = {}
    rows = (
        db.session.query(AuditLog.entity_id, AuditLog.details)
        .filter(AuditLog.tenant_id == tenant_id, AuditLog.action == BALANCE_SET_ACTIONS[kind])
        .all()
    )
    for entity_id, details in rows:
        delta = json.loads(details or "{}").get("delta_cents", 0)
        deltas[entity_id] = deltas.get(entity_id, 0) + int(delta)
    return deltas


def _drift(entities, credit, payments, returns, manual) -> list[dict]:
    mismatches = []
    for entity in entities:
        expected = (
            credit.get(entity.id, 0)
            - payments.get(entity.id, 0)
            - returns.get(entity.id, 0)
            + manual.get(entity.id, 0)
        )
        if expected != entity.balance_cents:
            mismatches.append({
                "id": entity.id,
                "name": entity.name,
                "balance_cents": entity.balance_cents,
                "expected_cents": expected,
                "drift_cents": entity.balance_cents - expected,
            })
    return mismatches


def customer_balance_drift(tenant_id: int) -> list[dict]:
    """
    Customers whose cached balance differs from
    credit sales - payments - return adjustments + manual overrides.
    """
    customers = db.session.query(Customer).filter(Customer.tenant_id == tenant_id).order_by(Customer.id).all()
    credit = _grouped_sum(
        Sale.total_amount_cents - Sale.paid_amount_cents, Sale.customer_id, Sale.tenant_id == tenant_id
    )
    payments = _grouped_sum(
        CustomerPayment.amount_cents, CustomerPayment.customer_id, CustomerPayment.tenant_id == tenant_id
    )
    returns = _grouped_sum(
        CustomerReturn.balance_adjustment_cents, CustomerReturn.customer_id, CustomerReturn.tenant_id == tenant_id
    )
    return _drift(customers, credit, payments, returns, _manual_deltas(tenant_id, "customer"))


def supplier_balance_drift(tenant_id: int) -> list[dict]:
    suppliers = db.session.query(Supplier).filter(Supplier.tenant_id == tenant_id).order_by(Supplier.id).all()
    credit = _grouped_sum(
        Purchase.total_amount_cents - Purchase.paid_amount_cents, Purchase.supplier_id, Purchase.tenant_id == tenant_id
    )
    payments = _grouped_sum(
        SupplierPayment.amount_cents, SupplierPayment.supplier_id, SupplierPayment.tenant_id == tenant_id
    )
    returns = _grouped_sum(
        SupplierReturn.balance_adjustment_cents, SupplierReturn.supplier_id, SupplierReturn.tenant_id == tenant_id
    )
    return _drift(suppliers, credit, payments, returns, _manual_deltas(tenant_id, "supplier"))

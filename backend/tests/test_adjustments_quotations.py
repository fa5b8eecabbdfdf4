# Overview: Pytest coverage for manual adjustments, expenses and quotations.

from decimal import Decimal

import pytest

from petros.errors import InsufficientStock, StateError, ValidationError
from petros.models import AuditLog, Customer, Item, Quotation, Sale, StockAdjustment
from petros.services import adjustment_service, expense_service, quotation_service


def _reload(db_session, model, pk):
    db_session.expire_all()
    return db_session.get(model, pk)


class TestStockAdjustments:

    def test_add_remove_set(self, db_session, tenant_a, item):
        adjustment_service.adjust_stock(tenant_a.id, item.id, mode="ADD", quantity=5, reason="Found in store")
        adjustment_service.adjust_stock(tenant_a.id, item.id, mode="REMOVE", quantity="2.5")
        last = adjustment_service.adjust_stock(tenant_a.id, item.id, mode="SET", quantity=0)

        assert last.type == "DECREASE"
        assert last.previous_quantity == Decimal("12.5")
        assert _reload(db_session, Item, item.id).quantity == Decimal("0")
        assert db_session.query(StockAdjustment).count() == 3

    def test_remove_below_zero_refused(self, db_session, tenant_a, item):
        with pytest.raises(InsufficientStock):
            adjustment_service.adjust_stock(tenant_a.id, item.id, mode="REMOVE", quantity=11)
        assert db_session.query(StockAdjustment).count() == 0

    def test_bulk_reports_row_errors(self, db_session, tenant_a, item):
        result = adjustment_service.adjust_stock_bulk(tenant_a.id, [
            {"item_id": item.id, "type": "ADD", "quantity": 1},
            {"item_id": 99999, "type": "ADD", "quantity": 1},
            {"item_id": item.id, "type": "MULTIPLY", "quantity": 1},
        ])

        assert result["updated"] == 1
        assert result["skipped"] == 2
        assert result["errors"][0].startswith("Row 2:")
        assert _reload(db_session, Item, item.id).quantity == Decimal("11")


class TestBalanceOverrides:

    def test_override_is_audited(self, db_session, tenant_a, owner, customer):
        entity, previous = adjustment_service.set_customer_balance(
            tenant_a.id, customer.id, 1500, reason="Migrated ledger", user_id=owner.id
        )

        assert previous == 0
        assert entity.balance_cents == 1500
        entry = db_session.query(AuditLog).filter_by(action="customer.balance_set").one()
        assert '"delta_cents": 1500' in entry.details

    def test_bulk_override(self, db_session, tenant_a, customer):
        result = adjustment_service.set_customer_balances(tenant_a.id, [
            {"customer_id": customer.id, "balance_cents": 200},
            {"customer_id": customer.id, "balance_cents": "2.50"},
        ])
        assert result["updated"] == 1
        assert result["skipped"] == 1
        assert _reload(db_session, Customer, customer.id).balance_cents == 200


class TestExpenses:

    def test_summary_by_category(self, db_session, tenant_a):
        expense_service.record_expense(tenant_a.id, amount_cents=300, category="RENT")
        expense_service.record_expense(tenant_a.id, amount_cents=50, category="TRANSPORT")
        expense_service.record_expense(tenant_a.id, amount_cents=25, category="TRANSPORT")

        expenses, summary = expense_service.list_expenses(tenant_a.id)

        assert len(expenses) == 3
        assert summary["by_category"]["TRANSPORT"] == 75
        assert expense_service.total_expenses(tenant_a.id) == 375

    def test_unknown_category_refused(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            expense_service.record_expense(tenant_a.id, amount_cents=10, category="BRIBES")


class TestQuotations:

    def test_convert_runs_full_sale(self, db_session, tenant_a, item, customer):
        quotation = quotation_service.create_quotation(
            tenant_a.id,
            customer_id=customer.id,
            items=[{"item_id": item.id, "quantity": 3, "price_cents": 90}],
        )
        assert quotation.total_amount_cents == 270
        assert _reload(db_session, Item, item.id).quantity == Decimal("10")

        result = quotation_service.convert_quotation(tenant_a.id, quotation.id, paid_amount_cents=70)

        sale = _reload(db_session, Sale, result["sale_id"])
        assert sale.quotation_id == quotation.id
        assert sale.total_amount_cents == 270
        assert db_session.get(Quotation, quotation.id).status == "ACCEPTED"
        assert db_session.get(Item, item.id).quantity == Decimal("7")
        assert db_session.get(Customer, customer.id).balance_cents == 200

    def test_rejected_quotation_cannot_convert(self, db_session, tenant_a, item):
        quotation = quotation_service.create_quotation(
            tenant_a.id, items=[{"item_id": item.id, "quantity": 1}]
        )
        quotation_service.update_quotation_status(tenant_a.id, quotation.id, "REJECTED")

        with pytest.raises(StateError):
            quotation_service.convert_quotation(tenant_a.id, quotation.id)
        assert db_session.query(Sale).count() == 0

    def test_conversion_short_on_stock_keeps_quotation_open(self, db_session, tenant_a, item):
        quotation = quotation_service.create_quotation(
            tenant_a.id, items=[{"item_id": item.id, "quantity": 12}]
        )

        with pytest.raises(InsufficientStock):
            quotation_service.convert_quotation(tenant_a.id, quotation.id)
        assert _reload(db_session, Quotation, quotation.id).status == "DRAFT"

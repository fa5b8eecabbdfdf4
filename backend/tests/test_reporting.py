# Overview: Pytest coverage for reports and the balance drift check.

from datetime import timedelta

from petros.extensions import db
from petros.models import Customer
from petros.services import (
    adjustment_service,
    payment_service,
    reporting_service,
    return_service,
    sales_service,
)
from petros.time_utils import utcnow


class TestRevenueReports:

    def test_daily_revenue_zero_fills(self, db_session, tenant_a, item):
        sales_service.create_sale(
            tenant_a.id, items=[{"item_id": item.id, "quantity": 2}], paid_amount_cents=200
        )
        today = utcnow().date()

        rows = reporting_service.daily_revenue(tenant_a.id, days=7, today=today)

        assert len(rows) == 7
        assert rows[-1]["date"] == today.isoformat()
        assert rows[-1]["revenue_cents"] == 200
        assert rows[0]["date"] == (today - timedelta(days=6)).isoformat()
        assert all(r["revenue_cents"] == 0 for r in rows[:-1])

    def test_profit_margin_uses_cost_price(self, db_session, tenant_a, item):
        sales_service.create_sale(
            tenant_a.id, items=[{"item_id": item.id, "quantity": 4}], paid_amount_cents=400
        )

        summary = reporting_service.profit_report(tenant_a.id)["summary"]

        assert summary["total_revenue_cents"] == 400
        assert summary["total_cost_cents"] == 240
        assert summary["gross_profit_cents"] == 160
        assert summary["profit_margin"] == 40.0

    def test_margin_zero_without_revenue(self, db_session, tenant_a):
        summary = reporting_service.profit_report(tenant_a.id)["summary"]
        assert summary["profit_margin"] == 0
        assert summary["average_profit_cents"] == 0

    def test_top_items_ranked_by_revenue(self, db_session, tenant_a, item, second_item):
        sales_service.create_sale(
            tenant_a.id,
            items=[
                {"item_id": item.id, "quantity": 1},
                {"item_id": second_item.id, "quantity": 2},
            ],
            paid_amount_cents=600,
        )

        ranked = reporting_service.top_items(tenant_a.id)

        assert [r["name"] for r in ranked] == ["Cooking Oil", "Rice 5kg"]
        assert ranked[0]["quantity"] == "2"

    def test_top_items_ties_keep_first_sold_order(self, db_session, tenant_a, item, second_item):
        sales_service.create_sale(
            tenant_a.id, items=[{"item_id": item.id, "quantity": 2}], paid_amount_cents=200
        )
        sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": second_item.id, "quantity": 2, "price_cents": 100}],
            paid_amount_cents=200,
        )

        ranked = reporting_service.top_items(tenant_a.id)

        assert [r["name"] for r in ranked] == ["Rice 5kg", "Cooking Oil"]
        assert [r["revenue_cents"] for r in ranked] == [200, 200]

    def test_end_of_day_ranks_best_sellers_by_quantity(self, db_session, tenant_a, item, second_item):
        sales_service.create_sale(
            tenant_a.id,
            items=[
                {"item_id": item.id, "quantity": 3},
                {"item_id": second_item.id, "quantity": 2},
            ],
            paid_amount_cents=800,
        )

        by_revenue = reporting_service.top_items(tenant_a.id)
        best_sellers = reporting_service.end_of_day(tenant_a.id)["sales_summary"]["top_selling_items"]

        assert [r["name"] for r in by_revenue] == ["Cooking Oil", "Rice 5kg"]
        assert [r["name"] for r in best_sellers] == ["Rice 5kg", "Cooking Oil"]

    def test_end_of_day_hides_profit_by_default(self, db_session, tenant_a, item):
        sales_service.create_sale(
            tenant_a.id, items=[{"item_id": item.id, "quantity": 9}], paid_amount_cents=900
        )

        report = reporting_service.end_of_day(tenant_a.id)
        assert "profit_summary" not in report
        assert report["sales_summary"]["total_revenue_cents"] == 900
        assert report["inventory_alerts"]["low_stock_count"] == 1

        with_profit = reporting_service.end_of_day(tenant_a.id, include_profit=True)
        assert with_profit["profit_summary"]["gross_profit_cents"] == 360

    def test_debtors_only_positive_balances(self, db_session, tenant_a, item, customer):
        sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 1}],
            paid_amount_cents=0,
            customer_id=customer.id,
        )
        db_session.add(Customer(tenant_id=tenant_a.id, name="Paid Up", balance_cents=0))
        db_session.commit()

        report = reporting_service.debtors(tenant_a.id)
        assert report["summary"]["total_debtors"] == 1
        assert report["summary"]["total_debt_cents"] == 100


class TestBalanceDrift:

    def test_history_reconciles(self, db_session, tenant_a, item, customer):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 4}],
            paid_amount_cents=100,
            customer_id=customer.id,
        )
        payment_service.record_customer_payment(tenant_a.id, customer_id=customer.id, amount_cents=250)
        return_service.process_customer_return(
            tenant_a.id, sale_id=sale.id, item_id=item.id, quantity=2, type="CASH", amount_cents=200
        )
        adjustment_service.set_customer_balance(tenant_a.id, customer.id, 500, reason="Opening balance")

        assert reporting_service.customer_balance_drift(tenant_a.id) == []

    def test_direct_write_detected(self, db_session, tenant_a, item, customer):
        sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 2}],
            paid_amount_cents=0,
            customer_id=customer.id,
        )
        db_session.expire_all()
        tampered = db.session.get(Customer, customer.id)
        tampered.balance_cents = 999
        db_session.commit()

        drift = reporting_service.customer_balance_drift(tenant_a.id)

        assert drift == [{
            "id": customer.id,
            "name": "Yaw Mensah",
            "balance_cents": 999,
            "expected_cents": 200,
            "drift_cents": 799,
        }]

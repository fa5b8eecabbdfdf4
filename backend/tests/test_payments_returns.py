# Overview: Pytest coverage for customer/supplier payments and returns.

from decimal import Decimal

import pytest

from petros.errors import InsufficientStock, OverLimit, StateError, ValidationError
from petros.models import Customer, CustomerReturn, Item, Supplier
from petros.services import (
    payment_service,
    purchase_service,
    return_service,
    sales_service,
)


def _reload(db_session, model, pk):
    db_session.expire_all()
    return db_session.get(model, pk)


def _credit_sale(tenant_a, item, customer, quantity=4, paid=100):
    return sales_service.create_sale(
        tenant_a.id,
        items=[{"item_id": item.id, "quantity": quantity, "price_cents": 100}],
        paid_amount_cents=paid,
        customer_id=customer.id,
    )


class TestPayments:

    def test_customer_payment_reduces_balance(self, db_session, tenant_a, item, customer):
        _credit_sale(tenant_a, item, customer)

        payment = payment_service.record_customer_payment(
            tenant_a.id, customer_id=customer.id, amount_cents=200, method="MOMO"
        )

        assert payment.method == "MOMO"
        assert _reload(db_session, Customer, customer.id).balance_cents == 100

    def test_payment_over_balance_refused(self, db_session, tenant_a, item, customer):
        _credit_sale(tenant_a, item, customer)

        with pytest.raises(OverLimit) as exc:
            payment_service.record_customer_payment(tenant_a.id, customer_id=customer.id, amount_cents=301)

        assert exc.value.details == {"balance_cents": 300, "amount_cents": 301}
        assert _reload(db_session, Customer, customer.id).balance_cents == 300
        assert payment_service.list_customer_payments(tenant_a.id) == []

    def test_zero_payment_refused(self, db_session, tenant_a, customer):
        with pytest.raises(ValidationError):
            payment_service.record_customer_payment(tenant_a.id, customer_id=customer.id, amount_cents=0)

    def test_unknown_method_refused(self, db_session, tenant_a, customer):
        with pytest.raises(ValidationError):
            payment_service.record_customer_payment(
                tenant_a.id, customer_id=customer.id, amount_cents=10, method="CHEQUE"
            )

    def test_supplier_payment(self, db_session, tenant_a, item, supplier):
        purchase_service.create_purchase(
            tenant_a.id,
            supplier_id=supplier.id,
            items=[{"item_id": item.id, "quantity": 5, "cost_price_cents": 60}],
            paid_amount_cents=0,
        )
        payment_service.record_supplier_payment(tenant_a.id, supplier_id=supplier.id, amount_cents=300)
        assert _reload(db_session, Supplier, supplier.id).balance_cents == 0


class TestCustomerReturns:

    def test_cash_return_clamps_to_balance(self, db_session, tenant_a, item, customer):
        sale = _credit_sale(tenant_a, item, customer)
        payment_service.record_customer_payment(tenant_a.id, customer_id=customer.id, amount_cents=250)
        assert _reload(db_session, Customer, customer.id).balance_cents == 50

        record = return_service.process_customer_return(
            tenant_a.id,
            sale_id=sale.id,
            item_id=item.id,
            quantity=2,
            type="CASH",
            amount_cents=200,
        )

        assert record.balance_adjustment_cents == 50
        assert _reload(db_session, Customer, customer.id).balance_cents == 0
        assert db_session.get(Item, item.id).quantity == Decimal("8")

    def test_credit_return_can_go_negative(self, db_session, tenant_a, item, customer):
        sale = _credit_sale(tenant_a, item, customer, paid=400)

        return_service.process_customer_return(
            tenant_a.id,
            sale_id=sale.id,
            item_id=item.id,
            quantity=1,
            type="CREDIT",
            amount_cents=100,
        )
        assert _reload(db_session, Customer, customer.id).balance_cents == -100

    def test_exchange_leaves_balance(self, db_session, tenant_a, item, customer):
        sale = _credit_sale(tenant_a, item, customer)
        return_service.process_customer_return(
            tenant_a.id, sale_id=sale.id, item_id=item.id, quantity=1, type="EXCHANGE", amount_cents=0
        )
        assert _reload(db_session, Customer, customer.id).balance_cents == 300
        assert db_session.get(Item, item.id).quantity == Decimal("7")

    def test_cumulative_quantity_capped(self, db_session, tenant_a, item, customer):
        sale = _credit_sale(tenant_a, item, customer)
        return_service.process_customer_return(
            tenant_a.id, sale_id=sale.id, item_id=item.id, quantity=3, type="EXCHANGE", amount_cents=0
        )

        with pytest.raises(ValidationError):
            return_service.process_customer_return(
                tenant_a.id, sale_id=sale.id, item_id=item.id, quantity=2, type="EXCHANGE", amount_cents=0
            )
        assert db_session.query(CustomerReturn).count() == 1

    def test_item_must_be_on_sale(self, db_session, tenant_a, item, second_item, customer):
        sale = _credit_sale(tenant_a, item, customer)
        with pytest.raises(ValidationError):
            return_service.process_customer_return(
                tenant_a.id, sale_id=sale.id, item_id=second_item.id, quantity=1, type="CASH", amount_cents=0
            )

    def test_returned_sale_cannot_be_voided(self, db_session, tenant_a, item, customer):
        sale = _credit_sale(tenant_a, item, customer)
        return_service.process_customer_return(
            tenant_a.id, sale_id=sale.id, item_id=item.id, quantity=1, type="EXCHANGE", amount_cents=0
        )
        with pytest.raises(StateError):
            sales_service.void_sale(tenant_a.id, sale.id)


class TestSupplierReturns:

    def test_supplier_return_removes_stock(self, db_session, tenant_a, item, supplier):
        purchase = purchase_service.create_purchase(
            tenant_a.id,
            supplier_id=supplier.id,
            items=[{"item_id": item.id, "quantity": 5, "cost_price_cents": 60}],
            paid_amount_cents=0,
        )

        record = return_service.process_supplier_return(
            tenant_a.id,
            purchase_id=purchase.id,
            item_id=item.id,
            quantity=2,
            type="CREDIT",
            amount_cents=120,
        )

        assert record.balance_adjustment_cents == 120
        assert _reload(db_session, Item, item.id).quantity == Decimal("13")
        assert db_session.get(Supplier, supplier.id).balance_cents == 180

    def test_supplier_return_needs_stock(self, db_session, tenant_a, item, supplier):
        purchase = purchase_service.create_purchase(
            tenant_a.id,
            supplier_id=supplier.id,
            items=[{"item_id": item.id, "quantity": 5, "cost_price_cents": 60}],
            paid_amount_cents=300,
        )
        sales_service.create_sale(
            tenant_a.id, items=[{"item_id": item.id, "quantity": 14}], paid_amount_cents=1400
        )

        with pytest.raises(InsufficientStock):
            return_service.process_supplier_return(
                tenant_a.id, purchase_id=purchase.id, item_id=item.id, quantity=2, type="CASH", amount_cents=0
            )
        assert _reload(db_session, Item, item.id).quantity == Decimal("1")

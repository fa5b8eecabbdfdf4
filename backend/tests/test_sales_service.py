# Overview: Pytest coverage for atomic sale create, edit and void.

from decimal import Decimal

import pytest

from petros.errors import InsufficientStock, ItemNotFound, NotFoundError, TenantMismatch, ValidationError
from petros.models import AuditLog, Customer, Item, Sale, SaleItem
from petros.services import sales_service


def _reload(db_session, model, pk):
    db_session.expire_all()
    return db_session.get(model, pk)


class TestCreateSale:

    def test_cash_sale_decrements_stock(self, db_session, tenant_a, owner, item, customer):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 4, "price_cents": 100}],
            paid_amount_cents=400,
            user_id=owner.id,
        )

        assert sale.payment_type == "CASH"
        assert sale.total_amount_cents == 400
        assert _reload(db_session, Item, item.id).quantity == Decimal("6")
        assert _reload(db_session, Customer, customer.id).balance_cents == 0

    def test_credit_sale_posts_balance(self, db_session, tenant_a, item, customer):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 4, "price_cents": 100}],
            paid_amount_cents=100,
            customer_id=customer.id,
        )

        assert sale.payment_type == "CREDIT"
        assert sale.credit_amount_cents == 300
        assert _reload(db_session, Item, item.id).quantity == Decimal("6")
        assert _reload(db_session, Customer, customer.id).balance_cents == 300

    def test_price_defaults_to_catalogue(self, db_session, tenant_a, item):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": "2.5"}],
            paid_amount_cents=250,
        )
        assert sale.lines[0].price_cents == 100
        assert sale.total_amount_cents == 250

    def test_insufficient_stock_writes_nothing(self, db_session, tenant_a, item, second_item):
        with pytest.raises(InsufficientStock):
            sales_service.create_sale(
                tenant_a.id,
                items=[
                    {"item_id": second_item.id, "quantity": 1},
                    {"item_id": item.id, "quantity": 11},
                ],
                paid_amount_cents=0,
            )

        assert db_session.query(Sale).count() == 0
        assert _reload(db_session, Item, item.id).quantity == Decimal("10")
        assert _reload(db_session, Item, second_item.id).quantity == Decimal("5")

    def test_repeated_lines_checked_against_aggregate(self, db_session, tenant_a, item):
        with pytest.raises(InsufficientStock):
            sales_service.create_sale(
                tenant_a.id,
                items=[
                    {"item_id": item.id, "quantity": 6},
                    {"item_id": item.id, "quantity": 5},
                ],
                paid_amount_cents=1100,
            )
        assert _reload(db_session, Item, item.id).quantity == Decimal("10")

    def test_credit_without_customer_rejected(self, db_session, tenant_a, item):
        with pytest.raises(ValidationError):
            sales_service.create_sale(
                tenant_a.id,
                items=[{"item_id": item.id, "quantity": 1}],
                paid_amount_cents=0,
            )

    def test_overpayment_rejected(self, db_session, tenant_a, item):
        with pytest.raises(ValidationError):
            sales_service.create_sale(
                tenant_a.id,
                items=[{"item_id": item.id, "quantity": 1}],
                paid_amount_cents=101,
            )

    def test_unknown_item_rejected(self, db_session, tenant_a, item):
        with pytest.raises(ItemNotFound):
            sales_service.create_sale(
                tenant_a.id,
                items=[{"item_id": 99999, "quantity": 1}],
                paid_amount_cents=0,
            )

    def test_foreign_item_rejected(self, db_session, tenant_a, tenant_b, item_b):
        with pytest.raises(NotFoundError):
            sales_service.create_sale(
                tenant_a.id,
                items=[{"item_id": item_b.id, "quantity": 1}],
                paid_amount_cents=50,
            )
        assert _reload(db_session, Item, item_b.id).quantity == Decimal("20")

    def test_foreign_customer_rejected(self, db_session, tenant_a, item, customer_b):
        with pytest.raises(TenantMismatch):
            sales_service.create_sale(
                tenant_a.id,
                items=[{"item_id": item.id, "quantity": 1}],
                paid_amount_cents=0,
                customer_id=customer_b.id,
            )

    def test_float_cents_rejected(self, db_session, tenant_a, item):
        with pytest.raises(ValidationError):
            sales_service.create_sale(
                tenant_a.id,
                items=[{"item_id": item.id, "quantity": 1}],
                paid_amount_cents=99.5,
            )

    def test_failure_after_writes_rolls_back(self, db_session, monkeypatch, tenant_a, item, customer):
        def broken_audit(**kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(sales_service, "record_audit", broken_audit)

        with pytest.raises(RuntimeError):
            sales_service.create_sale(
                tenant_a.id,
                items=[{"item_id": item.id, "quantity": 4, "price_cents": 100}],
                paid_amount_cents=100,
                customer_id=customer.id,
            )

        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert _reload(db_session, Item, item.id).quantity == Decimal("10")
        assert _reload(db_session, Customer, customer.id).balance_cents == 0

    def test_audit_row_written(self, db_session, tenant_a, owner, item):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 1}],
            paid_amount_cents=100,
            user_id=owner.id,
        )
        entry = db_session.query(AuditLog).filter_by(action="sale.created", entity_id=sale.id).one()
        assert entry.user_id == owner.id
        assert entry.tenant_id == tenant_a.id


class TestVoidSale:

    def test_void_restores_stock_and_balance(self, db_session, tenant_a, item, customer):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 4, "price_cents": 100}],
            paid_amount_cents=100,
            customer_id=customer.id,
        )
        sale_id = sale.id

        result = sales_service.void_sale(tenant_a.id, sale_id)

        assert result == {"voided_amount_cents": 400, "reversed_item_count": 1}
        assert _reload(db_session, Item, item.id).quantity == Decimal("10")
        assert _reload(db_session, Customer, customer.id).balance_cents == 0
        assert db_session.get(Sale, sale_id) is None
        assert db_session.query(SaleItem).filter_by(sale_id=sale_id).count() == 0

    def test_void_uses_exact_decrement(self, db_session, tenant_a, item, customer):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 3}],
            paid_amount_cents=0,
            customer_id=customer.id,
        )
        # Customer paid part of the debt elsewhere; void still removes the full credit
        db_session.expire_all()
        c = db_session.get(Customer, customer.id)
        c.balance_cents = 100
        db_session.commit()

        sales_service.void_sale(tenant_a.id, sale.id)
        assert _reload(db_session, Customer, customer.id).balance_cents == -200

    def test_double_void_not_found(self, db_session, tenant_a, item):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 1}],
            paid_amount_cents=100,
        )
        sale_id = sale.id
        sales_service.void_sale(tenant_a.id, sale_id)

        with pytest.raises(NotFoundError):
            sales_service.void_sale(tenant_a.id, sale_id)
        assert _reload(db_session, Item, item.id).quantity == Decimal("10")

    def test_void_from_other_tenant_not_found(self, db_session, tenant_a, tenant_b, item):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 1}],
            paid_amount_cents=100,
        )
        with pytest.raises(NotFoundError):
            sales_service.void_sale(tenant_b.id, sale.id)
        assert db_session.get(Sale, sale.id) is not None


class TestEditSale:

    def test_edit_is_equivalent_to_void_then_create(self, db_session, tenant_a, item, second_item, customer):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 4, "price_cents": 100}],
            paid_amount_cents=100,
            customer_id=customer.id,
        )

        edited = sales_service.edit_sale(
            tenant_a.id,
            sale.id,
            items=[
                {"item_id": item.id, "quantity": 2, "price_cents": 100},
                {"item_id": second_item.id, "quantity": 1, "price_cents": 250},
            ],
            paid_amount_cents=200,
            customer_id=customer.id,
        )

        assert edited.total_amount_cents == 450
        assert edited.payment_type == "CREDIT"
        assert len(edited.lines) == 2
        assert edited.updated_at is not None
        assert _reload(db_session, Item, item.id).quantity == Decimal("8")
        assert _reload(db_session, Item, second_item.id).quantity == Decimal("4")
        assert _reload(db_session, Customer, customer.id).balance_cents == 250

    def test_edit_keeps_full_stock_sale_valid(self, db_session, tenant_a, item):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 10}],
            paid_amount_cents=1000,
        )
        assert _reload(db_session, Item, item.id).quantity == Decimal("0")

        # Same quantity split over two lines: projected stock is 0 + 10 - 10
        edited = sales_service.edit_sale(
            tenant_a.id,
            sale.id,
            items=[{"item_id": item.id, "quantity": 6}, {"item_id": item.id, "quantity": 4}],
            paid_amount_cents=1000,
        )
        assert edited.total_amount_cents == 1000
        assert _reload(db_session, Item, item.id).quantity == Decimal("0")

    def test_edit_beyond_stock_changes_nothing(self, db_session, tenant_a, item, customer):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 4}],
            paid_amount_cents=100,
            customer_id=customer.id,
        )

        with pytest.raises(InsufficientStock):
            sales_service.edit_sale(
                tenant_a.id,
                sale.id,
                items=[{"item_id": item.id, "quantity": 11}],
                paid_amount_cents=0,
                customer_id=customer.id,
            )

        reloaded = _reload(db_session, Sale, sale.id)
        assert reloaded.total_amount_cents == 400
        assert len(reloaded.lines) == 1
        assert db_session.get(Item, item.id).quantity == Decimal("6")
        assert db_session.get(Customer, customer.id).balance_cents == 300

    def test_edit_clamps_paid_to_new_total(self, db_session, tenant_a, item):
        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 4}],
            paid_amount_cents=400,
        )
        edited = sales_service.edit_sale(
            tenant_a.id,
            sale.id,
            items=[{"item_id": item.id, "quantity": 2}],
            paid_amount_cents=400,
        )
        assert edited.paid_amount_cents == 200
        assert edited.payment_type == "CASH"

    def test_edit_moves_credit_between_customers(self, db_session, tenant_a, item, customer):
        other = Customer(tenant_id=tenant_a.id, name="Kwame Asante", balance_cents=0)
        db_session.add(other)
        db_session.commit()

        sale = sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 3}],
            paid_amount_cents=0,
            customer_id=customer.id,
        )
        sales_service.edit_sale(
            tenant_a.id,
            sale.id,
            items=[{"item_id": item.id, "quantity": 3}],
            paid_amount_cents=0,
            customer_id=other.id,
        )

        assert _reload(db_session, Customer, customer.id).balance_cents == 0
        assert db_session.get(Customer, other.id).balance_cents == 300


class TestListSales:

    def test_list_is_tenant_scoped(self, db_session, tenant_a, tenant_b, item, item_b):
        sales_service.create_sale(tenant_a.id, items=[{"item_id": item.id, "quantity": 1}], paid_amount_cents=100)
        sales_service.create_sale(tenant_b.id, items=[{"item_id": item_b.id, "quantity": 1}], paid_amount_cents=50)

        sales, summary = sales_service.list_sales(tenant_a.id)
        assert len(sales) == 1
        assert summary["total_amount_cents"] == 100
        assert all(s.tenant_id == tenant_a.id for s in sales)

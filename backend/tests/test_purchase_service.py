# Overview: Pytest coverage for purchases and purchase orders.

from decimal import Decimal

import pytest

from petros.errors import CannotVoid, InsufficientStock, StateError, ValidationError
from petros.models import Item, Purchase, PurchaseOrder, Supplier
from petros.services import purchase_order_service, purchase_service, sales_service


def _reload(db_session, model, pk):
    db_session.expire_all()
    return db_session.get(model, pk)


class TestPurchases:

    def test_purchase_adds_stock_and_payable(self, db_session, tenant_a, item, supplier):
        purchase = purchase_service.create_purchase(
            tenant_a.id,
            supplier_id=supplier.id,
            items=[{"item_id": item.id, "quantity": 5, "cost_price_cents": 60}],
            paid_amount_cents=100,
        )

        assert purchase.total_amount_cents == 300
        assert purchase.payment_type == "CREDIT"
        assert _reload(db_session, Item, item.id).quantity == Decimal("15")
        assert db_session.get(Supplier, supplier.id).balance_cents == 200

    def test_supplier_required(self, db_session, tenant_a, item):
        with pytest.raises(ValidationError):
            purchase_service.create_purchase(
                tenant_a.id,
                supplier_id=None,
                items=[{"item_id": item.id, "quantity": 1}],
            )

    def test_void_reverses_purchase(self, db_session, tenant_a, item, supplier):
        purchase = purchase_service.create_purchase(
            tenant_a.id,
            supplier_id=supplier.id,
            items=[{"item_id": item.id, "quantity": 5, "cost_price_cents": 60}],
            paid_amount_cents=0,
        )
        purchase_id = purchase.id

        result = purchase_service.void_purchase(tenant_a.id, purchase_id)

        assert result["voided_amount_cents"] == 300
        assert _reload(db_session, Item, item.id).quantity == Decimal("10")
        assert db_session.get(Supplier, supplier.id).balance_cents == 0
        assert db_session.get(Purchase, purchase_id) is None

    def test_void_after_stock_sold_is_refused(self, db_session, tenant_a, item, supplier):
        # Stock 10 -> purchase 5 -> 15 -> sell 12 -> 3 left
        purchase = purchase_service.create_purchase(
            tenant_a.id,
            supplier_id=supplier.id,
            items=[{"item_id": item.id, "quantity": 5, "cost_price_cents": 60}],
            paid_amount_cents=0,
        )
        sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 12}],
            paid_amount_cents=1200,
        )

        with pytest.raises(CannotVoid) as exc:
            purchase_service.void_purchase(tenant_a.id, purchase.id)

        assert exc.value.details["item_id"] == item.id
        assert Decimal(exc.value.details["shortfall"]) == Decimal("2")
        assert _reload(db_session, Item, item.id).quantity == Decimal("3")
        assert db_session.get(Supplier, supplier.id).balance_cents == 300
        assert db_session.get(Purchase, purchase.id) is not None

    def test_edit_projection_blocks_negative_stock(self, db_session, tenant_a, item, supplier):
        purchase = purchase_service.create_purchase(
            tenant_a.id,
            supplier_id=supplier.id,
            items=[{"item_id": item.id, "quantity": 10, "cost_price_cents": 60}],
            paid_amount_cents=600,
        )
        sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 15}],
            paid_amount_cents=1500,
        )

        # 5 on hand - 10 + 3 = -2
        with pytest.raises(InsufficientStock):
            purchase_service.edit_purchase(
                tenant_a.id,
                purchase.id,
                supplier_id=supplier.id,
                items=[{"item_id": item.id, "quantity": 3, "cost_price_cents": 60}],
                paid_amount_cents=180,
            )
        assert _reload(db_session, Item, item.id).quantity == Decimal("5")

    def test_edit_applies_net_change(self, db_session, tenant_a, item, second_item, supplier):
        purchase = purchase_service.create_purchase(
            tenant_a.id,
            supplier_id=supplier.id,
            items=[{"item_id": item.id, "quantity": 4, "cost_price_cents": 60}],
            paid_amount_cents=0,
        )

        edited = purchase_service.edit_purchase(
            tenant_a.id,
            purchase.id,
            supplier_id=supplier.id,
            items=[
                {"item_id": item.id, "quantity": 2, "cost_price_cents": 60},
                {"item_id": second_item.id, "quantity": 2, "cost_price_cents": 200},
            ],
            paid_amount_cents=120,
        )

        assert edited.total_amount_cents == 520
        assert _reload(db_session, Item, item.id).quantity == Decimal("12")
        assert db_session.get(Item, second_item.id).quantity == Decimal("7")
        assert db_session.get(Supplier, supplier.id).balance_cents == 400


class TestPurchaseOrders:

    def _order(self, tenant_a, item, supplier=None):
        return purchase_order_service.create_purchase_order(
            tenant_a.id,
            supplier_id=supplier.id if supplier else None,
            items=[{"item_id": item.id, "quantity": 6, "cost_price_cents": 70}],
            note="Weekly restock",
        )

    def test_draft_has_no_ledger_effect(self, db_session, tenant_a, item, supplier):
        order = self._order(tenant_a, item, supplier)

        assert order.status == "DRAFT"
        assert order.total_amount_cents == 420
        assert order.lines[0].item_name == "Rice 5kg"
        assert _reload(db_session, Item, item.id).quantity == Decimal("10")

    def test_convert_creates_purchase_and_receives(self, db_session, tenant_a, item, supplier):
        order = self._order(tenant_a, item, supplier)

        result = purchase_order_service.convert_purchase_order(tenant_a.id, order.id, paid_amount_cents=20)

        purchase = _reload(db_session, Purchase, result["purchase_id"])
        assert purchase.purchase_order_id == order.id
        assert purchase.total_amount_cents == 420
        refreshed = db_session.get(PurchaseOrder, order.id)
        assert refreshed.status == "RECEIVED"
        assert refreshed.received_at is not None
        updated = db_session.get(Item, item.id)
        assert updated.quantity == Decimal("16")
        assert updated.cost_price_cents == 70
        assert db_session.get(Supplier, supplier.id).balance_cents == 400

    def test_convert_twice_refused(self, db_session, tenant_a, item, supplier):
        order = self._order(tenant_a, item, supplier)
        purchase_order_service.convert_purchase_order(tenant_a.id, order.id)

        with pytest.raises(StateError):
            purchase_order_service.convert_purchase_order(tenant_a.id, order.id)
        assert _reload(db_session, Item, item.id).quantity == Decimal("16")

    def test_convert_without_supplier_refused(self, db_session, tenant_a, item):
        order = self._order(tenant_a, item)
        with pytest.raises(ValidationError):
            purchase_order_service.convert_purchase_order(tenant_a.id, order.id)

    def test_status_transitions(self, db_session, tenant_a, item, supplier):
        order = self._order(tenant_a, item, supplier)

        sent = purchase_order_service.update_purchase_order_status(tenant_a.id, order.id, "SENT")
        assert sent.status == "SENT"

        with pytest.raises(ValidationError):
            purchase_order_service.update_purchase_order_status(tenant_a.id, order.id, "RECEIVED")

        purchase_order_service.update_purchase_order_status(tenant_a.id, order.id, "CANCELLED")
        with pytest.raises(StateError):
            purchase_order_service.convert_purchase_order(tenant_a.id, order.id)

    def test_only_drafts_can_be_deleted(self, db_session, tenant_a, item, supplier):
        draft = self._order(tenant_a, item, supplier)
        purchase_order_service.delete_purchase_order(tenant_a.id, draft.id)
        assert _reload(db_session, PurchaseOrder, draft.id) is None

        sent = self._order(tenant_a, item, supplier)
        purchase_order_service.update_purchase_order_status(tenant_a.id, sent.id, "SENT")
        with pytest.raises(StateError):
            purchase_order_service.delete_purchase_order(tenant_a.id, sent.id)

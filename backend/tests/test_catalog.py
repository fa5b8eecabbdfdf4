# Overview: Pytest coverage for item, customer and supplier maintenance.

from decimal import Decimal

import pytest

from petros.errors import ConflictError, ItemNotFound, NotFoundError, TenantMismatch, ValidationError
from petros.models import AuditLog, Customer, Item, StockAdjustment, Supplier
from petros.services import adjustment_service, catalog_service, reporting_service, sales_service, tenant_service

from conftest import tenant_headers


def _reload(db_session, model, pk):
    db_session.expire_all()
    return db_session.get(model, pk)


class TestItems:

    def test_opening_stock_is_booked_as_adjustment(self, db_session, tenant_a, owner):
        item = catalog_service.create_item(
            tenant_a.id,
            name="Milo Tin",
            cost_price_cents=1500,
            selling_price_cents=1800,
            quantity="12.5",
            user_id=owner.id,
        )

        assert _reload(db_session, Item, item.id).quantity == Decimal("12.5")
        adjustments = db_session.query(StockAdjustment).filter_by(item_id=item.id).all()
        assert len(adjustments) == 1
        assert adjustments[0].type == "INCREASE"
        assert adjustments[0].previous_quantity == Decimal("0")
        assert adjustments[0].new_quantity == Decimal("12.5")
        assert adjustments[0].reason == "Opening stock"
        assert db_session.query(AuditLog).filter_by(action="item.created", entity_id=item.id).count() == 1

    def test_zero_opening_stock_leaves_no_adjustment(self, db_session, tenant_a):
        item = catalog_service.create_item(
            tenant_a.id, name="Matches", cost_price_cents=5, selling_price_cents=10
        )
        assert item.quantity == Decimal("0")
        assert db_session.query(StockAdjustment).count() == 0

    def test_duplicate_name_is_conflict_within_tenant_only(self, db_session, tenant_a, tenant_b, item):
        with pytest.raises(ConflictError):
            catalog_service.create_item(
                tenant_a.id, name="rice 5KG", cost_price_cents=60, selling_price_cents=100
            )

        other = catalog_service.create_item(
            tenant_b.id, name="Rice 5kg", cost_price_cents=60, selling_price_cents=100
        )
        assert other.tenant_id == tenant_b.id

    def test_selling_below_cost_rejected(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            catalog_service.create_item(
                tenant_a.id, name="Loss Leader", cost_price_cents=100, selling_price_cents=90
            )
        assert db_session.query(Item).count() == 0

    def test_update_cannot_touch_quantity(self, db_session, tenant_a, item):
        with pytest.raises(ValidationError) as exc:
            catalog_service.update_item(tenant_a.id, item.id, {"name": "Rice", "quantity": 99})

        assert exc.value.details["field"] == "quantity"
        reloaded = _reload(db_session, Item, item.id)
        assert reloaded.quantity == Decimal("10")
        assert reloaded.name == "Rice 5kg"

    def test_update_renames_and_reprices(self, db_session, tenant_a, item, owner):
        updated = catalog_service.update_item(
            tenant_a.id, item.id, {"name": "Rice 5 kg", "selling_price_cents": 120}, user_id=owner.id
        )

        assert updated.name == "Rice 5 kg"
        assert updated.selling_price_cents == 120
        assert updated.quantity == Decimal("10")
        assert db_session.query(AuditLog).filter_by(action="item.updated", entity_id=item.id).count() == 1

    def test_update_rejects_price_below_existing_cost(self, db_session, tenant_a, item):
        with pytest.raises(ValidationError):
            catalog_service.update_item(tenant_a.id, item.id, {"selling_price_cents": 50})

    def test_foreign_item_cannot_be_updated(self, db_session, tenant_a, item_b):
        with pytest.raises(ItemNotFound):
            catalog_service.update_item(tenant_a.id, item_b.id, {"name": "Stolen"})
        assert _reload(db_session, Item, item_b.id).name == "Sugar"

    def test_list_filters_by_search_and_low_stock(self, db_session, tenant_a, item, second_item, item_b):
        assert [i.name for i in catalog_service.list_items(tenant_a.id)] == ["Cooking Oil", "Rice 5kg"]
        assert [i.name for i in catalog_service.list_items(tenant_a.id, search="rice")] == ["Rice 5kg"]
        assert [i.name for i in catalog_service.list_items(tenant_a.id, low_stock_threshold=5)] == ["Cooking Oil"]


class TestCounterparties:

    def test_opening_balance_reconciles_with_history(self, db_session, tenant_a, item):
        customer = catalog_service.create_customer(
            tenant_a.id, name="Kwame Boateng", phone="0244000000", opening_balance_cents=500
        )
        sales_service.create_sale(
            tenant_a.id,
            items=[{"item_id": item.id, "quantity": 2}],
            paid_amount_cents=50,
            customer_id=customer.id,
        )

        assert _reload(db_session, Customer, customer.id).balance_cents == 650
        assert reporting_service.customer_balance_drift(tenant_a.id) == []

    def test_supplier_opening_balance_reconciles(self, db_session, tenant_a):
        supplier = catalog_service.create_supplier(tenant_a.id, name="Tema Millers", opening_balance_cents=2000)
        assert supplier.balance_cents == 2000
        assert reporting_service.supplier_balance_drift(tenant_a.id) == []

    def test_balance_cannot_be_edited_directly(self, db_session, tenant_a, customer, supplier):
        with pytest.raises(ValidationError):
            catalog_service.update_customer(tenant_a.id, customer.id, {"balance_cents": 0})
        with pytest.raises(ValidationError):
            catalog_service.update_supplier(tenant_a.id, supplier.id, {"name": "X", "balance": 10})

        adjustment_service.set_customer_balance(tenant_a.id, customer.id, 300, reason="Ledger import")
        assert _reload(db_session, Customer, customer.id).balance_cents == 300

    def test_update_name_and_phone(self, db_session, tenant_a, supplier):
        updated = catalog_service.update_supplier(
            tenant_a.id, supplier.id, {"name": "Accra Wholesale Ltd", "phone": "0302111222"}
        )
        assert updated.name == "Accra Wholesale Ltd"
        assert updated.phone == "0302111222"
        assert updated.balance_cents == 0

    def test_duplicate_customer_name_is_conflict(self, db_session, tenant_a, customer):
        with pytest.raises(ConflictError):
            catalog_service.create_customer(tenant_a.id, name="YAW MENSAH")

    def test_foreign_customer_reported_as_missing(self, db_session, tenant_a, customer_b):
        with pytest.raises(TenantMismatch):
            catalog_service.update_customer(tenant_a.id, customer_b.id, {"phone": "0200000000"})
        with pytest.raises(NotFoundError):
            catalog_service.get_customer(tenant_a.id, 987654)

    def test_list_customers_debtors_first(self, db_session, tenant_a, customer):
        catalog_service.create_customer(tenant_a.id, name="Abena", opening_balance_cents=900)
        catalog_service.create_customer(tenant_a.id, name="Kojo", opening_balance_cents=100)

        customers, summary = catalog_service.list_customers(tenant_a.id)
        assert [c.name for c in customers] == ["Abena", "Kojo", "Yaw Mensah"]
        assert summary == {"total": 3, "with_balance": 2, "total_balance_cents": 1000}

        debtors, _ = catalog_service.list_customers(tenant_a.id, with_debt=True)
        assert [c.name for c in debtors] == ["Abena", "Kojo"]


class TestTenantScopedLocking:

    def test_locked_lookup_never_selects_foreign_rows(self, db_session, tenant_a, customer_b, monkeypatch):
        locked = []

        def spy(query):
            locked.append(str(query.statement))
            return query

        monkeypatch.setattr(tenant_service, "lock_for_update", spy)

        with pytest.raises(TenantMismatch):
            tenant_service.require_in_tenant(Customer, customer_b.id, tenant_a.id, lock=True)

        assert len(locked) == 1
        assert "customers.tenant_id" in locked[0]

    def test_locked_lookup_returns_own_row(self, db_session, tenant_a, supplier):
        found = tenant_service.require_in_tenant(Supplier, supplier.id, tenant_a.id, lock=True)
        assert found.id == supplier.id


class TestCatalogRoutes:

    def test_create_item_requires_manage_items(self, client, db_session, owner, cashier):
        body = {"name": "Tomato Paste", "cost_price_cents": 300, "selling_price_cents": 400, "quantity": 24}

        denied = client.post('/api/items/', headers=tenant_headers(cashier), json=body)
        created = client.post('/api/items/', headers=tenant_headers(owner), json=body)

        assert denied.status_code == 403
        assert denied.get_json()["required_permission"] == "MANAGE_ITEMS"
        assert created.status_code == 201
        assert created.get_json()["item"]["quantity"] == "24"

    def test_put_quantity_is_400(self, client, db_session, owner, item):
        response = client.put(f'/api/items/{item.id}', headers=tenant_headers(owner), json={"quantity": 0})
        assert response.status_code == 400
        assert "stock adjustments" in response.get_json()["error"]

    def test_duplicate_item_is_409(self, client, db_session, owner, item):
        response = client.post('/api/items/', headers=tenant_headers(owner), json={
            "name": "Rice 5kg", "cost_price_cents": 60, "selling_price_cents": 100,
        })
        assert response.status_code == 409

    def test_opening_balance_needs_adjust_balances(self, client, db_session, cashier):
        denied = client.post('/api/customers/', headers=tenant_headers(cashier), json={
            "name": "Efua", "opening_balance_cents": 1000,
        })
        created = client.post('/api/customers/', headers=tenant_headers(cashier), json={"name": "Efua"})

        assert denied.status_code == 403
        assert denied.get_json()["required_permission"] == "ADJUST_BALANCES"
        assert created.status_code == 201
        assert created.get_json()["customer"]["balance_cents"] == 0

    def test_foreign_supplier_is_404(self, client, db_session, owner_b, supplier):
        response = client.get(f'/api/suppliers/{supplier.id}', headers=tenant_headers(owner_b))
        assert response.status_code == 404

    def test_list_customers_with_summary(self, client, db_session, owner, customer):
        response = client.get('/api/customers/', headers=tenant_headers(owner))
        body = response.get_json()
        assert response.status_code == 200
        assert [c["name"] for c in body["customers"]] == ["Yaw Mensah"]
        assert body["summary"]["with_balance"] == 0

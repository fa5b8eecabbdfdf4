"""
Pytest fixtures for Petros backend tests.

Provides test database setup, two isolated tenants, seeded ledger rows
and a test client that speaks the tenant headers.
"""

from decimal import Decimal

import pytest

from petros import create_app
from petros.extensions import db
from petros.models import Customer, Item, Supplier, Tenant, User


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
        'ATOMIC_RETRY_ATTEMPTS': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Create Tenant A (first tenant)."""
    tenant = Tenant(name="Tenant A - Kofi Stores", code="kofi", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Create Tenant B (second tenant)."""
    tenant = Tenant(name="Tenant B - Ama Traders", code="ama", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


def make_user(db_session, tenant, email, role):
    user = User(tenant_id=tenant.id, name=email.split("@")[0], email=email, role=role)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def owner(db_session, tenant_a):
    return make_user(db_session, tenant_a, "owner@kofi.test", "OWNER")


@pytest.fixture(scope='function')
def cashier(db_session, tenant_a):
    return make_user(db_session, tenant_a, "cashier@kofi.test", "CASHIER")


@pytest.fixture(scope='function')
def owner_b(db_session, tenant_b):
    return make_user(db_session, tenant_b, "owner@ama.test", "OWNER")


@pytest.fixture(scope='function')
def item(db_session, tenant_a):
    """Stock 10, selling price 100, cost 60."""
    item = Item(
        tenant_id=tenant_a.id,
        name="Rice 5kg",
        quantity=Decimal("10"),
        cost_price_cents=60,
        selling_price_cents=100,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def second_item(db_session, tenant_a):
    item = Item(
        tenant_id=tenant_a.id,
        name="Cooking Oil",
        quantity=Decimal("5"),
        cost_price_cents=200,
        selling_price_cents=250,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def item_b(db_session, tenant_b):
    item = Item(
        tenant_id=tenant_b.id,
        name="Sugar",
        quantity=Decimal("20"),
        cost_price_cents=30,
        selling_price_cents=50,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def customer(db_session, tenant_a):
    customer = Customer(tenant_id=tenant_a.id, name="Yaw Mensah", balance_cents=0)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def customer_b(db_session, tenant_b):
    customer = Customer(tenant_id=tenant_b.id, name="Esi Owusu", balance_cents=0)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier(db_session, tenant_a):
    supplier = Supplier(tenant_id=tenant_a.id, name="Accra Wholesale", balance_cents=0)
    db_session.add(supplier)
    db_session.commit()
    return supplier


def tenant_headers(user) -> dict:
    """Helper to create the tenant/user identity headers."""
    return {'X-Tenant-Id': str(user.tenant_id), 'X-User-Id': str(user.id)}

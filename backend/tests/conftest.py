"""
Pytest fixtures for seller inventory backend tests.

Provides test database setup, two-store tenant fixtures, tenant contexts,
a unit of work bound to the test session, and HTTP auth helpers.
"""

import pytest

from seller_inventory import create_app
from seller_inventory.extensions import db
from seller_inventory.models import Category, Product, Store, UserRole
from seller_inventory.persistence import UnitOfWork
from seller_inventory.services.auth_service import create_user
from seller_inventory.tenant_context import TenantContext

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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
def uow(db_session):
    return UnitOfWork(db_session)


# =============================================================================
# STORES AND USERS
# =============================================================================

def _make_store(db_session, name, slug):
    store = Store(name=name, slug=slug, is_active=True)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_a(db_session):
    """Create Store A (first tenant)."""
    return _make_store(db_session, "Store A - Acme Goods", "store-a")


@pytest.fixture(scope='function')
def store_b(db_session):
    """Create Store B (second tenant)."""
    return _make_store(db_session, "Store B - Beta Supply", "store-b")


@pytest.fixture(scope='function')
def manager_a(uow, store_a):
    return create_user(
        uow, username="manager_a", email="manager_a@acme.test", password=PASSWORD,
        full_name="Manager A", role=UserRole.MANAGER, store_id=store_a.id,
    )


@pytest.fixture(scope='function')
def staff_a(uow, store_a):
    return create_user(
        uow, username="staff_a", email="staff_a@acme.test", password=PASSWORD,
        full_name="Staff A", role=UserRole.STAFF, store_id=store_a.id,
    )


@pytest.fixture(scope='function')
def manager_b(uow, store_b):
    return create_user(
        uow, username="manager_b", email="manager_b@beta.test", password=PASSWORD,
        full_name="Manager B", role=UserRole.MANAGER, store_id=store_b.id,
    )


@pytest.fixture(scope='function')
def admin_user(uow):
    """Platform SystemAdmin with no store."""
    return create_user(
        uow, username="sysadmin", email="admin@platform.test", password=PASSWORD,
        full_name="System Admin", role=UserRole.SYSTEM_ADMIN,
    )


# =============================================================================
# TENANT CONTEXTS
# =============================================================================

@pytest.fixture(scope='function')
def manager_a_ctx(manager_a):
    return TenantContext.for_user(manager_a)


@pytest.fixture(scope='function')
def staff_a_ctx(staff_a):
    return TenantContext.for_user(staff_a)


@pytest.fixture(scope='function')
def manager_b_ctx(manager_b):
    return TenantContext.for_user(manager_b)


@pytest.fixture(scope='function')
def admin_ctx(admin_user):
    return TenantContext.for_user(admin_user)


# =============================================================================
# CATALOG
# =============================================================================

def make_product(db_session, store, *, name="Widget", sku=None, stock=10, price=500, category_name="General"):
    """Create (or reuse) a category and add a product under it."""
    category = db_session.query(Category).filter_by(store_id=store.id, name=category_name).first()
    if category is None:
        category = Category(store_id=store.id, name=category_name)
        db_session.add(category)
        db_session.flush()
    product = Product(
        store_id=store.id,
        category_id=category.id,
        name=name,
        sku=sku,
        sell_price_cents=price,
        cost_price_cents=price // 2,
        stock_quantity=stock,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(db_session, store_a):
    """Product in Store A: 10 units at 500 cents."""
    return make_product(db_session, store_a, name="Product A", sku="PROD-A-001")


@pytest.fixture(scope='function')
def product_b(db_session, store_b):
    """Product in Store B: 10 units at 2000 cents."""
    return make_product(db_session, store_b, name="Product B", sku="PROD-B-001", price=2000)


# =============================================================================
# HTTP HELPERS
# =============================================================================

def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def manager_a_headers(client, manager_a):
    return auth_headers(get_auth_token(client, "manager_a"))


@pytest.fixture(scope='function')
def staff_a_headers(client, staff_a):
    return auth_headers(get_auth_token(client, "staff_a"))


@pytest.fixture(scope='function')
def manager_b_headers(client, manager_b):
    return auth_headers(get_auth_token(client, "manager_b"))

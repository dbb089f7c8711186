"""
Pytest fixtures for ShopDesk backend tests.

Provides test database setup, shop admin/worker fixtures, and test client.
"""

from datetime import datetime

import pytest
from shopdesk import create_app
from shopdesk.config import Config
from shopdesk.extensions import db
from shopdesk.models import Plan, Product, Sale, SaleItem
from shopdesk.permissions import Feature, FeaturePermission, features_to_dict
from shopdesk.services import auth_service, worker_service


PASSWORD = "Password123!"
SUPER_TOKEN = "test-super-admin-token"


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SUPER_ADMIN_TOKEN = SUPER_TOKEN
    DEFAULT_TIMEZONE = "Asia/Karachi"
    TRIAL_DAYS = 7


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
def admin(db_session):
    """Shop admin on a fresh 7-day trial (no overrides, full access)."""
    return auth_service.create_admin("owner@shop.pk", PASSWORD, "Shop Owner", trial_days=7)


@pytest.fixture(scope='function')
def other_admin(db_session):
    """Second shop, for isolation checks."""
    return auth_service.create_admin("other@shop.pk", PASSWORD, "Other Owner", trial_days=7)


@pytest.fixture(scope='function')
def worker(db_session, admin):
    """Worker who may only view sales."""
    return worker_service.create_worker(
        admin.id,
        "worker@shop.pk",
        PASSWORD,
        "Counter Worker",
        {"sales": {"view": True, "create": False}},
    )


def make_plan(db_session, name, features, *, is_lifetime=False, duration_months=1):
    plan = Plan(
        name=name,
        monthly_price=1000,
        yearly_price=10000,
        duration_months=duration_months,
        is_lifetime=is_lifetime,
        features=features_to_dict(features),
    )
    db_session.add(plan)
    db_session.commit()
    return plan


@pytest.fixture(scope='function')
def plan_a(db_session):
    """Grants delete on inventory, plus sales and invoice."""
    return make_plan(db_session, "Plan A", {
        Feature.INVENTORY: FeaturePermission.full(),
        Feature.SALES: FeaturePermission(can_view=True),
        Feature.INVOICE: FeaturePermission.full(),
    })


@pytest.fixture(scope='function')
def plan_b(db_session):
    """Omits inventory entirely."""
    return make_plan(db_session, "Plan B", {
        Feature.SALES: FeaturePermission.full(),
        Feature.INVOICE: FeaturePermission(can_view=True, can_create=True),
    })


@pytest.fixture(scope='function')
def lifetime_plan(db_session):
    return make_plan(db_session, "Free Lifetime", {
        Feature.INVOICE: FeaturePermission.full(),
    }, is_lifetime=True)


def add_sale(db_session, owner_id, created_at, amount, *, profit=None, customer=None, paid=None, items=None):
    """Insert a sale row directly, bypassing the service, for report tests."""
    paid_amount = amount if paid is None else paid
    status = "paid" if paid_amount >= amount else ("partial" if paid_amount > 0 else "unpaid")
    sale = Sale(
        owner_id=owner_id,
        customer_name=customer,
        total_amount=amount,
        final_amount=amount,
        paid_amount=paid_amount,
        payment_status=status,
        created_at=created_at,
    )
    db_session.add(sale)
    db_session.flush()
    for line in items or [{"product_name": "Item", "total_price": amount, "profit": profit or 0}]:
        db_session.add(SaleItem(sale_id=sale.id, quantity=1, unit_price=line["total_price"], **line))
    db_session.commit()
    return sale


def add_product(db_session, owner_id, name, category=None, stock=20, price=100, cost=60):
    product = Product(
        owner_id=owner_id,
        name=name,
        category=category,
        stock_quantity=stock,
        selling_price=price,
        purchase_price=cost,
    )
    db_session.add(product)
    db_session.commit()
    return product


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def super_headers(token: str = SUPER_TOKEN) -> dict:
    return {'X-Super-Admin-Token': token}


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email))


@pytest.fixture(scope='function')
def worker_headers(client, worker):
    return auth_headers(get_auth_token(client, worker.email))


@pytest.fixture(scope='function')
def fixed_now():
    """2024-03-15 20:00 UTC, which is 2024-03-16 01:00 in Karachi."""
    return datetime(2024, 3, 15, 20, 0, 0)

"""
Pytest fixtures for ShopLedger backend tests.

Provides test database setup, two-tenant fixtures (shop A / shop B with an
owner and a worker each, plus a super admin), and login helpers.
"""

from datetime import date

import pytest

from shopledger import create_app
from shopledger.extensions import db
from shopledger.models.auth import SUPER_ADMIN, SHOP_OWNER, SHOP_WORKER
from shopledger.services import shop_service
from shopledger.services.auth_service import create_user


PASSWORD = "Password123!"

# A fixed past business day; closings cannot be submitted for future dates
BUSINESS_DAY = date(2025, 1, 5)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
def shop_a(db_session):
    """Shop A (first tenant), seeded with default fee rules."""
    return shop_service.create_shop("Shop A - Ali Mobile Centre", code="ALI")


@pytest.fixture(scope='function')
def shop_b(db_session):
    """Shop B (second tenant)."""
    return shop_service.create_shop("Shop B - Bismillah Communications", code="BIS")


@pytest.fixture(scope='function')
def owner_a(shop_a):
    return create_user("owner_a", "owner_a@ali.pk", PASSWORD, SHOP_OWNER, shop_id=shop_a.id)


@pytest.fixture(scope='function')
def worker_a(shop_a):
    return create_user("worker_a", "worker_a@ali.pk", PASSWORD, SHOP_WORKER, shop_id=shop_a.id)


@pytest.fixture(scope='function')
def owner_b(shop_b):
    return create_user("owner_b", "owner_b@bis.pk", PASSWORD, SHOP_OWNER, shop_id=shop_b.id)


@pytest.fixture(scope='function')
def super_admin(db_session):
    return create_user("root", "root@shopledger.local", PASSWORD, SUPER_ADMIN)


@pytest.fixture(scope='function')
def owner_headers(client, owner_a):
    return auth_headers(get_auth_token(client, owner_a.username, PASSWORD))


@pytest.fixture(scope='function')
def worker_headers(client, worker_a):
    return auth_headers(get_auth_token(client, worker_a.username, PASSWORD))


@pytest.fixture(scope='function')
def owner_b_headers(client, owner_b):
    return auth_headers(get_auth_token(client, owner_b.username, PASSWORD))


@pytest.fixture(scope='function')
def admin_headers(client, super_admin):
    return auth_headers(get_auth_token(client, super_admin.username, PASSWORD))


def get_auth_token(client, username: str, password: str) -> str:
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


def seed_business_day(shop_id: int, user_id: int | None = None) -> None:
    """
    One full trading day for shop_id on BUSINESS_DAY, in paisa:

    - sales: Rs 205,000 + Rs 75,000 = Rs 280,000
    - completed service commissions: Jazz load Rs 5,000, Telenor load
      Rs 3,000, EasyPaisa Rs 2,500, JazzCash Rs 2,000 (plus a cancelled
      Zong load that must not count)
    - supplier payments: Rs 50,000
    - outstanding loans: Rs 12,000
    """
    from shopledger.services import (
        sales_service,
        transaction_service,
        purchase_service,
        loan_service,
    )

    sales_service.record_sale(
        shop_id, total_amount_cents=20_500_000, payment_method="CASH",
        sale_date="2025-01-05T10:15:00", created_by_user_id=user_id,
    )
    sales_service.record_sale(
        shop_id, total_amount_cents=7_500_000, payment_method="EASYPAISA",
        sale_date="2025-01-05T18:40:00", created_by_user_id=user_id,
    )

    for service_type, provider, commission in (
        ("MOBILE_LOAD", "JAZZ", 500_000),
        ("MOBILE_LOAD", "TELENOR", 300_000),
        ("EASYPAISA_CASHOUT", None, 250_000),
        ("JAZZCASH_CASHIN", None, 200_000),
    ):
        transaction_service.create_transaction(
            shop_id,
            service_type=service_type,
            load_provider=provider,
            amount_cents=10_000_000,
            manual_commission_cents=commission,
            transaction_date="2025-01-05T12:00:00",
            created_by_user_id=user_id,
        )
    transaction_service.create_transaction(
        shop_id,
        service_type="MOBILE_LOAD",
        load_provider="ZONG",
        amount_cents=10_000_000,
        manual_commission_cents=999_999,
        status="CANCELLED",
        transaction_date="2025-01-05T12:30:00",
    )

    supplier = purchase_service.create_supplier(shop_id, "City Distributors")
    purchase_service.create_purchase(
        shop_id,
        supplier_id=supplier.id,
        total_amount_cents=8_000_000,
        purchase_date="2025-01-05T09:00:00",
        initial_payment_cents=5_000_000,
        created_by_user_id=user_id,
    )

    customer = loan_service.create_customer(shop_id, "Bilal", phone="03001234567")
    loan_service.create_loan(
        shop_id,
        customer_id=customer.id,
        loan_number="L-0001",
        principal_cents=1_200_000,
        total_installments=3,
        start_date="2024-12-01",
        created_by_user_id=user_id,
    )

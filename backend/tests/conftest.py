"""
Pytest fixtures for SiliconPOS backend tests.

Provides an in-memory database, per-role staff accounts with bearer tokens,
catalog factories and the test client.
"""

from datetime import datetime

import pytest

from siliconpos import create_app
from siliconpos.cache import get_cache
from siliconpos.extensions import db
from siliconpos.models import Product, Service, User
from siliconpos.services import session_service
from siliconpos.services.auth_service import hash_password
from siliconpos.services.sales_service import create_sale
from siliconpos.validation import validate_cart_payload


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'POS_TIMEZONE': 'UTC',
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data (and an empty cache) for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        get_cache().clear()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


def _make_user(username, role, password_hash, **overrides):
    user = User(
        name=overrides.pop("name", username.title()),
        username=username,
        email=overrides.pop("email", f"{username}@siliconpos.test"),
        password_hash=password_hash,
        role=role,
        is_active=overrides.pop("is_active", True),
    )
    db.session.add(user)
    db.session.commit()
    return user


def auth_headers(user):
    """Bearer header for a fresh session of `user`."""
    _, token = session_service.create_session(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def admin_user(db_session, password_hash):
    return _make_user("admin", "admin", password_hash)


@pytest.fixture(scope='function')
def manager_user(db_session, password_hash):
    return _make_user("manager", "manager", password_hash)


@pytest.fixture(scope='function')
def sales_user(db_session, password_hash):
    return _make_user("sales", "sales", password_hash)


@pytest.fixture(scope='function')
def make_user(db_session, password_hash):
    def _factory(username, role="sales", **overrides):
        return _make_user(username, role, password_hash, **overrides)
    return _factory


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture(scope='function')
def manager_headers(manager_user):
    return auth_headers(manager_user)


@pytest.fixture(scope='function')
def sales_headers(sales_user):
    return auth_headers(sales_user)


@pytest.fixture(scope='function')
def make_product(db_session):
    counter = {"n": 0}

    def _factory(**fields):
        counter["n"] += 1
        data = {
            "name": f"Product {counter['n']}",
            "sku": f"SKU-{counter['n']:04d}",
            "category": "networking",
            "price_cents": 1000,
            "stock_quantity": 50,
            "low_stock_threshold": 10,
            "is_active": True,
        }
        data.update(fields)
        product = Product(**data)
        db.session.add(product)
        db.session.commit()
        return product

    return _factory


@pytest.fixture(scope='function')
def make_service(db_session):
    counter = {"n": 0}

    def _factory(**fields):
        counter["n"] += 1
        data = {
            "name": f"Service {counter['n']}",
            "price_cents": 20000,
            "duration": "2 hours",
            "is_active": True,
        }
        data.update(fields)
        service = Service(**data)
        db.session.add(service)
        db.session.commit()
        return service

    return _factory


@pytest.fixture(scope='function')
def record_sale(db_session):
    """
    Check out a cart through the real workflow at a fixed local time.

    record_sale([(product, qty), (service, qty)], at=datetime(...), discount_cents=0)
    """
    def _factory(lines, at: datetime | None = None, discount_cents: int = 0, staff_user=None, **extra):
        items = []
        for entity, qty in lines:
            key = "service_id" if isinstance(entity, Service) else "product_id"
            items.append({
                key: entity.id,
                "name": entity.name,
                "quantity": qty,
                "unit_price_cents": entity.price_cents,
            })
        payload = {"items": items, "discount_cents": discount_cents, **extra}
        cart = validate_cart_payload(payload)
        return create_sale(cart, staff_user_id=staff_user.id if staff_user else None, now=at)

    return _factory

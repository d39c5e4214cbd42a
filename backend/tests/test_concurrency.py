"""
Checkout under real lock contention.

The in-memory database used by the other modules is one shared connection,
so these tests run against a SQLite file where every thread gets its own
connection and SQLite's write lock actually decides who wins.
"""

import sqlite3
import threading

import pytest

from siliconpos import create_app
from siliconpos.extensions import db
from siliconpos.models import Product, Sale, User
from siliconpos.services import session_service
from siliconpos.services.concurrency import begin_write


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "siliconpos.sqlite3"


@pytest.fixture
def file_app(db_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'POS_TIMEZONE': 'UTC',
        'LOG_LEVEL': 'WARNING',
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.engine.dispose()


def _seed_last_unit(app, password_hash):
    """Two cashiers and a product with one unit left."""
    with app.app_context():
        cashiers = [
            User(name=f"Cashier {n}", username=f"cashier{n}", password_hash=password_hash, role="sales")
            for n in (1, 2)
        ]
        product = Product(
            name="PoE Switch 8-Port",
            sku="POE-8",
            category="networking",
            price_cents=8999,
            stock_quantity=1,
            low_stock_threshold=0,
        )
        db.session.add_all([*cashiers, product])
        db.session.commit()

        headers = []
        for user in cashiers:
            _, token = session_service.create_session(user.id)
            headers.append({"Authorization": f"Bearer {token}"})
        return product.id, headers


def test_begin_write_takes_the_sqlite_write_lock(file_app, db_path):
    with file_app.app_context():
        # ORM transaction already open from a read
        db.session.query(Product).count()

        begin_write()
        assert db.session.connection().connection.dbapi_connection.in_transaction

        # Holding the lock: a second call must not issue a nested BEGIN
        begin_write()

        other = sqlite3.connect(db_path, timeout=0)
        try:
            with pytest.raises(sqlite3.OperationalError, match="locked"):
                other.execute("BEGIN IMMEDIATE")
        finally:
            other.close()

        db.session.rollback()


def test_last_unit_sells_once_under_contention(file_app, password_hash):
    product_id, headers = _seed_last_unit(file_app, password_hash)
    barrier = threading.Barrier(len(headers))
    statuses = []

    def checkout(auth):
        client = file_app.test_client()
        barrier.wait()
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product_id, "quantity": 1, "unit_price_cents": 8999}]},
            headers=auth,
        )
        statuses.append(resp.status_code)

    threads = [threading.Thread(target=checkout, args=(auth,)) for auth in headers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(statuses) == [201, 409]
    with file_app.app_context():
        assert db.session.get(Product, product_id).stock_quantity == 0
        assert db.session.query(Sale).count() == 1

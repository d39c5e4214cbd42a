"""
Checkout workflow.

Verifies:
- Stock is decremented atomically and never goes negative
- Oversold carts are rejected with 409 and leave no trace
- Discounts cannot exceed the subtotal
- Sale numbers are unique per-day sequences
"""

import re
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from siliconpos.extensions import db
from siliconpos.models import DocumentSequence, Notification, Product, Sale, SaleItem
from siliconpos.services import notification_service
from siliconpos.services.sales_service import SaleError


SALE_NUMBER = re.compile(r"^SL-\d{8}-[0-9A-Z]{4}$")


def _line(product, qty, **extra):
    line = {"product_id": product.id, "name": product.name, "quantity": qty, "unit_price_cents": product.price_cents}
    line.update(extra)
    return line


def _stock(product_id):
    db.session.expire_all()
    return db.session.get(Product, product_id).stock_quantity


def _sale_count():
    return db.session.query(Sale).count()


class TestCheckoutApi:
    def test_sale_decrements_stock(self, client, sales_headers, sales_user, make_product):
        product = make_product(name="Cat6 Ethernet Cable 10m", price_cents=1599, stock_quantity=10)

        resp = client.post(
            "/api/sales",
            json={"items": [_line(product, 3)], "customer_name": "Ada"},
            headers=sales_headers,
        )
        assert resp.status_code == 201
        sale = resp.get_json()
        assert SALE_NUMBER.match(sale["sale_number"])
        assert sale["subtotal_cents"] == 4797
        assert sale["tax_cents"] == 0
        assert sale["discount_cents"] == 0
        assert sale["total_cents"] == 4797
        assert sale["status"] == "completed"
        assert sale["staff_user_id"] == sales_user.id
        assert sale["customer_name"] == "Ada"
        assert [(i["name"], i["quantity"], i["total_cents"]) for i in sale["items"]] == [
            ("Cat6 Ethernet Cable 10m", 3, 4797),
        ]
        assert _stock(product.id) == 7

    def test_empty_cart_rejected(self, client, sales_headers):
        for payload in ({"items": []}, {}, {"items": None}):
            resp = client.post("/api/sales", json=payload, headers=sales_headers)
            assert resp.status_code == 400
            assert resp.get_json()["error"] == "Cart items required"
        assert _sale_count() == 0

    def test_oversell_rejected_and_nothing_written(self, client, sales_headers, make_product):
        product = make_product(name="POE Switch 4-Port", stock_quantity=2)

        resp = client.post("/api/sales", json={"items": [_line(product, 3)]}, headers=sales_headers)
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["error"] == "Insufficient stock"
        assert body["details"]["items"] == [{
            "product_id": product.id,
            "name": "POE Switch 4-Port",
            "requested_quantity": 3,
            "available": 2,
        }]
        assert _stock(product.id) == 2
        assert _sale_count() == 0
        assert db.session.query(SaleItem).count() == 0
        assert db.session.query(DocumentSequence).count() == 0

    def test_partial_shortfall_rolls_back_other_lines(self, client, sales_headers, make_product):
        plenty = make_product(stock_quantity=50)
        scarce = make_product(stock_quantity=1)

        resp = client.post(
            "/api/sales",
            json={"items": [_line(plenty, 5), _line(scarce, 2)]},
            headers=sales_headers,
        )
        assert resp.status_code == 409
        assert _stock(plenty.id) == 50
        assert _stock(scarce.id) == 1
        assert _sale_count() == 0

    def test_repeated_lines_count_together(self, client, sales_headers, make_product):
        product = make_product(stock_quantity=5)
        resp = client.post(
            "/api/sales",
            json={"items": [_line(product, 3), _line(product, 3)]},
            headers=sales_headers,
        )
        assert resp.status_code == 409
        assert resp.get_json()["details"]["items"][0]["requested_quantity"] == 6
        assert _stock(product.id) == 5

    def test_last_unit_sells_once(self, client, sales_headers, manager_headers, make_product):
        product = make_product(stock_quantity=1)

        first = client.post("/api/sales", json={"items": [_line(product, 1)]}, headers=sales_headers)
        second = client.post("/api/sales", json={"items": [_line(product, 1)]}, headers=manager_headers)

        assert first.status_code == 201
        assert second.status_code == 409
        assert _stock(product.id) == 0
        assert _sale_count() == 1

    def test_discount_applied(self, client, sales_headers, make_product):
        product = make_product(price_cents=10000)
        resp = client.post(
            "/api/sales",
            json={"items": [_line(product, 2)], "discount_cents": 2500},
            headers=sales_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert (body["subtotal_cents"], body["discount_cents"], body["total_cents"]) == (20000, 2500, 17500)

    def test_discount_above_subtotal_rejected(self, client, sales_headers, make_product):
        product = make_product(price_cents=1000, stock_quantity=10)
        resp = client.post(
            "/api/sales",
            json={"items": [_line(product, 1)], "discount_cents": 1001},
            headers=sales_headers,
        )
        assert resp.status_code == 400
        assert _stock(product.id) == 10
        assert _sale_count() == 0

    def test_missing_product_and_service(self, client, sales_headers):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": 9999, "name": "Ghost", "quantity": 1, "unit_price_cents": 100}]},
            headers=sales_headers,
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Product not found"

        resp = client.post(
            "/api/sales",
            json={"items": [{"service_id": 9999, "name": "Ghost", "quantity": 1, "unit_price_cents": 100}]},
            headers=sales_headers,
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Service not found"
        assert _sale_count() == 0

    @pytest.mark.parametrize(
        "item,message",
        [
            ({"name": "x", "quantity": 1, "unit_price_cents": 1}, "exactly one of product_id or service_id"),
            ({"product_id": 1, "service_id": 1, "quantity": 1, "unit_price_cents": 1},
             "exactly one of product_id or service_id"),
            ({"product_id": 1, "quantity": 0, "unit_price_cents": 1}, "quantity must be > 0"),
            ({"product_id": 1, "quantity": 1.5, "unit_price_cents": 1}, "must be an integer"),
            ({"product_id": 1, "quantity": 1, "unit_price_cents": -1}, "unit_price_cents must be >= 0"),
            ({"product_id": 1, "quantity": 1}, "unit_price_cents is required"),
        ],
    )
    def test_invalid_items(self, client, sales_headers, item, message):
        resp = client.post("/api/sales", json={"items": [item]}, headers=sales_headers)
        assert resp.status_code == 400
        assert message in resp.get_json()["error"]

    def test_service_lines_need_no_stock(self, client, sales_headers, make_service):
        service = make_service(name="Network Installation - Basic", price_cents=29999)
        resp = client.post(
            "/api/sales",
            json={"items": [{"service_id": service.id, "quantity": 1, "unit_price_cents": 29999}]},
            headers=sales_headers,
        )
        assert resp.status_code == 201
        # Name falls back to the catalog entry
        assert resp.get_json()["items"][0]["name"] == "Network Installation - Basic"


class TestSaleNumbers:
    def test_sequence_per_day(self, record_sale, make_product):
        product = make_product(stock_quantity=100)
        day_one = datetime(2026, 10, 19, 9, 0)
        day_two = datetime(2026, 10, 20, 9, 0)

        numbers = [record_sale([(product, 1)], at=day_one).sale_number for _ in range(3)]
        assert numbers == ["SL-20261019-0001", "SL-20261019-0002", "SL-20261019-0003"]
        assert record_sale([(product, 1)], at=day_two).sale_number == "SL-20261020-0001"

    def test_base36_suffix(self, record_sale, make_product):
        product = make_product(stock_quantity=100)
        at = datetime(2026, 10, 19, 12, 0)
        numbers = [record_sale([(product, 1)], at=at).sale_number for _ in range(11)]
        assert numbers[9] == "SL-20261019-000A"
        assert numbers[10] == "SL-20261019-000B"
        assert len(set(numbers)) == 11

    def test_rejected_sale_does_not_consume_a_number(self, record_sale, make_product):
        product = make_product(stock_quantity=1)
        at = datetime(2026, 10, 19, 12, 0)
        with pytest.raises(SaleError):
            record_sale([(product, 2)], at=at)
        assert record_sale([(product, 1)], at=at).sale_number == "SL-20261019-0001"


class TestSaleUpdates:
    def test_get_with_items(self, client, sales_headers, record_sale, make_product, make_service):
        product = make_product(price_cents=500)
        service = make_service(price_cents=20000)
        sale = record_sale([(product, 2), (service, 1)])

        resp = client.get(f"/api/sales/{sale.id}", headers=sales_headers)
        assert resp.status_code == 200
        items = resp.get_json()["items"]
        assert [(i["product_id"], i["service_id"]) for i in items] == [(product.id, None), (None, service.id)]

        assert client.get("/api/sales/424242", headers=sales_headers).status_code == 404

    def test_cancel_does_not_restock(self, client, manager_headers, record_sale, make_product):
        product = make_product(stock_quantity=10)
        sale = record_sale([(product, 4)])

        resp = client.patch(
            f"/api/sales/{sale.id}",
            json={"status": "cancelled", "notes": "Customer changed their mind"},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "cancelled"
        assert body["notes"] == "Customer changed their mind"
        assert _stock(product.id) == 6

    def test_only_status_and_notes_change(self, client, manager_headers, record_sale, make_product):
        sale = record_sale([(make_product(), 1)])

        resp = client.patch(f"/api/sales/{sale.id}", json={"total_cents": 1}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Field not allowed: total_cents"

        resp = client.patch(f"/api/sales/{sale.id}", json={"status": "refunded"}, headers=manager_headers)
        assert resp.status_code == 400

    def test_list_newest_first(self, client, sales_headers, record_sale, make_product):
        product = make_product(stock_quantity=10)
        older = record_sale([(product, 1)], at=datetime(2026, 10, 18, 10, 0))
        newer = record_sale([(product, 1)], at=datetime(2026, 10, 19, 10, 0))

        body = client.get("/api/sales", headers=sales_headers).get_json()
        assert [s["id"] for s in body["items"]] == [newer.id, older.id]


class TestLowStockAlerts:
    def test_crossing_threshold_notifies_back_office(
        self, record_sale, make_product, admin_user, manager_user, sales_user
    ):
        product = make_product(name="RJ45 Connectors Pack (100pcs)", stock_quantity=12, low_stock_threshold=10)

        record_sale([(product, 1)])
        assert db.session.query(Notification).count() == 0

        record_sale([(product, 2)])
        notes = db.session.query(Notification).all()
        assert sorted(n.user_id for n in notes) == sorted([admin_user.id, manager_user.id])
        assert all(n.title == "Low stock: RJ45 Connectors Pack (100pcs)" for n in notes)

        # Already below threshold: no repeat alert
        record_sale([(product, 1)])
        assert db.session.query(Notification).count() == 2

    def test_selling_out(self, record_sale, make_product, admin_user):
        product = make_product(name="NVR", stock_quantity=2, low_stock_threshold=1)
        record_sale([(product, 2)])
        note = db.session.query(Notification).one()
        assert note.title == "Out of stock: NVR"
        assert note.entity_id == product.id

    def test_alert_failure_keeps_the_committed_sale(
        self, client, monkeypatch, sales_headers, admin_user, make_product
    ):
        product = make_product(name="NVR", stock_quantity=2, low_stock_threshold=1)

        def locked(changes):
            raise OperationalError("INSERT INTO notifications", {}, Exception("database is locked"))

        monkeypatch.setattr(notification_service, "notify_low_stock", locked)

        resp = client.post("/api/sales", json={"items": [_line(product, 2)]}, headers=sales_headers)
        assert resp.status_code == 201
        assert SALE_NUMBER.match(resp.get_json()["sale_number"])
        assert _stock(product.id) == 0
        assert _sale_count() == 1
        assert db.session.query(Notification).count() == 0

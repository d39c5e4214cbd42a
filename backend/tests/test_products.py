"""Product catalog API."""

from siliconpos.extensions import db
from siliconpos.models import Product


def _create(client, headers, **fields):
    payload = {"name": "Cat6 Ethernet Cable 10m", "category": "networking", "price_cents": 1599}
    payload.update(fields)
    return client.post("/api/products", json=payload, headers=headers)


class TestCreateProduct:
    def test_create_with_defaults(self, client, manager_headers):
        resp = _create(client, manager_headers, sku="NET-CAT6-10M", cost_price_cents=850)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["sku"] == "NET-CAT6-10M"
        assert body["price_cents"] == 1599
        assert body["stock_quantity"] == 0
        assert body["low_stock_threshold"] == 10
        assert body["is_active"] is True
        assert body["created_at"].endswith("Z")

    def test_missing_required_fields(self, client, manager_headers):
        resp = client.post("/api/products", json={"name": "No price"}, headers=manager_headers)
        assert resp.status_code == 400
        assert "Missing required fields" in resp.get_json()["error"]

    def test_rejects_unknown_category(self, client, manager_headers):
        resp = _create(client, manager_headers, category="furniture")
        assert resp.status_code == 400
        assert "category must be one of" in resp.get_json()["error"]

    def test_rejects_negative_price(self, client, manager_headers):
        resp = _create(client, manager_headers, price_cents=-1)
        assert resp.status_code == 400

    def test_rejects_decimal_price(self, client, manager_headers):
        resp = _create(client, manager_headers, price_cents=15.99)
        assert resp.status_code == 400

    def test_rejects_negative_stock(self, client, manager_headers):
        resp = _create(client, manager_headers, stock_quantity=-5)
        assert resp.status_code == 400

    def test_rejects_unknown_field(self, client, manager_headers):
        resp = _create(client, manager_headers, id=99)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Field not allowed: id"

    def test_duplicate_sku_conflicts(self, client, manager_headers):
        assert _create(client, manager_headers, sku="DUP-1").status_code == 201
        resp = _create(client, manager_headers, sku="DUP-1", name="Other")
        assert resp.status_code == 409

    def test_blank_sku_stored_as_null(self, client, manager_headers):
        first = _create(client, manager_headers, sku="")
        second = _create(client, manager_headers, sku="  ", name="Second")
        assert first.status_code == 201 and second.status_code == 201
        assert first.get_json()["sku"] is None


class TestReadProducts:
    def test_list_newest_first_with_filters(self, client, sales_headers, make_product):
        make_product(name="Dome Camera", category="cctv", sku="CCTV-1")
        make_product(name="Switch", category="networking", sku="NET-1")
        make_product(name="Door Phone", category="intercom", sku="INT-1", is_active=False)

        body = client.get("/api/products", headers=sales_headers).get_json()
        assert [p["name"] for p in body["items"]] == ["Door Phone", "Switch", "Dome Camera"]
        assert body["count"] == 3

        body = client.get("/api/products?category=cctv", headers=sales_headers).get_json()
        assert [p["name"] for p in body["items"]] == ["Dome Camera"]

        body = client.get("/api/products?search=net-", headers=sales_headers).get_json()
        assert [p["sku"] for p in body["items"]] == ["NET-1"]

        body = client.get("/api/products?active_only=true", headers=sales_headers).get_json()
        assert "Door Phone" not in [p["name"] for p in body["items"]]

    def test_pagination(self, client, sales_headers, make_product):
        for _ in range(5):
            make_product()
        body = client.get("/api/products?page=2&per_page=2", headers=sales_headers).get_json()
        assert body["count"] == 2
        assert body["pagination"] == {
            "page": 2,
            "per_page": 2,
            "total": 5,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }

    def test_get_missing_product(self, client, sales_headers):
        resp = client.get("/api/products/9999", headers=sales_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Product not found"

    def test_low_stock_includes_zero_and_skips_inactive(self, client, sales_headers, make_product):
        make_product(name="Plenty", stock_quantity=100, low_stock_threshold=10)
        make_product(name="At threshold", stock_quantity=10, low_stock_threshold=10)
        make_product(name="Empty", stock_quantity=0, low_stock_threshold=5)
        make_product(name="Retired", stock_quantity=0, low_stock_threshold=5, is_active=False)
        make_product(name="Almost", stock_quantity=3, low_stock_threshold=8)

        body = client.get("/api/products/low-stock", headers=sales_headers).get_json()
        assert [p["name"] for p in body["items"]] == ["Empty", "Almost", "At threshold"]
        assert all(p["is_low_stock"] for p in body["items"])


class TestUpdateDeleteProduct:
    def test_patch_stock_and_price(self, client, manager_headers, make_product):
        product = make_product(stock_quantity=5)
        resp = client.patch(
            f"/api/products/{product.id}",
            json={"stock_quantity": 40, "price_cents": 2599},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["stock_quantity"] == 40
        assert body["price_cents"] == 2599

    def test_patch_to_taken_sku_conflicts(self, client, manager_headers, make_product):
        make_product(sku="TAKEN")
        other = make_product(sku="MINE")
        resp = client.patch(f"/api/products/{other.id}", json={"sku": "TAKEN"}, headers=manager_headers)
        assert resp.status_code == 409

    def test_patch_missing_product(self, client, manager_headers):
        resp = client.patch("/api/products/9999", json={"name": "x"}, headers=manager_headers)
        assert resp.status_code == 404

    def test_delete_is_hard(self, client, manager_headers, make_product):
        product = make_product()
        product_id = product.id
        resp = client.delete(f"/api/products/{product_id}", headers=manager_headers)
        assert resp.status_code == 200
        db.session.expire_all()
        assert db.session.get(Product, product_id) is None
        assert client.delete(f"/api/products/{product_id}", headers=manager_headers).status_code == 404

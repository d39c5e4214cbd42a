"""Staff management (admin only)."""

from datetime import datetime

from siliconpos.extensions import db
from siliconpos.models import Sale, User

from conftest import TEST_PASSWORD, auth_headers


def test_list_staff(client, admin_headers, manager_user, sales_user):
    body = client.get("/api/staff", headers=admin_headers).get_json()
    assert body["count"] == 3
    assert {u["username"] for u in body["items"]} == {"admin", "manager", "sales"}
    assert all("password_hash" not in u for u in body["items"])

    body = client.get("/api/staff?role=manager", headers=admin_headers).get_json()
    assert [u["username"] for u in body["items"]] == ["manager"]


class TestCreateStaff:
    def test_create(self, client, admin_headers):
        resp = client.post(
            "/api/staff",
            json={"name": "Grace", "username": "grace", "email": "grace@shop.test",
                  "role": "Manager", "password": TEST_PASSWORD},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["role"] == "manager"
        assert body["is_active"] is True

        login = client.post("/api/auth/login", json={"username": "grace", "password": TEST_PASSWORD})
        assert login.status_code == 200

    def test_defaults_to_sales(self, client, admin_headers):
        resp = client.post(
            "/api/staff",
            json={"name": "Ken", "username": "ken", "password": TEST_PASSWORD},
            headers=admin_headers,
        )
        assert resp.get_json()["role"] == "sales"

    def test_rejects_unknown_role(self, client, admin_headers):
        resp = client.post(
            "/api/staff",
            json={"name": "Eve", "username": "eve", "role": "owner", "password": TEST_PASSWORD},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "role must be one of" in resp.get_json()["error"]

    def test_requires_password(self, client, admin_headers):
        resp = client.post("/api/staff", json={"name": "Eve", "username": "eve"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_weak_password(self, client, admin_headers):
        resp = client.post(
            "/api/staff",
            json={"name": "Eve", "username": "eve", "password": "short"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_duplicate_username_and_email(self, client, admin_headers, sales_user):
        resp = client.post(
            "/api/staff",
            json={"name": "Dup", "username": "sales", "password": TEST_PASSWORD},
            headers=admin_headers,
        )
        assert resp.status_code == 409

        resp = client.post(
            "/api/staff",
            json={"name": "Dup", "username": "other", "email": "sales@siliconpos.test", "password": TEST_PASSWORD},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Email already exists"


class TestUpdateStaff:
    def test_change_role(self, client, admin_headers, sales_user):
        resp = client.patch(f"/api/staff/{sales_user.id}", json={"role": "manager"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["role"] == "manager"

    def test_deactivate_revokes_sessions(self, client, admin_headers, sales_user):
        their_headers = auth_headers(sales_user)
        assert client.get("/api/products", headers=their_headers).status_code == 200

        resp = client.patch(f"/api/staff/{sales_user.id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["is_active"] is False

        assert client.get("/api/products", headers=their_headers).status_code == 401

    def test_password_change_revokes_sessions(self, client, admin_headers, sales_user):
        their_headers = auth_headers(sales_user)
        resp = client.patch(
            f"/api/staff/{sales_user.id}",
            json={"password": "N3w-Password!"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert client.get("/api/products", headers=their_headers).status_code == 401

        login = client.post("/api/auth/login", json={"username": "sales", "password": "N3w-Password!"})
        assert login.status_code == 200

    def test_cannot_deactivate_self(self, client, admin_user, admin_headers):
        resp = client.patch(f"/api/staff/{admin_user.id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "You cannot deactivate your own account"

    def test_username_taken(self, client, admin_headers, sales_user, manager_user):
        resp = client.patch(f"/api/staff/{sales_user.id}", json={"username": "manager"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_missing_user(self, client, admin_headers):
        resp = client.patch("/api/staff/9999", json={"name": "x"}, headers=admin_headers)
        assert resp.status_code == 404


class TestDeleteStaff:
    def test_cannot_delete_self(self, client, admin_user, admin_headers):
        resp = client.delete(f"/api/staff/{admin_user.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "You cannot delete your own account"

    def test_delete_keeps_their_sales(self, client, admin_headers, sales_user, record_sale, make_product):
        sale = record_sale([(make_product(), 1)], at=datetime(2026, 10, 19, 10, 0), staff_user=sales_user)
        sale_id, user_id = sale.id, sales_user.id

        resp = client.delete(f"/api/staff/{user_id}", headers=admin_headers)
        assert resp.status_code == 200

        db.session.expire_all()
        assert db.session.get(User, user_id) is None
        kept = db.session.get(Sale, sale_id)
        assert kept is not None
        assert kept.staff_user_id is None

    def test_delete_missing(self, client, admin_headers):
        assert client.delete("/api/staff/9999", headers=admin_headers).status_code == 404

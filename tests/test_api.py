import pytest
from fastapi.testclient import TestClient

from warehouse.main import create_app


@pytest.fixture
def client(engine, session_factory):
    app = create_app(session_factory=session_factory, bind=engine, start_sync=False)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_client(client):
    response = client.post("/api/v1/auth/login", json={"username": "admin", "password": "admin123"})
    assert response.status_code == 200, response.text
    return client


def _first(client, path):
    return client.get(path).json()[0]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestAuth:
    def test_requires_login(self, client):
        assert client.get("/api/v1/materials").status_code == 401

    def test_bad_password(self, client):
        response = client.post("/api/v1/auth/login", json={"username": "admin", "password": "nope"})
        assert response.status_code == 401

    def test_me_and_logout(self, admin_client):
        me = admin_client.get("/api/v1/auth/me").json()
        assert me["username"] == "admin"
        assert "password_hash" not in me
        admin_client.post("/api/v1/auth/logout")
        assert admin_client.get("/api/v1/auth/me").status_code == 401

    def test_duplicate_username_is_conflict(self, admin_client):
        payload = {"username": "admin", "password": "secret123", "name": "Again", "email": "a@example.com"}
        assert admin_client.post("/api/v1/auth/users", json=payload).status_code == 409

    def test_staff_cannot_adjust(self, admin_client):
        payload = {"username": "clerk", "password": "secret123", "name": "Clerk", "email": "c@example.com"}
        assert admin_client.post("/api/v1/auth/users", json=payload).status_code == 201
        admin_client.post("/api/v1/auth/login", json={"username": "clerk", "password": "secret123"})

        item = _first(admin_client, "/api/v1/inventory")["item"]
        response = admin_client.post(
            f"/api/v1/inventory/{item['id']}/adjust", json={"quantity": 1, "reason": "recount"}
        )
        assert response.status_code == 403

    def test_catalog_edits_need_login_only(self, client, admin_client):
        payload = {"username": "clerk", "password": "secret123", "name": "Clerk", "email": "c@example.com"}
        assert admin_client.post("/api/v1/auth/users", json=payload).status_code == 201
        admin_client.post("/api/v1/auth/logout")
        assert client.post("/api/v1/categories", json={"name": "Paint"}).status_code == 401

        client.post("/api/v1/auth/login", json={"username": "clerk", "password": "secret123"})
        assert client.post("/api/v1/categories", json={"name": "Paint"}).status_code == 201


class TestInventoryFlow:
    def test_stock_in_then_out(self, admin_client):
        supplier = _first(admin_client, "/api/v1/suppliers")
        project = _first(admin_client, "/api/v1/projects")
        material = _first(admin_client, "/api/v1/materials")

        response = admin_client.post(
            "/api/v1/stock-in",
            json={
                "supplier_id": supplier["id"],
                "order_date": "2024-03-05T10:00:00Z",
                "status": "completed",
                "items": [{"material_id": material["id"], "quantity": 20, "unit_price": 2.5}],
            },
        )
        assert response.status_code == 201, response.text
        order = response.json()
        assert order["order_number"] == "RK20240305001"
        assert order["total_amount"] == 50

        response = admin_client.post(
            "/api/v1/stock-out",
            json={
                "project_id": project["id"],
                "order_date": "2024-03-06T10:00:00Z",
                "status": "completed",
                "recipient_name": "Foreman",
                "items": [{"material_id": material["id"], "quantity": 25}],
            },
        )
        assert response.status_code == 400
        assert response.json()["current"] == 20

        rows = admin_client.get("/api/v1/inventory", params={"search": material["name"]}).json()
        assert rows[0]["item"]["quantity"] == 20
        assert admin_client.get("/api/v1/inventory/reconcile").json() == []

    def test_adjust_and_transactions(self, admin_client):
        item = _first(admin_client, "/api/v1/inventory")["item"]
        response = admin_client.post(
            f"/api/v1/inventory/{item['id']}/adjust", json={"quantity": 4, "reason": "recount"}
        )
        assert response.status_code == 200
        assert response.json()["quantity"] == 4

        response = admin_client.post(
            f"/api/v1/inventory/{item['id']}/adjust", json={"quantity": -5, "reason": "damage"}
        )
        assert response.status_code == 400
        assert response.json()["delta"] == -5

        response = admin_client.post(
            f"/api/v1/inventory/{item['id']}/adjust", json={"quantity": 0, "reason": "noop"}
        )
        assert response.status_code == 400
        assert "quantity" in response.json()["fields"]

        [tx] = admin_client.get("/api/v1/inventory/transactions").json()
        assert tx["notes"] == "Reason: recount. Notes: none"

    def test_unknown_order_is_404(self, admin_client):
        assert admin_client.get("/api/v1/stock-in/missing").status_code == 404
        assert admin_client.delete("/api/v1/stock-out/missing").status_code == 404


class TestDashboardAndSync:
    def test_dashboard_tracks_writes(self, admin_client):
        dashboard = admin_client.get("/api/v1/dashboard").json()
        assert dashboard["total_quantity"] == 0
        assert dashboard["sync"]["status"] == "synced"

        item = _first(admin_client, "/api/v1/inventory")["item"]
        admin_client.post(f"/api/v1/inventory/{item['id']}/adjust", json={"quantity": 3, "reason": "found"})

        dashboard = admin_client.get("/api/v1/dashboard").json()
        assert dashboard["total_quantity"] == 3
        assert dashboard["recent_activities"][0]["type"] == "adjustment"

    def test_manual_refresh(self, admin_client):
        response = admin_client.post("/api/v1/sync/refresh").json()
        assert response["refreshed"] is True
        assert response["last_source"] == "focus"
        assert admin_client.get("/api/v1/sync/status").json()["status"] == "synced"

    def test_inventory_report(self, admin_client):
        report = admin_client.get("/api/v1/reports/inventory").json()
        assert report["total_materials"] == 4
        assert report["low_stock_count"] == 4

"""HTTP surface tests, run against the in-memory gateway."""

import pytest
from fastapi.testclient import TestClient

from config.constants import PROFILES
from database import get_gateway
from main import app


@pytest.fixture
def client(gateway):
    app.dependency_overrides[get_gateway] = lambda: gateway
    # no context manager: startup would try to build Mongo indexes
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def signup(client, name, email, password="secret123"):
    response = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
    assert response.status_code == 200, response.text
    body = response.json()
    return body["access_token"], body["user"]["id"]


@pytest.fixture
def seller_token(client):
    token, _ = signup(client, "Sarah Chen", "sarah@example.com")
    response = client.post(
        "/api/auth/become-seller",
        json={"bio": "Full-stack developer", "skills": ["React"], "languages": ["English"]},
        headers=auth(token),
    )
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


@pytest.fixture
def service_id(client, seller_token):
    response = client.post(
        "/api/services",
        json={
            "title": "I will build a responsive website",
            "description": "Modern website built with React",
            "category": "Web Development",
            "tags": ["React"],
            "basic": {"price": 100, "delivery_days": 3, "revisions": 1},
        },
        headers=auth(seller_token),
    )
    assert response.status_code == 200, response.text
    return response.json()["id"]


class TestAuthRoutes:
    def test_signup_login_me(self, client):
        signup(client, "Emma Watson", "emma@example.com")

        response = client.post("/api/auth/login", json={"email": "emma@example.com", "password": "secret123"})
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = client.get("/api/auth/me", headers=auth(token)).json()
        assert me["user"]["email"] == "emma@example.com"
        assert me["current_mode"] == "buyer"
        assert "password_hash" not in me["user"]

    def test_duplicate_signup_and_bad_login(self, client):
        signup(client, "Emma", "emma@example.com")

        response = client.post(
            "/api/auth/signup",
            json={"name": "Emma", "email": "emma@example.com", "password": "secret123"},
        )
        assert response.status_code == 400

        response = client.post("/api/auth/login", json={"email": "emma@example.com", "password": "nope"})
        assert response.status_code == 401

    def test_me_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401
        assert client.get("/api/auth/me", headers=auth("garbage")).status_code == 401

    def test_buyer_switch_mode_is_ignored(self, client):
        token, _ = signup(client, "Emma", "emma@example.com")

        response = client.post("/api/auth/switch-mode", json={"mode": "seller"}, headers=auth(token))

        assert response.status_code == 200
        assert response.json() == {"current_mode": "buyer"}

    def test_seller_mode_survives_requests(self, client, seller_token):
        response = client.post("/api/auth/switch-mode", json={"mode": "buyer"}, headers=auth(seller_token))
        assert response.json() == {"current_mode": "buyer"}

        me = client.get("/api/auth/me", headers=auth(seller_token)).json()
        assert me["current_mode"] == "buyer"


class TestMarketplaceFlow:
    def test_browse_and_detail(self, client, service_id):
        listing = client.get("/api/services", params={"q": "react", "sort": "rating"}).json()
        assert listing["count"] == 1
        assert listing["services"][0]["from_price"] == 100

        assert client.get("/api/services", params={"sort": "cheapest"}).status_code == 400
        assert client.get(f"/api/services/{service_id}").json()["title"].startswith("I will build")
        assert client.get("/api/services/missing").status_code == 404

    def test_buyer_cannot_create_service(self, client):
        token, _ = signup(client, "Emma", "emma@example.com")
        response = client.post("/api/services", json={}, headers=auth(token))
        assert response.status_code == 403

    def test_order_lifecycle(self, client, seller_token, service_id):
        buyer_token, _ = signup(client, "Emma", "emma@example.com")

        response = client.post(
            "/api/orders",
            json={"service_id": service_id, "package": "basic", "requirements": "Three pages"},
            headers=auth(buyer_token),
        )
        assert response.status_code == 200, response.text
        order_id = response.json()["id"]

        response = client.post(
            "/api/orders", json={"service_id": service_id, "package": "premium"}, headers=auth(buyer_token)
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "InvalidPackage"

        def move(status, token):
            return client.post(f"/api/orders/{order_id}/status", json={"status": status}, headers=auth(token))

        assert move("in_progress", seller_token).status_code == 200
        deliver = client.post(
            f"/api/orders/{order_id}/deliver", json={"deliverables": ["site.zip"]}, headers=auth(seller_token)
        )
        assert deliver.status_code == 200
        assert move("completed", buyer_token).status_code == 200
        assert move("pending", buyer_token).status_code == 409

        order = client.get(f"/api/orders/{order_id}", headers=auth(seller_token)).json()
        assert order["status"] == "completed"
        assert order["commission_amount"] == 15
        assert order["seller_payout"] == 85

        stats = client.get("/api/orders/stats", headers=auth(seller_token)).json()
        assert stats["total_earnings"] == 85
        assert stats["unread_messages"] == 0

        review = client.post(f"/api/reviews/{order_id}", json={"rating": 5, "comment": "Great"}, headers=auth(buyer_token))
        assert review.status_code == 200
        reviews = client.get(f"/api/reviews/service/{service_id}").json()
        assert reviews["count"] == 1

        timeline = client.get(f"/api/orders/{order_id}/timeline", headers=auth(buyer_token)).json()
        assert [e["event"] for e in timeline["events"]] == [
            "ORDER_CREATED",
            "ORDER_IN_PROGRESS",
            "ORDER_DELIVERED",
            "ORDER_COMPLETED",
        ]

    def test_messaging(self, client, seller_token):
        buyer_token, _ = signup(client, "Emma", "emma@example.com")
        seller_id = client.get("/api/auth/me", headers=auth(seller_token)).json()["user"]["id"]

        sent = client.post(
            "/api/messages", json={"receiver_id": seller_id, "content": "Hello"}, headers=auth(buyer_token)
        )
        assert sent.status_code == 200

        conversations = client.get("/api/messages/conversations", headers=auth(seller_token)).json()
        assert conversations["count"] == 1
        assert conversations["conversations"][0]["unread_count"] == 1

        read = client.post(f"/api/messages/{sent.json()['id']}/read", headers=auth(seller_token))
        assert read.status_code == 200


class TestAdminRoutes:
    def test_admin_only(self, client, gateway):
        token, user_id = signup(client, "Admin", "admin@example.com")
        assert client.get("/api/admin/settings", headers=auth(token)).status_code == 403

        gateway.table(PROFILES).rows[user_id]["role"] = "admin"

        response = client.patch("/api/admin/settings", json={"commission_rate": 12}, headers=auth(token))
        assert response.status_code == 200
        assert client.get("/api/admin/settings", headers=auth(token)).json()["commission_rate"] == 12
        assert client.get("/api/admin/analytics", headers=auth(token)).json()["total_users"] == 1

        public = client.get("/api/public/settings").json()
        assert "commission_rate" not in public

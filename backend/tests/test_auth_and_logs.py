from datetime import date, timedelta

from utils.tokenJWT import create_access_token


def test_me_returns_bearer(client, customer, customer_headers):
    response = client.get("/me", headers=customer_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == customer.email
    assert data["is_admin"] is False


def test_bad_token_rejected(client):
    response = client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Could not validate credentials", "errors": None}


def test_token_for_unknown_user_rejected(client):
    token = create_access_token({"sub": "ghost@example.com"})
    assert client.get("/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_logs_admin_only(client, customer_headers):
    assert client.get("/logs", headers=customer_headers).status_code == 403


def test_logs_filters(client, admin, admin_headers, category):
    client.post("/categories", json={"name": "Bags"}, headers=admin_headers)
    client.post("/categories", json={"name": "Belts"}, headers=admin_headers)

    def total(**params):
        return client.get("/logs", params=params, headers=admin_headers).json()["data"]["total"]

    assert total() == 2
    assert total(action="category_create") == 2
    assert total(resource="orders") == 0
    assert total(user_id=admin.id, status="success") == 2
    today = date.today()
    assert total(date_from=(today - timedelta(days=1)).isoformat(), date_to=(today + timedelta(days=1)).isoformat()) == 2
    assert total(date_from=(today + timedelta(days=2)).isoformat()) == 0


def test_logs_reject_malformed_dates(client, admin_headers):
    response = client.get("/logs", params={"date_from": "yesterday"}, headers=admin_headers)
    assert response.status_code == 422
    assert "query.date_from" in response.json()["errors"]

from decimal import Decimal

from conftest import order_payload
from models.order import Order
from models.payment import Payment


def _set_status(client, admin_headers, order_id, status):
    return client.put(f"/orders/{order_id}", json={"status": status}, headers=admin_headers)


# ---- creation ----

def test_cod_order_gets_pending_payment_for_full_total(place_order, product):
    order = place_order([{"product_id": product.id, "quantity": 2}])

    assert order["status"] == "pending"
    assert order["total_amount"] == 20.0
    assert order["items"][0]["price_at_purchase"] == 10.0
    assert order["items"][0]["line_total"] == 20.0
    assert len(order["payments"]) == 1
    payment = order["payments"][0]
    assert payment["status"] == "pending"
    assert payment["amount"] == 20.0
    assert payment["payment_provider"] == "cod"


def test_card_order_has_no_implicit_payment(place_order, product):
    order = place_order([{"product_id": product.id, "quantity": 1}], payment_method="card")
    assert order["payments"] == []


def test_total_keeps_snapshot_price_after_product_changes(client, place_order, product, admin_headers, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 2}])

    response = client.put(f"/products/{product.id}", json={"price": "99.00"}, headers=admin_headers)
    assert response.status_code == 200

    response = client.get(f"/orders/{order['id']}", headers=customer_headers)
    data = response.json()["data"]
    assert data["total_amount"] == 20.0
    assert data["items"][0]["price_at_purchase"] == 10.0


def test_missing_product_aborts_whole_order(client, db, product, customer_headers):
    payload = order_payload([
        {"product_id": product.id, "quantity": 1},
        {"product_id": 9999, "quantity": 1},
    ])
    response = client.post("/orders", json=payload, headers=customer_headers)

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Product not found: 9999"
    assert db.query(Order).count() == 0
    assert db.query(Payment).count() == 0


def test_order_requires_items(client, customer_headers):
    response = client.post("/orders", json=order_payload([]), headers=customer_headers)
    assert response.status_code == 422
    body = response.json()
    assert body["message"] == "Validation Error"
    assert "items" in body["errors"]


def test_order_requires_valid_email(client, product, customer_headers):
    payload = order_payload([{"product_id": product.id, "quantity": 1}], email="not-an-email")
    response = client.post("/orders", json=payload, headers=customer_headers)
    assert response.status_code == 422
    assert "email" in response.json()["errors"]


def test_order_requires_authentication(client, product):
    response = client.post("/orders", json=order_payload([{"product_id": product.id, "quantity": 1}]))
    assert response.status_code in (401, 403)
    assert response.json()["success"] is False


def test_order_from_cart_clears_cart(client, place_order, product, customer_headers):
    cart = client.post("/cart/items", json={"product_id": product.id, "quantity": 2},
                       headers=customer_headers).json()["data"]
    assert len(cart["items"]) == 1

    place_order([{"product_id": product.id, "quantity": 2}], from_cart_id=cart["id"])

    cart = client.get("/cart", headers=customer_headers).json()["data"]
    assert cart["items"] == []


def test_admin_places_order_for_customer(client, product, customer, admin_headers):
    payload = order_payload([{"product_id": product.id, "quantity": 1}], user_id=customer.id)
    response = client.post("/orders", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["data"]["user_id"] == customer.id


def test_customer_cannot_place_order_for_someone_else(client, product, other_customer, customer_headers):
    payload = order_payload([{"product_id": product.id, "quantity": 1}], user_id=other_customer.id)
    response = client.post("/orders", json=payload, headers=customer_headers)
    assert response.status_code == 422
    assert "user_id" in response.json()["errors"]


# ---- status machine ----

def test_delivered_marks_cod_payment_success(client, place_order, product, admin_headers):
    order = place_order([{"product_id": product.id, "quantity": 2}])

    response = _set_status(client, admin_headers, order["id"], "delivered")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "delivered"
    assert [p["status"] for p in data["payments"]] == ["success"]


def test_delivered_creates_cod_payment_when_missing(client, place_order, product, admin_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])
    payment_id = order["payments"][0]["id"]
    assert client.delete(f"/payments/{payment_id}", headers=admin_headers).status_code == 200

    data = _set_status(client, admin_headers, order["id"], "delivered").json()["data"]

    assert len(data["payments"]) == 1
    assert data["payments"][0]["status"] == "success"
    assert data["payments"][0]["amount"] == 10.0


def test_status_walks_forward(client, place_order, product, admin_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}], payment_method="card")
    for status in ("paid", "shipped", "delivered"):
        response = _set_status(client, admin_headers, order["id"], status)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == status


def test_terminal_status_cannot_move(client, place_order, product, admin_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])
    _set_status(client, admin_headers, order["id"], "delivered")

    response = _set_status(client, admin_headers, order["id"], "pending")

    assert response.status_code == 400
    assert response.json()["message"] == "Cannot change order status from delivered to pending"


def test_shipped_order_cannot_go_back_to_paid(client, place_order, product, admin_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}], payment_method="card")
    _set_status(client, admin_headers, order["id"], "shipped")
    assert _set_status(client, admin_headers, order["id"], "paid").status_code == 400


def test_unknown_status_is_validation_error(client, place_order, product, admin_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])
    response = _set_status(client, admin_headers, order["id"], "lost")
    assert response.status_code == 422
    assert "status" in response.json()["errors"]


def test_status_update_is_admin_only(client, place_order, product, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])
    response = _set_status(client, customer_headers, order["id"], "paid")
    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Admin access required", "errors": None}


# ---- cancel ----

def test_cancel_paid_card_order_leaves_payments_alone(client, place_order, product, admin_headers, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}], payment_method="card")
    _set_status(client, admin_headers, order["id"], "paid")

    response = client.post(f"/orders/{order['id']}/cancel", headers=customer_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "cancelled"
    assert data["payments"] == []


def test_cancel_cod_order_fails_pending_payment(client, place_order, product, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])

    data = client.post(f"/orders/{order['id']}/cancel", headers=customer_headers).json()["data"]

    assert data["status"] == "cancelled"
    assert [p["status"] for p in data["payments"]] == ["failed"]


def test_cancel_cod_order_without_payment_records_failed_one(client, place_order, product, admin_headers, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])
    client.delete(f"/payments/{order['payments'][0]['id']}", headers=admin_headers)

    data = client.post(f"/orders/{order['id']}/cancel", headers=customer_headers).json()["data"]

    assert [p["status"] for p in data["payments"]] == ["failed"]


def test_cancel_rejected_once_shipped(client, place_order, product, admin_headers, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])
    _set_status(client, admin_headers, order["id"], "shipped")

    response = client.post(f"/orders/{order['id']}/cancel", headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Cannot cancel order with status: shipped"


def test_cancel_twice_rejected(client, place_order, product, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])
    client.post(f"/orders/{order['id']}/cancel", headers=customer_headers)
    assert client.post(f"/orders/{order['id']}/cancel", headers=customer_headers).status_code == 400


# ---- delete ----

def test_delete_pending_and_cancelled_orders(client, db, place_order, product, customer_headers):
    pending = place_order([{"product_id": product.id, "quantity": 1}])
    cancelled = place_order([{"product_id": product.id, "quantity": 1}])
    client.post(f"/orders/{cancelled['id']}/cancel", headers=customer_headers)

    for order in (pending, cancelled):
        response = client.delete(f"/orders/{order['id']}", headers=customer_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": None, "message": "Order deleted successfully"}

    assert db.query(Order).count() == 0
    assert db.query(Payment).count() == 0


def test_delete_rejected_for_progressed_orders(client, place_order, product, admin_headers):
    for status in ("paid", "shipped", "delivered"):
        order = place_order([{"product_id": product.id, "quantity": 1}], payment_method="card")
        _set_status(client, admin_headers, order["id"], status)

        response = client.delete(f"/orders/{order['id']}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == f"Cannot delete order with status: {status}"


# ---- line items ----

def test_item_edits_recompute_total_from_snapshots(client, db, place_order, make_product, admin_headers, customer_headers):
    shoe = make_product(name="Shoe", price="10.00")
    sock = make_product(name="Sock", price="5.50")
    order = place_order([
        {"product_id": shoe.id, "quantity": 2},
        {"product_id": sock.id, "quantity": 1},
    ], payment_method="card")
    assert order["total_amount"] == 25.5
    shoe_line, sock_line = order["items"]

    # Catalog price changes must not leak into the order
    client.put(f"/products/{shoe.id}", json={"price": "50.00"}, headers=admin_headers)

    response = client.put(
        f"/orders/{order['id']}/items/{shoe_line['id']}", json={"quantity": 3}, headers=customer_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["total_amount"] == 35.5

    response = client.delete(f"/orders/{order['id']}/items/{sock_line['id']}", headers=customer_headers)
    data = response.json()["data"]
    assert data["total_amount"] == 30.0
    assert [item["id"] for item in data["items"]] == [shoe_line["id"]]

    db.expire_all()
    assert db.get(Order, order["id"]).total_amount == Decimal("30.00")


def test_removing_last_item_zeroes_total(client, place_order, product, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}], payment_method="card")
    item_id = order["items"][0]["id"]

    data = client.delete(f"/orders/{order['id']}/items/{item_id}", headers=customer_headers).json()["data"]

    assert data["items"] == []
    assert data["total_amount"] == 0.0


def test_items_locked_once_order_leaves_pending(client, place_order, product, admin_headers, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}], payment_method="card")
    _set_status(client, admin_headers, order["id"], "paid")
    item_id = order["items"][0]["id"]

    response = client.put(f"/orders/{order['id']}/items/{item_id}", json={"quantity": 4}, headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Only pending orders can be modified"


def test_unknown_order_item(client, place_order, product, customer_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])
    response = client.put(f"/orders/{order['id']}/items/424242", json={"quantity": 2}, headers=customer_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Order item not found"


# ---- access ----

def test_customers_only_see_their_own_orders(client, place_order, product, other_headers, customer_headers, admin_headers):
    mine = place_order([{"product_id": product.id, "quantity": 1}])
    theirs = place_order([{"product_id": product.id, "quantity": 1}], headers=other_headers)

    listed = client.get("/orders", headers=customer_headers).json()["data"]
    assert [o["id"] for o in listed] == [mine["id"]]

    response = client.get(f"/orders/{theirs['id']}", headers=customer_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Order not found"

    assert client.post(f"/orders/{theirs['id']}/cancel", headers=customer_headers).status_code == 404

    everything = client.get("/orders", headers=admin_headers).json()["data"]
    assert {o["id"] for o in everything} == {mine["id"], theirs["id"]}


def test_admin_filters_orders(client, place_order, product, customer, customer_headers, other_headers, admin_headers):
    first = place_order([{"product_id": product.id, "quantity": 1}])
    place_order([{"product_id": product.id, "quantity": 1}], headers=other_headers)
    client.post(f"/orders/{first['id']}/cancel", headers=customer_headers)

    by_user = client.get("/orders", params={"user_id": customer.id}, headers=admin_headers).json()["data"]
    assert [o["id"] for o in by_user] == [first["id"]]

    cancelled = client.get("/orders", params={"status": "cancelled"}, headers=admin_headers).json()["data"]
    assert [o["id"] for o in cancelled] == [first["id"]]


def test_order_mutations_are_audited(client, place_order, product, admin_headers):
    order = place_order([{"product_id": product.id, "quantity": 1}])

    logs = client.get("/logs", params={"action": "ORDER_CREATE"}, headers=admin_headers).json()["data"]

    assert logs["total"] == 1
    assert logs["items"][0]["meta"]["order_id"] == order["id"]
    assert logs["items"][0]["status"] == "SUCCESS"

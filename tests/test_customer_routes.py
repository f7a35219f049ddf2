from app.version import API_PREFIX

BASE = f"{API_PREFIX}/customer"

ORDER = {
    "items": [
        {"product_id": "p1", "vendor_id": "v1", "title": "Mug", "quantity": 2, "unit_price": "40.00"},
        {"product_id": "p2", "vendor_id": "v2", "quantity": 1, "unit_price": "40.00"},
    ],
    "shipping_address": {"street": "1 Main St", "city": "Springfield", "zip_code": "12345"},
    "shipping_method": "standard",
    "subtotal": "120.00",
    "shipping_cost": "5.00",
    "tax": "0.00",
    "total": "125.00",
}


def _create(client, headers, body=ORDER):
    return client.post(f"{BASE}/orders", json=body, headers=headers)


def test_create_order(client, auth):
    resp = _create(client, auth("c1", "customer"))
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["order_number"].startswith("ORD-")
    assert data["status"] == "pending"
    assert data["escrow_status"] == "held"
    assert data["escrow_amount"] == 125.0
    assert data["vendor_shares"] == {"v1": 80.0, "v2": 40.0}
    assert len(data["items"]) == 2


def test_create_order_validation(client, auth):
    headers = auth("c1", "customer")
    resp = _create(client, headers, {**ORDER, "items": []})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Validation failed"

    resp = _create(client, headers, {**ORDER, "total": "100.00"})
    assert resp.status_code == 400
    assert "vendor shares" in resp.get_json()["message"]

    resp = _create(client, headers, {**ORDER, "shipping_method": "teleport"})
    assert resp.status_code == 400


def test_list_and_get_orders(client, auth):
    headers = auth("c1", "customer")
    order_id = _create(client, headers).get_json()["data"]["id"]
    _create(client, headers)
    _create(client, auth("c2", "customer"))

    resp = client.get(f"{BASE}/orders?limit=1", headers=headers)
    body = resp.get_json()["data"]
    assert body["pagination"] == {"total": 2, "page": 1, "limit": 1, "pages": 2}
    assert len(body["orders"]) == 1

    assert client.get(f"{BASE}/orders/{order_id}", headers=headers).status_code == 200
    assert client.get(f"{BASE}/orders/{order_id}", headers=auth("c2", "customer")).status_code == 404


def test_cancel_order(client, auth):
    headers = auth("c1", "customer")
    order_id = _create(client, headers).get_json()["data"]["id"]
    resp = client.post(f"{BASE}/orders/{order_id}/cancel", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "cancelled"

    again = client.post(f"{BASE}/orders/{order_id}/cancel", headers=headers)
    assert again.status_code == 409
    assert again.get_json()["status"] == "error"


def test_delivery_proof_lookup(client, auth):
    headers = auth("c1", "customer")
    order_id = _create(client, headers).get_json()["data"]["id"]
    resp = client.get(f"{BASE}/orders/{order_id}/delivery-proof", headers=headers)
    assert resp.status_code == 404

    client.post(
        f"{API_PREFIX}/vendor/orders/{order_id}/delivery-proof",
        json={"image_url": "https://cdn.example/a.jpg", "image_id": "a"},
        headers=auth("v1", "vendor"),
    )
    resp = client.get(f"{BASE}/orders/{order_id}/delivery-proof", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["image_id"] == "a"
    other = client.get(f"{BASE}/orders/{order_id}/delivery-proof", headers=auth("c2", "customer"))
    assert other.status_code == 404


def test_spending_balance(client, auth):
    headers = auth("c1", "customer")
    resp = client.get(f"{BASE}/balance", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["spending_balance"] == 1000000.0

    resp = client.post(f"{BASE}/balance/deduct", json={"amount": "250.00", "description": "Order"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["spending_balance"] == 999750.0

    resp = client.post(f"{BASE}/balance/deduct", json={"amount": "1000000.00"}, headers=headers)
    assert resp.status_code == 400

    resp = client.post(f"{BASE}/balance/add", json={"amount": "50"}, headers=headers)
    assert resp.get_json()["data"]["spending_balance"] == 999800.0

    resp = client.post(f"{BASE}/balance/add", json={"amount": "-5"}, headers=headers)
    assert resp.status_code == 400

    txns = client.get(f"{BASE}/balance/transactions", headers=headers).get_json()["data"]["transactions"]
    assert [t["type"] for t in txns] == ["add", "deduct"]


def test_customer_routes_require_customer_role(client, auth):
    assert client.get(f"{BASE}/orders").status_code == 401
    assert client.get(f"{BASE}/orders", headers=auth("v1", "vendor")).status_code == 403

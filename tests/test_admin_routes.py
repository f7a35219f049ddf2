from app.version import API_PREFIX

BASE = f"{API_PREFIX}/admin"


def _upload(client, auth, order_id, vendor_id="v1", image_id="img"):
    resp = client.post(
        f"{API_PREFIX}/vendor/orders/{order_id}/delivery-proof",
        json={"image_url": f"https://cdn.example/{image_id}.jpg", "image_id": image_id},
        headers=auth(vendor_id, "vendor"),
    )
    return resp.get_json()["data"]["id"]


def test_dashboard_counts(client, auth, place_order):
    order_id = place_order(lines=(("v1", "80.00", 1), ("v2", "40.00", 1)))
    place_order(lines=(("v1", "5.00", 1),))
    _upload(client, auth, order_id)
    resp = client.get(f"{BASE}/dashboard", headers=auth("admin-1", "admin"))
    assert resp.status_code == 200
    stats = resp.get_json()["data"]["stats"]
    assert stats["total_orders"] == 2
    assert stats["pending_orders"] == 2
    assert stats["delivered_orders"] == 0
    assert stats["pending_proofs"] == 1
    assert stats["total_vendors"] == 2
    assert stats["escrow_held"] == 125.0


def test_order_listing_with_filter(client, auth, place_order, services):
    ids = [place_order() for _ in range(3)]
    client.patch(f"{BASE}/orders/{ids[0]}/status", json={"status": "processing"}, headers=auth("a", "admin"))
    resp = client.get(f"{BASE}/orders?status=pending&limit=1&page=2", headers=auth("a", "admin"))
    body = resp.get_json()["data"]
    assert body["pagination"] == {"total": 2, "page": 2, "limit": 1, "pages": 2}
    assert len(body["orders"]) == 1
    everything = client.get(f"{BASE}/orders?status=all", headers=auth("a", "admin")).get_json()["data"]
    assert everything["pagination"]["total"] == 3
    assert everything["pagination"]["limit"] == 20


def test_delivered_status_releases_escrow(client, auth, place_order, services):
    order_id = place_order(lines=(("v1", "80.00", 1), ("v2", "40.00", 1)))
    headers = auth("admin-1", "admin")
    resp = client.patch(
        f"{BASE}/orders/{order_id}/status", json={"status": "delivered", "admin_notes": "signed"}, headers=headers
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "delivered"
    assert data["escrow_status"] == "released"
    assert float(services.ledger.vendor_balance("v1", refresh=True).available_balance) == 80.0

    resp = client.patch(f"{BASE}/orders/{order_id}/status", json={"status": "pending"}, headers=headers)
    assert resp.status_code == 409
    resp = client.patch(f"{BASE}/orders/{order_id}/status", json={"status": "lost"}, headers=headers)
    assert resp.status_code == 400


def test_proof_review_flow(client, auth, place_order):
    order_id = place_order()
    proof_id = _upload(client, auth, order_id)
    headers = auth("admin-1", "admin")

    queue = client.get(f"{BASE}/delivery-proofs", headers=headers).get_json()["data"]
    assert [p["id"] for p in queue["proofs"]] == [proof_id]
    assert queue["proofs"][0]["order"]["status"] == "pending"

    resp = client.patch(
        f"{BASE}/delivery-proofs/{proof_id}/review", json={"action": "approve", "admin_notes": "ok"}, headers=headers
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["verification_status"] == "approved"
    assert data["order"]["status"] == "shipped"

    again = client.patch(f"{BASE}/delivery-proofs/{proof_id}/review", json={"action": "reject"}, headers=headers)
    assert again.status_code == 409
    bad = client.patch(f"{BASE}/delivery-proofs/{proof_id}/review", json={"action": "burn"}, headers=headers)
    assert bad.status_code == 400
    missing = client.patch(f"{BASE}/delivery-proofs/999/review", json={"action": "approve"}, headers=headers)
    assert missing.status_code == 404

    approved = client.get(f"{BASE}/delivery-proofs?status=approved", headers=headers).get_json()["data"]
    assert approved["pagination"]["total"] == 1


def test_release_escrow_endpoint(client, auth, place_order):
    order_id = place_order(lines=(("v1", "80.00", 1), ("v2", "40.00", 1)))
    headers = auth("admin-1", "admin")
    resp = client.post(f"{BASE}/orders/{order_id}/release-escrow", json={"reason": "manual"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["escrow_status"] == "released"

    again = client.post(f"{BASE}/orders/{order_id}/release-escrow", headers=headers)
    assert again.status_code == 409

    vendors = client.get(f"{BASE}/vendors", headers=headers).get_json()["data"]["vendors"]
    assert [(v["vendor_id"], v["available_balance"]) for v in vendors] == [("v1", 80.0), ("v2", 40.0)]


def test_refund_escrow_endpoint(client, auth, place_order):
    order_id = place_order(lines=(("v1", "80.00", 1),))
    headers = auth("admin-1", "admin")
    resp = client.post(f"{BASE}/orders/{order_id}/refund-escrow", json={}, headers=headers)
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["escrow_status"] == "refunded"
    assert data["payment_status"] == "refunded"
    assert client.post(f"{BASE}/orders/{order_id}/release-escrow", headers=headers).status_code == 409
    assert client.post(f"{BASE}/orders/424242/refund-escrow", headers=headers).status_code == 404


def test_admin_routes_require_admin(client, auth):
    assert client.get(f"{BASE}/dashboard", headers=auth("v1", "vendor")).status_code == 403
    assert client.get(f"{BASE}/dashboard", headers=auth("c1", "customer")).status_code == 403

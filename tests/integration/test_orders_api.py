"""Order routes end to end, priced through the mocked products service."""

API = "/api/v1/orders"


def headers(raw_key):
    return {"X-API-Key": raw_key}


def order_body(customer_id, items=None, **overrides):
    body = {
        "date": "2026-01-15",
        "payment_method": "transfer",
        "customer_id": customer_id,
        "items": items or [
            {"product_id": 1, "kind": "service"},
            {"product_id": 2, "kind": "bundle"},
        ],
    }
    body.update(overrides)
    return body


def test_create_order_prices_items(client, frontend_key, customer):
    response = client.post(API, json=order_body(customer.id), headers=headers(frontend_key))

    assert response.status_code == 201
    body = response.json()
    assert body["total_amount"] == 120000.0
    assert [i["unit_price"] for i in body["items"]] == [45000.0, 75000.0]
    assert body["customer"]["full_name"] == "ANA GARCIA"


def test_empty_items_rejected(client, frontend_key, customer):
    response = client.post(API, json=order_body(customer.id, items=[]), headers=headers(frontend_key))
    assert response.status_code == 422


def test_invalid_kind_rejected(client, frontend_key, customer):
    response = client.post(
        API,
        json=order_body(customer.id, items=[{"product_id": 1, "kind": "gadget"}]),
        headers=headers(frontend_key),
    )
    assert response.status_code == 422


def test_unknown_customer(client, frontend_key):
    response = client.post(API, json=order_body(999), headers=headers(frontend_key))
    assert response.status_code == 404
    assert response.json()["error"] == "customer_not_found"


def test_pricing_failure_reports_items(client, frontend_key, customer, products):
    products.fail("bundle", 2, 500, 500, 500)

    response = client.post(API, json=order_body(customer.id), headers=headers(frontend_key))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "pricing_error"
    assert body["reason"] == "partial_batch_failure"
    assert body["failures"][0]["index"] == 1
    assert client.get(API, headers=headers(frontend_key)).json() == []


def test_update_and_delete(client, frontend_key, customer):
    created = client.post(API, json=order_body(customer.id), headers=headers(frontend_key)).json()
    url = f"{API}/{created['id']}"

    updated = client.put(
        url,
        json=order_body(customer.id, items=[{"product_id": 2, "kind": "bundle"}]),
        headers=headers(frontend_key),
    )
    assert updated.status_code == 200
    assert updated.json()["total_amount"] == 75000.0
    assert len(updated.json()["items"]) == 1

    assert client.delete(url, headers=headers(frontend_key)).status_code == 204
    missing = client.get(url, headers=headers(frontend_key))
    assert missing.status_code == 404
    assert missing.json()["error"] == "order_not_found"


def test_list_filters(client, frontend_key, customer):
    client.post(API, json=order_body(customer.id, date="2026-01-01"), headers=headers(frontend_key))
    client.post(API, json=order_body(customer.id, date="2026-03-01", payment_method="cash"), headers=headers(frontend_key))

    everything = client.get(API, headers=headers(frontend_key)).json()
    assert [o["date"] for o in everything] == ["2026-03-01", "2026-01-01"]

    cash = client.get(API, params={"payment_method": "CASH"}, headers=headers(frontend_key)).json()
    assert len(cash) == 1

    january = client.get(API, params={"date_to": "2026-01-31"}, headers=headers(frontend_key)).json()
    assert [o["date"] for o in january] == ["2026-01-01"]


def test_list_limit_is_capped(client, frontend_key):
    response = client.get(API, params={"limit": 51}, headers=headers(frontend_key))
    assert response.status_code == 422


def test_statistics_requires_admin_or_internal(client, frontend_key, admin_key, internal_key, customer):
    client.post(API, json=order_body(customer.id), headers=headers(frontend_key))

    assert client.get(f"{API}/statistics", headers=headers(frontend_key)).status_code == 403

    stats = client.get(f"{API}/statistics", headers=headers(admin_key)).json()
    assert stats["total_orders"] == 1
    assert stats["total_amount"] == 120000.0
    assert stats["by_payment_method"] == [{"payment_method": "transfer", "count": 1, "total": 120000.0}]
    assert stats["period"] == {"from": None, "to": None}

    assert client.get(f"{API}/statistics", headers=headers(internal_key)).status_code == 200


def test_products_health(client, products):
    ok = client.get(f"{API}/health")
    assert ok.status_code == 200
    assert ok.json()["products_service"] == "connected"

    products.healthy = False
    down = client.get(f"{API}/health")
    assert down.status_code == 503
    assert down.json()["status"] == "degraded"


def test_rate_limit_is_enforced(client, api_key_service, clock):
    raw = api_key_service.generate("Tight", rate_limit_per_minute=2).raw_key

    assert client.get(API, headers=headers(raw)).status_code == 200
    assert client.get(API, headers=headers(raw)).status_code == 200

    limited = client.get(API, headers=headers(raw))
    assert limited.status_code == 429
    assert limited.headers["Retry-After"] == "60"
    assert limited.json()["retry_after"] == 60

    clock.advance(60)
    assert client.get(API, headers=headers(raw)).status_code == 200


def test_endpoint_allowlist(client, api_key_service):
    raw = api_key_service.generate("Customers only", allowed_endpoints=["/api/v1/customers*"]).raw_key

    response = client.get(API, headers=headers(raw))

    assert response.status_code == 403
    assert response.json()["error"] == "endpoint_not_allowed"

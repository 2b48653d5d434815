"""API key administration routes."""

API = "/api/v1/admin/api-keys"


def headers(raw_key):
    return {"X-API-Key": raw_key}


def test_frontend_key_is_forbidden(client, frontend_key):
    response = client.get(API, headers=headers(frontend_key))
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


def test_create_returns_raw_key_once(client, admin_key):
    created = client.post(API, json={"name": "Partner", "type": "frontend"}, headers=headers(admin_key))

    assert created.status_code == 201
    body = created.json()
    raw = body["api_key"]
    assert raw.startswith("ak_")
    assert body["rate_limit_per_minute"] == 60
    assert body["masked_key"] != raw

    detail = client.get(f"{API}/{body['id']}", headers=headers(admin_key)).json()
    assert "api_key" not in detail
    assert detail["requests_this_minute"] == 0
    assert detail["remaining_this_minute"] == 60

    # the issued key works straight away
    assert client.get("/api/v1/customers", headers=headers(raw)).status_code == 200


def test_list_filters_by_type(client, admin_key, frontend_key):
    everything = client.get(API, headers=headers(admin_key)).json()
    assert {k["type"] for k in everything} == {"admin", "frontend"}

    admins = client.get(API, params={"type": "admin"}, headers=headers(admin_key)).json()
    assert [k["name"] for k in admins] == ["Ops console"]


def test_disable_then_enable(client, admin_key, api_key_service):
    issued = api_key_service.generate("Partner")
    key_id = issued.api_key.id

    disabled = client.post(f"{API}/{key_id}/disable", headers=headers(admin_key))
    assert disabled.json()["is_active"] is False
    assert client.get("/api/v1/customers", headers=headers(issued.raw_key)).status_code == 401

    enabled = client.post(f"{API}/{key_id}/enable", headers=headers(admin_key))
    assert enabled.json()["is_active"] is True
    assert client.get("/api/v1/customers", headers=headers(issued.raw_key)).status_code == 200


def test_unknown_key(client, admin_key):
    response = client.get(f"{API}/999", headers=headers(admin_key))
    assert response.status_code == 404
    assert response.json()["error"] == "api_key_not_found"


def test_internal_key_detail_has_no_quota(client, admin_key, api_key_service):
    key_id = api_key_service.generate("Gateway", key_type="internal").api_key.id
    detail = client.get(f"{API}/{key_id}", headers=headers(admin_key)).json()
    assert detail["requests_this_minute"] is None
    assert detail["rate_limit_per_minute"] == 1000

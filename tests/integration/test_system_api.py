"""Root endpoints: health, info and metrics."""


def test_health(client):
    body = client.get("/health").json()
    assert body["service"] == "sales-service"
    assert body["status"] == "healthy"


def test_info_lists_routes(client):
    body = client.get("/info").json()
    assert "POST /api/v1/orders" in body["endpoints"]["orders"]
    assert body["dependencies"]["products-service"] == "http://products.test"


def test_metrics_exposed(client):
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "http_request" in response.text

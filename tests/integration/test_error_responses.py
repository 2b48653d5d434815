"""Error rendering: 5xx masking and the DEBUG detail."""

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.repositories.orders import LineItemRepository
from app.services.customer_service import CustomerService
from main import app


def headers(raw_key):
    return {"X-API-Key": raw_key}


def order_body(customer_id):
    return {"payment_method": "cash", "customer_id": customer_id, "items": [{"product_id": 1, "kind": "service"}]}


@pytest.fixture
def failing_line_items(monkeypatch):
    def explode(self, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(LineItemRepository, "add", explode)


def test_processing_error_is_masked(client, frontend_key, customer, failing_line_items, monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", False)

    response = client.post("/api/v1/orders", json=order_body(customer.id), headers=headers(frontend_key))

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "order_processing_error"
    assert body["message"] == "Internal server error"
    assert "cause" not in body
    assert "disk full" not in response.text
    assert body["request_id"] == response.headers["X-Request-ID"]


def test_processing_error_detail_in_debug(client, frontend_key, customer, failing_line_items, monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", True)

    response = client.post("/api/v1/orders", json=order_body(customer.id), headers=headers(frontend_key))

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "order_processing_error"
    assert "disk full" in body["message"]
    assert body["cause"] == "RuntimeError: disk full"


def test_client_errors_keep_their_message(client, frontend_key, monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", False)

    response = client.post("/api/v1/orders", json=order_body(999), headers=headers(frontend_key))

    assert response.status_code == 404
    assert "999" in response.json()["message"]


@pytest.mark.parametrize("debug", [False, True])
def test_unhandled_exception(client, frontend_key, monkeypatch, debug):
    def explode(self, skip=0, limit=100):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(CustomerService, "list", explode)
    monkeypatch.setattr(settings, "DEBUG", debug)

    with TestClient(app, raise_server_exceptions=False) as raw_client:
        response = raw_client.get("/api/v1/customers", headers=headers(frontend_key))

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "internal_error"
    if debug:
        assert body["message"] == "RuntimeError: connection reset"
    else:
        assert body["message"] == "Internal server error"

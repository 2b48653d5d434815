"""Shared fixtures: in-memory database, fake products service, fake clock."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "testing"
os.environ["API_KEY_BCRYPT_ROUNDS"] = "4"
os.environ["API_KEY_PEPPER"] = "test-pepper"
os.environ["PRODUCTS_SERVICE_URL"] = "http://products.test"

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import InternalAuthConfig, PricingConfig
from app.database.base import Base
from app.models import *  # noqa: F401, F403
from app.services.api_key_service import ApiKeyService
from app.services.customer_service import CustomerService
from app.services.internal_auth import InternalServiceGuard
from app.services.pricing import PricingResolver
from app.services.products_client import KIND_PATHS, ProductsClient
from app.services.rate_limiter import Clock, InMemoryCounterStore, RateLimiter

PRODUCTS_URL = "http://products.test"
GATEWAY_TOKEN = "gateway-test-token"


# =============================================================================
# Fakes
# =============================================================================

class FakeClock(Clock):
    def __init__(self, start: datetime = None):
        self.current = start or datetime(2026, 1, 15, 10, 30, 5, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FakeProducts:
    """Products service served through httpx.MockTransport."""

    def __init__(self):
        self.catalogue = {}
        self.failures = {}
        self.requests = []
        self.sleeps = []
        self.healthy = True

    @staticmethod
    def path_for(kind: str, product_id: int) -> str:
        return f"/api/internal/{KIND_PATHS[kind]}/{product_id}"

    def add(self, kind: str, product_id: int, price=None, **payload):
        body = {"id": product_id, "name": f"{kind.title()} {product_id}"}
        if price is not None:
            body["price"] = price
        body.update(payload)
        self.catalogue[self.path_for(kind, product_id)] = body

    def fail(self, kind: str, product_id: int, *outcomes):
        """Queue status codes (or exceptions) answered before the catalogue."""
        self.failures.setdefault(self.path_for(kind, product_id), []).extend(outcomes)

    def calls_to(self, kind: str, product_id: int) -> int:
        path = self.path_for(kind, product_id)
        return sum(1 for r in self.requests if r.url.path == path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/api/health":
            if not self.healthy:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"status": "ok"})

        pending = self.failures.get(path)
        if pending:
            outcome = pending.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return httpx.Response(outcome, json={"message": "upstream error"})

        if path not in self.catalogue:
            return httpx.Response(404, json={"message": "Not found"})
        return httpx.Response(200, json={"data": self.catalogue[path]})


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Collaborators
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(InMemoryCounterStore(clock), clock=clock)


@pytest.fixture
def products():
    fake = FakeProducts()
    fake.add("service", 1, price=45000, name="Installation")
    fake.add("bundle", 2, price=75000, name="Premium bundle")
    return fake


@pytest.fixture
def pricing_config():
    return PricingConfig(base_url=PRODUCTS_URL, service_token="sales-test-token", attempts=3)


@pytest.fixture
def products_client(products, pricing_config):
    http = httpx.Client(transport=httpx.MockTransport(products.handler))
    yield ProductsClient(pricing_config, http=http, sleep=products.sleeps.append)
    http.close()


@pytest.fixture
def resolver(products_client):
    return PricingResolver(products_client)


@pytest.fixture
def api_key_service(db_session, rate_limiter):
    return ApiKeyService(db_session, rate_limiter)


@pytest.fixture
def internal_guard():
    return InternalServiceGuard(InternalAuthConfig(
        tokens=(("products-test-token", "products"), (GATEWAY_TOKEN, "gateway")),
        environment="development",
    ))


# =============================================================================
# Data
# =============================================================================

@pytest.fixture
def customer(db_session):
    return CustomerService(db_session).create({
        "name": "ANA",
        "surname": "GARCIA",
        "national_id": "12345678",
        "email": "ana.garcia@example.com",
    })


@pytest.fixture
def frontend_key(api_key_service):
    return api_key_service.generate("Web frontend", key_type="frontend").raw_key


@pytest.fixture
def admin_key(api_key_service):
    return api_key_service.generate("Ops console", key_type="admin").raw_key


@pytest.fixture
def internal_key(api_key_service):
    return api_key_service.generate("Gateway", key_type="internal").raw_key


# =============================================================================
# Application
# =============================================================================

@pytest.fixture
def client(session_factory, rate_limiter, products_client, internal_guard):
    from app.api.dependencies import get_internal_guard, get_products_client, get_rate_limiter
    from app.database.session import get_db
    from main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_products_client] = lambda: products_client
    app.dependency_overrides[get_internal_guard] = lambda: internal_guard

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()

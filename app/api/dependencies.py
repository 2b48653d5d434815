"""Shared FastAPI dependencies for authentication, services and database access."""

from functools import lru_cache
from typing import Callable

import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from app.core.config import InternalAuthConfig, PricingConfig, RateLimitConfig, settings
from app.database.session import get_db
from app.models.api_key import ApiKey
from app.services.api_key_service import ApiKeyService
from app.services.customer_service import CustomerService
from app.services.internal_auth import InternalServiceGuard
from app.services.order_service import OrderService
from app.services.pricing import PricingResolver
from app.services.products_client import ProductsClient
from app.services.rate_limiter import RateLimiter, RedisCounterStore

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
service_token_header = APIKeyHeader(name="X-Service-Token", auto_error=False)


# ---------------------------------------------------------------------------
# Process-wide collaborators
# ---------------------------------------------------------------------------

@lru_cache
def get_products_client() -> ProductsClient:
    return ProductsClient(PricingConfig.from_settings(settings))


@lru_cache
def get_rate_limiter() -> RateLimiter:
    config = RateLimitConfig.from_settings(settings)
    return RateLimiter(RedisCounterStore(settings.REDIS_URL), window_seconds=config.window_seconds)


@lru_cache
def get_internal_guard() -> InternalServiceGuard:
    return InternalServiceGuard(InternalAuthConfig.from_settings(settings))


# ---------------------------------------------------------------------------
# Request-scoped services
# ---------------------------------------------------------------------------

def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    return CustomerService(db)


def get_order_service(
    db: Session = Depends(get_db),
    client: ProductsClient = Depends(get_products_client),
) -> OrderService:
    return OrderService(db, PricingResolver(client))


def get_api_key_service(
    db: Session = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> ApiKeyService:
    return ApiKeyService(db, limiter)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def require_api_key(*allowed_types: str) -> Callable[..., ApiKey]:
    """Build a dependency admitting requests that carry a valid X-API-Key.

    ``allowed_types`` restricts the key types accepted by the route; with no
    arguments any active key type is accepted.
    """

    def dependency(
        request: Request,
        x_api_key: str | None = Depends(api_key_header),
        service: ApiKeyService = Depends(get_api_key_service),
    ) -> ApiKey:
        api_key = service.authenticate(x_api_key, request.url.path, allowed_types)

        request.state.api_key_id = api_key.id
        request.state.api_key_type = api_key.type
        request.state.api_key_name = api_key.name
        structlog.contextvars.bind_contextvars(api_key_id=api_key.id, api_key_name=api_key.name)
        return api_key

    return dependency


def require_internal_service(
    request: Request,
    x_service_token: str | None = Depends(service_token_header),
    guard: InternalServiceGuard = Depends(get_internal_guard),
) -> str:
    """Admit calls from sibling services carrying a shared X-Service-Token."""
    client_ip = request.client.host if request.client else None
    service = guard.authenticate(x_service_token, client_ip)

    request.state.internal_service = service
    request.state.is_internal_request = True
    structlog.contextvars.bind_contextvars(internal_service=service)
    return service

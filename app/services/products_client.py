"""HTTP client for the products microservice (price lookups)."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import httpx

from app.core.config import PricingConfig
from app.core.errors import (
    BadGateway,
    BadGatewayMismatch,
    BadGatewayMissingPrice,
    InvalidProductKind,
    RemoteUnavailable,
)

logger = logging.getLogger(__name__)

# Path segment per product kind
KIND_PATHS = {
    "service": "services",
    "bundle": "bundles",
}

# Recognised price fields, in order of precedence
PRICE_FIELDS = ("cost", "price", "calculated_price")

DEFAULT_PRODUCT_NAME = "Unnamed product"
USER_AGENT = "SalesService/1.0"


@dataclass
class ProductPrice:
    id: int
    kind: str
    name: str
    price: float
    description: Optional[str] = None
    raw_payload: Dict[str, Any] = field(default_factory=dict)


class ProductsClient:
    def __init__(
        self,
        config: PricingConfig,
        http: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self._http = http or httpx.Client()
        self._sleep = sleep

    def endpoint_for(self, kind: str, product_id: int) -> str:
        return f"{self.config.base_url}/api/internal/{KIND_PATHS[kind]}/{product_id}"

    def fetch_price(self, product_id: int, kind: str) -> ProductPrice:
        """Fetch and validate the current price of one product.

        Raises InvalidProductKind before any network call, RemoteUnavailable
        once every attempt has failed, and a BadGateway subclass when the
        products service answers with something unusable.
        """
        if kind not in KIND_PATHS:
            raise InvalidProductKind(
                f"Invalid product kind: {kind}. Must be 'service' or 'bundle'."
            )

        response = self._get_with_retry(self.endpoint_for(kind, product_id), kind, product_id)

        try:
            body = response.json()
        except ValueError:
            raise BadGateway(f"Invalid response: body is not JSON for {kind} {product_id}")

        data = body.get("data", body) if isinstance(body, dict) else body
        self._validate(data, kind, product_id)
        return self._normalize(data, kind)

    def check_connectivity(self) -> bool:
        """Ping the public health endpoint of the products service."""
        try:
            response = self._http.get(
                f"{self.config.base_url}/api/health",
                timeout=self.config.health_timeout,
            )
            return response.is_success
        except Exception as e:
            logger.warning("Products service unreachable at %s: %s", self.config.base_url, e)
            return False

    # -----------------------------------------------------------------------

    def _get_with_retry(self, url: str, kind: str, product_id: int) -> httpx.Response:
        attempts = max(1, self.config.attempts)
        delay = self.config.retry_delay_ms / 1000
        headers = {
            "X-Service-Token": self.config.service_token,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        last_error = ""

        for attempt in range(1, attempts + 1):
            try:
                response = self._http.get(url, headers=headers, timeout=self.config.timeout)
                if response.is_success:
                    return response
                last_error = f"HTTP {response.status_code}"
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e}"

            logger.warning(
                "Products request failed for %s %s (attempt %d/%d): %s",
                kind, product_id, attempt, attempts, last_error,
            )
            if attempt < attempts:
                self._sleep(delay)

        logger.error("Products service gave up on %s %s after %d attempts", kind, product_id, attempts)
        raise RemoteUnavailable(
            f"Could not reach the products service for {kind} {product_id}: {last_error}"
        )

    @staticmethod
    def _validate(data: Any, kind: str, product_id: int) -> None:
        if not isinstance(data, dict):
            raise BadGateway(f"Invalid response: expected an object for {kind} {product_id}")

        if data.get("id") is None:
            raise BadGatewayMismatch(f"Invalid response: missing 'id' for {kind} {product_id}")

        if not any(data.get(f) is not None for f in PRICE_FIELDS):
            raise BadGatewayMissingPrice(
                f"Invalid response: missing price field for {kind} {product_id}"
            )

        try:
            returned_id = int(data["id"])
        except (TypeError, ValueError):
            returned_id = None
        if returned_id != product_id:
            raise BadGatewayMismatch(
                f"Response id mismatch: expected {product_id}, got {data['id']}"
            )

    @staticmethod
    def _normalize(data: Dict[str, Any], kind: str) -> ProductPrice:
        raw_price = next(data[f] for f in PRICE_FIELDS if data.get(f) is not None)
        try:
            price = float(raw_price)
        except (TypeError, ValueError):
            raise BadGatewayMissingPrice(f"Invalid response: unreadable price {raw_price!r}")

        return ProductPrice(
            id=int(data["id"]),
            kind=kind,
            name=data.get("name") or DEFAULT_PRODUCT_NAME,
            price=price,
            description=data.get("description"),
            raw_payload=data,
        )

"""Domain error taxonomy.

Every error a component raises on purpose derives from ``ServiceError`` and
carries the HTTP status and a stable machine code. ``main.py`` renders them;
anything else that escapes a handler is an internal error.
"""

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    status_code: int = 500
    code: str = "service_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def extra(self) -> Dict[str, Any]:
        """Error-specific fields merged into the response body."""
        return {}


# ---------------------------------------------------------------------------
# Customers / orders
# ---------------------------------------------------------------------------

class CustomerNotFound(ServiceError):
    status_code = 404
    code = "customer_not_found"


class OrderNotFound(ServiceError):
    status_code = 404
    code = "order_not_found"


class DuplicateCustomer(ServiceError):
    status_code = 409
    code = "duplicate_customer"


class InvalidProductPrice(ServiceError):
    status_code = 400
    code = "invalid_product_price"


class OrderProcessingError(ServiceError):
    status_code = 500
    code = "order_processing_error"


# ---------------------------------------------------------------------------
# Products service
# ---------------------------------------------------------------------------

class InvalidProductKind(ServiceError):
    status_code = 400
    code = "invalid_product_kind"


class RemoteUnavailable(ServiceError):
    status_code = 503
    code = "remote_unavailable"


class BadGateway(ServiceError):
    status_code = 502
    code = "bad_gateway"


class BadGatewayMismatch(BadGateway):
    code = "bad_gateway_mismatch"


class BadGatewayMissingPrice(BadGateway):
    code = "bad_gateway_missing_price"


class PartialBatchFailure(ServiceError):
    status_code = 400
    code = "partial_batch_failure"

    def __init__(self, failures: List[Dict[str, Any]]):
        self.failures = failures
        summary = "; ".join(
            f"item {f['index']} ({f['kind']} {f['product_id']}): {f['message']}"
            for f in failures
        )
        super().__init__(f"Could not price {len(failures)} item(s): {summary}")

    def extra(self) -> Dict[str, Any]:
        return {"failures": self.failures}


class PricingError(ServiceError):
    """A pricing failure surfaced by the order workflow, keeping the cause's status."""

    code = "pricing_error"

    def __init__(self, cause: ServiceError):
        super().__init__(
            f"Could not retrieve product information: {cause.message}",
            status_code=cause.status_code,
        )
        self.cause = cause

    def extra(self) -> Dict[str, Any]:
        data = {"reason": self.cause.code}
        data.update(self.cause.extra())
        return data


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class MissingCredential(ServiceError):
    status_code = 401
    code = "missing_credential"


class InvalidCredential(ServiceError):
    status_code = 401
    code = "invalid_credential"


class Forbidden(ServiceError):
    status_code = 403
    code = "forbidden"


class EndpointNotAllowed(ServiceError):
    status_code = 403
    code = "endpoint_not_allowed"


class OriginNotAllowed(ServiceError):
    status_code = 403
    code = "origin_not_allowed"


class ApiKeyNotFound(ServiceError):
    status_code = 404
    code = "api_key_not_found"


class InvalidKeyType(ServiceError):
    status_code = 400
    code = "invalid_key_type"


class RateLimitExceeded(ServiceError):
    status_code = 429
    code = "rate_limit_exceeded"

    def __init__(self, limit: int, retry_after: int = 60):
        super().__init__(f"Rate limit of {limit} requests per minute exceeded")
        self.limit = limit
        self.retry_after = retry_after

    def extra(self) -> Dict[str, Any]:
        return {"retry_after": self.retry_after}

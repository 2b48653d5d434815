"""Sales Service: FastAPI backend

Customers and sales orders. Order totals are priced by the products
microservice; every route is gated by API keys or internal service tokens.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from app.api import api_keys, customers, internal, orders
from app.core.config import settings
from app.core.errors import RateLimitExceeded, ServiceError
from app.observability import setup_structured_logging

SERVICE_NAME = "sales-service"
SERVICE_VERSION = "1.0.0"

setup_structured_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Sales service starting up (environment=%s)", settings.ENVIRONMENT)
    yield
    logger.info("Sales service shutting down")


app = FastAPI(
    title="Sales Service API",
    description="Customers and sales orders, priced through the products service.",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    request_id = getattr(request.state, "request_id", "unknown")
    content = {"error": exc.code, "message": exc.message, "request_id": request_id}

    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message, exc_info=exc, extra={"request_id": request_id})
        if settings.DEBUG:
            cause = exc.__cause__
            if cause is not None:
                content["cause"] = f"{type(cause).__name__}: {cause}"
        else:
            content["message"] = "Internal server error"

    content.update(jsonable_encoder(exc.extra()))

    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error("Internal error", exc_info=exc, extra={"request_id": request_id})
    content = {"error": "internal_error", "message": "Internal server error", "request_id": request_id}
    if settings.DEBUG:
        content["message"] = f"{type(exc).__name__}: {exc}"
    return JSONResponse(status_code=500, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "The request is invalid",
            "detail": jsonable_encoder(exc.errors()),
            "request_id": request_id,
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(customers.router, prefix=settings.API_V1_PREFIX)
app.include_router(orders.router, prefix=settings.API_V1_PREFIX)
app.include_router(api_keys.router, prefix=settings.API_V1_PREFIX)
app.include_router(internal.router, prefix=settings.API_V1_PREFIX)

# ---------------------------------------------------------------------------
# Prometheus
# ---------------------------------------------------------------------------

Instrumentator().instrument(app).expose(app, include_in_schema=False)


# ---------------------------------------------------------------------------
# Health check / info
# ---------------------------------------------------------------------------

@app.get("/health", tags=["system"])
def health():
    return {
        "service": SERVICE_NAME,
        "status": "healthy",
        "version": SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/info", tags=["system"])
def info():
    prefix = settings.API_V1_PREFIX
    return {
        "service": SERVICE_NAME,
        "description": "Customer and sales order management",
        "version": SERVICE_VERSION,
        "endpoints": {
            "customers": {
                f"GET {prefix}/customers": "List customers",
                f"POST {prefix}/customers": "Create customer",
                f"GET {prefix}/customers/{{id}}": "Show customer",
                f"PUT {prefix}/customers/{{id}}": "Update customer",
                f"DELETE {prefix}/customers/{{id}}": "Delete customer",
            },
            "orders": {
                f"GET {prefix}/orders": "List orders (filterable)",
                f"POST {prefix}/orders": "Create order (prices via products service)",
                f"GET {prefix}/orders/{{id}}": "Show order",
                f"PUT {prefix}/orders/{{id}}": "Update order",
                f"DELETE {prefix}/orders/{{id}}": "Delete order",
                f"GET {prefix}/orders/statistics": "Order statistics",
                f"GET {prefix}/orders/health": "Products service connectivity",
            },
        },
        "dependencies": {"products-service": settings.PRODUCTS_SERVICE_URL},
    }

"""Sales order routes. Pricing goes through the products service."""

import datetime as dt
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.dependencies import get_order_service, get_products_client, require_api_key
from app.core.errors import OrderNotFound
from app.database.session import get_db
from app.models.order import Order
from app.repositories.orders import OrderRepository
from app.services.order_service import OrderService
from app.services.products_client import ProductsClient

router = APIRouter(prefix="/orders", tags=["orders"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class OrderItemRequest(BaseModel):
    product_id: int = Field(..., gt=0)
    kind: Literal["service", "bundle"]


class OrderWriteRequest(BaseModel):
    date: Optional[dt.date] = None
    payment_method: str = Field(..., min_length=1, max_length=255)
    customer_id: int = Field(..., gt=0)
    items: List[OrderItemRequest] = Field(..., min_length=1)


class LineItemResponse(BaseModel):
    id: int
    product_id: int
    kind: str
    unit_price: float


class OrderCustomerResponse(BaseModel):
    id: int
    full_name: str
    email: str


class OrderResponse(BaseModel):
    id: int
    date: dt.date
    payment_method: str
    customer_id: int
    total_amount: float
    customer: Optional[OrderCustomerResponse] = None
    items: List[LineItemResponse] = []
    created_at: str


class PaymentMethodBreakdown(BaseModel):
    payment_method: str
    count: int
    total: float


class StatisticsResponse(BaseModel):
    total_orders: int
    total_amount: float
    average_amount: Optional[float] = None
    by_payment_method: List[PaymentMethodBreakdown] = []
    period: dict


def to_response(o: Order) -> OrderResponse:
    customer = None
    if o.customer is not None:
        customer = OrderCustomerResponse(id=o.customer.id, full_name=o.customer.full_name, email=o.customer.email)
    return OrderResponse(
        id=o.id,
        date=o.date,
        payment_method=o.payment_method,
        customer_id=o.customer_id,
        total_amount=float(o.total_amount),
        customer=customer,
        items=[
            LineItemResponse(id=i.id, product_id=i.product_id, kind=i.kind, unit_price=float(i.unit_price))
            for i in o.line_items
        ],
        created_at=o.created_at.isoformat(),
    )


def get_order_or_404(db: Session, order_id: int) -> Order:
    order = OrderRepository(db).get(order_id)
    if not order:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


# ---------------------------------------------------------------------------
# Fixed paths (declared before /{order_id})
# ---------------------------------------------------------------------------

@router.get(
    "/statistics",
    response_model=StatisticsResponse,
    dependencies=[Depends(require_api_key("admin", "internal"))],
)
def order_statistics(
    date_from: Optional[dt.date] = Query(None),
    date_to: Optional[dt.date] = Query(None),
    customer_id: Optional[int] = Query(None, gt=0),
    service: OrderService = Depends(get_order_service),
):
    stats = service.get_statistics(date_from=date_from, date_to=date_to, customer_id=customer_id)
    return StatisticsResponse(
        total_orders=stats["total_orders"],
        total_amount=float(stats["total_amount"]),
        average_amount=float(stats["average_amount"]) if stats["average_amount"] is not None else None,
        by_payment_method=[
            PaymentMethodBreakdown(payment_method=g["payment_method"], count=g["count"], total=float(g["total"]))
            for g in stats["by_payment_method"]
        ],
        period={
            "from": date_from.isoformat() if date_from else None,
            "to": date_to.isoformat() if date_to else None,
        },
    )


@router.get("/health")
def products_health(client: ProductsClient = Depends(get_products_client)):
    """Reachability of the products service (200 when connected, 503 otherwise)."""
    connected = client.check_connectivity()
    return JSONResponse(
        status_code=status.HTTP_200_OK if connected else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if connected else "degraded",
            "products_service": "connected" if connected else "disconnected",
            "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

@router.get("", response_model=List[OrderResponse], dependencies=[Depends(require_api_key())])
def list_orders(
    customer_id: Optional[int] = Query(None, gt=0),
    date_from: Optional[dt.date] = Query(None),
    date_to: Optional[dt.date] = Query(None),
    payment_method: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(15, ge=1, le=50),
    db: Session = Depends(get_db),
):
    orders = OrderRepository(db).list(
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
        payment_method=payment_method,
        skip=skip,
        limit=limit,
    )
    return [to_response(o) for o in orders]


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key())],
)
def create_order(
    body: OrderWriteRequest,
    service: OrderService = Depends(get_order_service),
):
    order = service.create_order(body.model_dump())
    return to_response(order)


@router.get("/{order_id}", response_model=OrderResponse, dependencies=[Depends(require_api_key())])
def get_order(order_id: int, db: Session = Depends(get_db)):
    return to_response(get_order_or_404(db, order_id))


@router.put("/{order_id}", response_model=OrderResponse, dependencies=[Depends(require_api_key())])
def update_order(
    order_id: int,
    body: OrderWriteRequest,
    db: Session = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    order = get_order_or_404(db, order_id)
    return to_response(service.update_order(order, body.model_dump()))


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_api_key())],
)
def delete_order(
    order_id: int,
    db: Session = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    order = get_order_or_404(db, order_id)
    service.delete_order(order)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

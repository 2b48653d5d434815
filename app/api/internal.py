"""Read-only routes for sibling services (X-Service-Token auth)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import customers, orders
from app.api.dependencies import get_customer_service, require_internal_service
from app.database.session import get_db
from app.services.customer_service import CustomerService

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(require_internal_service)],
)


@router.get("/customers/{customer_id}", response_model=customers.CustomerResponse)
def get_customer(
    customer_id: int,
    service: CustomerService = Depends(get_customer_service),
):
    return customers.to_response(service.get(customer_id))


@router.get("/orders/{order_id}", response_model=orders.OrderResponse)
def get_order(order_id: int, db: Session = Depends(get_db)):
    return orders.to_response(orders.get_order_or_404(db, order_id))

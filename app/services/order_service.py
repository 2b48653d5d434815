"""Order workflow: customer check, remote pricing, atomic persistence.

Create, update and delete each run in a single database transaction. The
products service is called inside the transaction, so a pricing failure
rolls back everything written so far; nothing is ever sent back to the
products service to undo a lookup.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from app.core.errors import (
    CustomerNotFound,
    InvalidProductPrice,
    OrderProcessingError,
    PricingError,
    ServiceError,
)
from app.database.session import atomic
from app.models.customer import Customer
from app.models.order import Order
from app.repositories.customers import CustomerRepository
from app.repositories.orders import LineItemRepository, OrderRepository
from app.services.pricing import PricingResolver, ResolvedItem, to_money

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, db: Session, resolver: PricingResolver):
        self.db = db
        self.resolver = resolver
        self.customers = CustomerRepository(db)
        self.orders = OrderRepository(db)
        self.line_items = LineItemRepository(db)

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------

    def create_order(self, data: Mapping[str, Any]) -> Order:
        try:
            with atomic(self.db):
                self._require_customer(data["customer_id"])
                resolved = self._resolve_prices(data["items"])
                total = self.resolver.total(resolved)

                order = self.orders.add(
                    date=data.get("date") or date.today(),
                    payment_method=data["payment_method"],
                    customer_id=data["customer_id"],
                    total_amount=total,
                )
                self._add_line_items(order, resolved)
        except ServiceError:
            raise
        except Exception as e:
            logger.exception("Unexpected failure creating order for customer %s", data.get("customer_id"))
            raise OrderProcessingError(f"Internal error while processing the order: {e}") from e

        logger.info("Order %s created: %d item(s), total %s", order.id, len(resolved), total)
        return self._reload(order.id)

    def update_order(self, order: Order, data: Mapping[str, Any]) -> Order:
        """Re-price the order and replace all of its line items."""
        try:
            with atomic(self.db):
                self._require_customer(data["customer_id"])
                resolved = self._resolve_prices(data["items"])
                total = self.resolver.total(resolved)

                self.orders.update(
                    order,
                    date=data.get("date") or order.date,
                    payment_method=data["payment_method"],
                    customer_id=data["customer_id"],
                    total_amount=total,
                )
                self.line_items.soft_delete_for_order(order.id)
                self._add_line_items(order, resolved)
        except ServiceError:
            raise
        except Exception as e:
            logger.exception("Unexpected failure updating order %s", order.id)
            raise OrderProcessingError(f"Internal error while updating the order: {e}") from e

        logger.info("Order %s updated: %d item(s), total %s", order.id, len(resolved), total)
        return self._reload(order.id)

    def delete_order(self, order: Order) -> bool:
        try:
            with atomic(self.db):
                removed = self.line_items.soft_delete_for_order(order.id)
                self.orders.soft_delete(order)
        except ServiceError:
            raise
        except Exception as e:
            logger.exception("Unexpected failure deleting order %s", order.id)
            raise OrderProcessingError(f"Internal error while deleting the order: {e}") from e

        logger.info("Order %s deleted with %d line item(s)", order.id, removed)
        return True

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def get_statistics(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        customer_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        return self.orders.statistics(customer_id=customer_id, date_from=date_from, date_to=date_to)

    # -----------------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------------

    def _require_customer(self, customer_id: int) -> Customer:
        customer = self.customers.get(customer_id)
        if not customer:
            raise CustomerNotFound(f"Customer {customer_id} not found or was deleted.")
        return customer

    def _resolve_prices(self, items: List[Mapping[str, Any]]) -> List[ResolvedItem]:
        try:
            resolved = self.resolver.resolve_batch(items)
        except ServiceError as e:
            raise PricingError(e) from e

        for product in resolved:
            if product.price is None or product.price <= 0:
                raise InvalidProductPrice(
                    f"Product {product.kind} {product.id} has an invalid price ({product.price})."
                )
        return resolved

    def _add_line_items(self, order: Order, resolved: List[ResolvedItem]) -> None:
        for product in resolved:
            self.line_items.add(
                order_id=order.id,
                product_id=product.id,
                kind=product.kind,
                unit_price=to_money(product.price),
            )

    def _reload(self, order_id: int) -> Order:
        self.db.expire_all()
        return self.orders.get(order_id)

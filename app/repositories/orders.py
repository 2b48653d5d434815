"""Data access for orders and their line items."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session, selectinload

from app.models.line_item import LineItem
from app.models.order import Order


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: int, include_deleted: bool = False) -> Optional[Order]:
        q = (
            self.db.query(Order)
            .options(selectinload(Order.customer), selectinload(Order.line_items))
            .filter(Order.id == order_id)
        )
        if not include_deleted:
            q = q.filter(Order.active())
        return q.first()

    def list(
        self,
        customer_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        payment_method: Optional[str] = None,
        skip: int = 0,
        limit: int = 15,
    ) -> List[Order]:
        q = self._filtered(customer_id, date_from, date_to)
        if payment_method:
            q = q.filter(Order.payment_method.ilike(f"%{payment_method}%"))
        return (
            q.options(selectinload(Order.customer), selectinload(Order.line_items))
            .order_by(Order.date.desc(), Order.created_at.desc(), Order.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def add(self, **fields) -> Order:
        order = Order(**fields)
        self.db.add(order)
        self.db.flush()
        return order

    def update(self, order: Order, **fields) -> Order:
        for key, value in fields.items():
            setattr(order, key, value)
        self.db.flush()
        return order

    def soft_delete(self, order: Order) -> None:
        order.deleted_at = datetime.now(timezone.utc)
        self.db.flush()

    def statistics(
        self,
        customer_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict[str, Any]:
        base = self._filtered(customer_id, date_from, date_to)

        count, total, average = base.with_entities(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
            func.avg(Order.total_amount),
        ).one()

        groups = (
            base.with_entities(
                Order.payment_method,
                func.count(Order.id),
                func.sum(Order.total_amount),
            )
            .group_by(Order.payment_method)
            .order_by(Order.payment_method)
            .all()
        )

        return {
            "total_orders": count,
            "total_amount": _money(total),
            "average_amount": _money(average) if average is not None else None,
            "by_payment_method": [
                {"payment_method": method, "count": n, "total": _money(amount)}
                for method, n, amount in groups
            ],
        }

    def _filtered(
        self,
        customer_id: Optional[int],
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> Query:
        q = self.db.query(Order).filter(Order.active())
        if customer_id:
            q = q.filter(Order.customer_id == customer_id)
        if date_from:
            q = q.filter(Order.date >= date_from)
        if date_to:
            q = q.filter(Order.date <= date_to)
        return q


class LineItemRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, order_id: int, product_id: int, kind: str, unit_price: Decimal) -> LineItem:
        item = LineItem(order_id=order_id, product_id=product_id, kind=kind, unit_price=unit_price)
        self.db.add(item)
        self.db.flush()
        return item

    def for_order(self, order_id: int, include_deleted: bool = False) -> List[LineItem]:
        q = self.db.query(LineItem).filter(LineItem.order_id == order_id)
        if not include_deleted:
            q = q.filter(LineItem.active())
        return q.order_by(LineItem.id).all()

    def soft_delete_for_order(self, order_id: int) -> int:
        return (
            self.db.query(LineItem)
            .filter(LineItem.order_id == order_id, LineItem.active())
            .update({LineItem.deleted_at: datetime.now(timezone.utc)}, synchronize_session=False)
        )


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))

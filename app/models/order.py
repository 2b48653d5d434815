from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.database.base import Base, SoftDeleteMixin, TimestampMixin


class Order(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, index=True)
    payment_method = Column(String(255), nullable=False)  # free text
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False)  # derived from line items, never client-supplied

    customer = relationship("Customer", back_populates="orders")
    line_items = relationship(
        "LineItem",
        order_by="LineItem.id",
        primaryjoin="and_(Order.id == LineItem.order_id, LineItem.deleted_at.is_(None))",
        viewonly=True,
    )

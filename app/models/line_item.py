from sqlalchemy import Column, Enum, ForeignKey, Index, Integer, Numeric
from sqlalchemy.orm import relationship

from app.database.base import Base, SoftDeleteMixin, TimestampMixin

PRODUCT_KINDS = ("service", "bundle")


class LineItem(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "line_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)  # id in the products service
    kind = Column(Enum(*PRODUCT_KINDS, name="product_kind"), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)  # snapshot at order time

    order = relationship("Order")

    __table_args__ = (
        Index("ix_line_items_product_kind", "product_id", "kind"),
    )

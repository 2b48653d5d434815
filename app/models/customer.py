from sqlalchemy import Column, Index, Integer, String
from sqlalchemy.orm import relationship

from app.database.base import Base, SoftDeleteMixin, TimestampMixin


class Customer(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    surname = Column(String(100), nullable=False)
    national_id = Column(String(8), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)

    orders = relationship("Order", back_populates="customer")

    __table_args__ = (
        Index("ix_customers_name_surname", "name", "surname"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}"

"""Data access for customers."""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.customer import Customer


class CustomerRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, customer_id: int, include_deleted: bool = False) -> Optional[Customer]:
        q = self.db.query(Customer).filter(Customer.id == customer_id)
        if not include_deleted:
            q = q.filter(Customer.active())
        return q.first()

    def list(self, skip: int = 0, limit: int = 100) -> List[Customer]:
        return (
            self.db.query(Customer)
            .filter(Customer.active())
            .order_by(Customer.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def find_by_national_id(self, national_id: str) -> Optional[Customer]:
        return self.db.query(Customer).filter(Customer.national_id == national_id).first()

    def find_by_email(self, email: str) -> Optional[Customer]:
        return self.db.query(Customer).filter(Customer.email == email).first()

    def add(self, **fields) -> Customer:
        customer = Customer(**fields)
        self.db.add(customer)
        self.db.flush()
        return customer

    def update(self, customer: Customer, **fields) -> Customer:
        for key, value in fields.items():
            setattr(customer, key, value)
        self.db.flush()
        return customer

    def soft_delete(self, customer: Customer) -> None:
        customer.deleted_at = datetime.now(timezone.utc)
        self.db.flush()

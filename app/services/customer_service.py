"""Customer CRUD with uniqueness checks."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import CustomerNotFound, DuplicateCustomer
from app.database.session import atomic
from app.models.customer import Customer
from app.repositories.customers import CustomerRepository

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(self, db: Session):
        self.db = db
        self.customers = CustomerRepository(db)

    def list(self, skip: int = 0, limit: int = 100) -> List[Customer]:
        return self.customers.list(skip=skip, limit=limit)

    def get(self, customer_id: int) -> Customer:
        customer = self.customers.get(customer_id)
        if not customer:
            raise CustomerNotFound(f"Customer {customer_id} not found")
        return customer

    def create(self, data: Dict[str, Any]) -> Customer:
        self._ensure_unique(data["national_id"], data["email"])
        with atomic(self.db):
            customer = self.customers.add(**data)
        logger.info("Customer %s created", customer.id)
        return customer

    def update(self, customer_id: int, data: Dict[str, Any]) -> Customer:
        customer = self.get(customer_id)
        self._ensure_unique(data.get("national_id"), data.get("email"), exclude_id=customer.id)
        with atomic(self.db):
            self.customers.update(customer, **data)
        self.db.refresh(customer)
        return customer

    def delete(self, customer_id: int) -> bool:
        customer = self.get(customer_id)
        with atomic(self.db):
            self.customers.soft_delete(customer)
        logger.info("Customer %s deleted", customer_id)
        return True

    def _ensure_unique(
        self,
        national_id: Optional[str],
        email: Optional[str],
        exclude_id: Optional[int] = None,
    ) -> None:
        # soft-deleted rows still hold their unique values
        if national_id:
            existing = self.customers.find_by_national_id(national_id)
            if existing and existing.id != exclude_id:
                raise DuplicateCustomer("A customer with this national id already exists")
        if email:
            existing = self.customers.find_by_email(email)
            if existing and existing.id != exclude_id:
                raise DuplicateCustomer("A customer with this email already exists")

"""Customer CRUD routes."""

import re
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field, field_validator

from app.api.dependencies import get_customer_service, require_api_key
from app.models.customer import Customer
from app.services.customer_service import CustomerService

router = APIRouter(
    prefix="/customers",
    tags=["customers"],
    dependencies=[Depends(require_api_key())],
)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class CustomerWriteRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    surname: str = Field(..., min_length=1, max_length=100)
    national_id: str
    email: str = Field(..., max_length=255)

    @field_validator("name", "surname", mode="before")
    @classmethod
    def upper_strip(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("national_id", mode="before")
    @classmethod
    def digits_only(cls, v):
        digits = re.sub(r"[^0-9]", "", str(v))
        if not 7 <= len(digits) <= 8:
            raise ValueError("national_id must have 7 or 8 digits")
        return digits

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        v = v.strip().lower() if isinstance(v, str) else v
        if not isinstance(v, str) or not EMAIL_RE.match(v):
            raise ValueError("email is not a valid address")
        return v


class CustomerResponse(BaseModel):
    id: int
    name: str
    surname: str
    full_name: str
    national_id: str
    email: str
    created_at: str


def to_response(c: Customer) -> CustomerResponse:
    return CustomerResponse(
        id=c.id,
        name=c.name,
        surname=c.surname,
        full_name=c.full_name,
        national_id=c.national_id,
        email=c.email,
        created_at=c.created_at.isoformat(),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("", response_model=List[CustomerResponse])
def list_customers(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: CustomerService = Depends(get_customer_service),
):
    return [to_response(c) for c in service.list(skip=skip, limit=limit)]


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    body: CustomerWriteRequest,
    service: CustomerService = Depends(get_customer_service),
):
    return to_response(service.create(body.model_dump()))


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(
    customer_id: int,
    service: CustomerService = Depends(get_customer_service),
):
    return to_response(service.get(customer_id))


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: int,
    body: CustomerWriteRequest,
    service: CustomerService = Depends(get_customer_service),
):
    return to_response(service.update(customer_id, body.model_dump()))


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: int,
    service: CustomerService = Depends(get_customer_service),
):
    service.delete(customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""CustomerService: uniqueness and soft-deletes."""

import pytest

from app.core.errors import CustomerNotFound, DuplicateCustomer
from app.repositories.customers import CustomerRepository
from app.services.customer_service import CustomerService


@pytest.fixture
def service(db_session):
    return CustomerService(db_session)


def payload(**overrides):
    data = {"name": "LUIS", "surname": "PEREZ", "national_id": "87654321", "email": "luis@example.com"}
    data.update(overrides)
    return data


def test_create_and_get(service):
    created = service.create(payload())
    fetched = service.get(created.id)
    assert fetched.full_name == "LUIS PEREZ"


def test_duplicate_national_id(service, customer):
    with pytest.raises(DuplicateCustomer):
        service.create(payload(national_id=customer.national_id))


def test_duplicate_email(service, customer):
    with pytest.raises(DuplicateCustomer):
        service.create(payload(email=customer.email))


def test_update_may_keep_own_values(service, customer):
    updated = service.update(customer.id, {
        "name": "ANA MARIA",
        "surname": customer.surname,
        "national_id": customer.national_id,
        "email": customer.email,
    })
    assert updated.name == "ANA MARIA"


def test_update_cannot_take_another_customers_email(service, customer):
    other = service.create(payload())
    with pytest.raises(DuplicateCustomer):
        service.update(other.id, payload(email=customer.email))


def test_soft_delete_hides_customer(service, customer, db_session):
    service.delete(customer.id)

    with pytest.raises(CustomerNotFound):
        service.get(customer.id)
    assert service.list() == []
    assert CustomerRepository(db_session).get(customer.id, include_deleted=True).is_deleted


def test_deleted_customer_still_holds_unique_values(service, customer):
    service.delete(customer.id)
    with pytest.raises(DuplicateCustomer):
        service.create(payload(national_id=customer.national_id))

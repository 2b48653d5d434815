"""SQLAlchemy models for the sales service."""

from .customer import Customer
from .order import Order
from .line_item import LineItem, PRODUCT_KINDS
from .api_key import ApiKey, KEY_TYPES

__all__ = [
    "Customer",
    "Order",
    "LineItem",
    "ApiKey",
    "PRODUCT_KINDS",
    "KEY_TYPES",
]

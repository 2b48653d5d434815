"""customers, orders, line items and api keys

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps():
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("surname", sa.String(100), nullable=False),
        sa.Column("national_id", sa.String(8), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index("ix_customers_national_id", "customers", ["national_id"], unique=True)
    op.create_index("ix_customers_email", "customers", ["email"], unique=True)
    op.create_index("ix_customers_name_surname", "customers", ["name", "surname"])
    op.create_index("ix_customers_deleted_at", "customers", ["deleted_at"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("payment_method", sa.String(255), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index("ix_orders_date", "orders", ["date"])
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])
    op.create_index("ix_orders_deleted_at", "orders", ["deleted_at"])

    op.create_table(
        "line_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.Enum("service", "bundle", name="product_kind"), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index("ix_line_items_order_id", "line_items", ["order_id"])
    op.create_index("ix_line_items_product_kind", "line_items", ["product_id", "kind"])
    op.create_index("ix_line_items_deleted_at", "line_items", ["deleted_at"])

    op.create_table(
        "api_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("key_hash", sa.String(255), nullable=False, unique=True),
        sa.Column("key_prefix", sa.String(10), nullable=False),
        sa.Column("type", sa.Enum("frontend", "internal", "admin", name="api_key_type"), nullable=False),
        sa.Column("rate_limit_per_minute", sa.Integer(), nullable=False),
        sa.Column("allowed_endpoints", JSONType, nullable=True),
        sa.Column("metadata", JSONType, nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_used_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("total_requests", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_api_keys_key_prefix", "api_keys", ["key_prefix"])
    op.create_index("ix_api_keys_type_active", "api_keys", ["type", "is_active"])
    op.create_index("ix_api_keys_last_used_at", "api_keys", ["last_used_at"])


def downgrade() -> None:
    op.drop_table("api_keys")
    op.drop_table("line_items")
    op.drop_table("orders")
    op.drop_table("customers")
    sa.Enum(name="api_key_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="product_kind").drop(op.get_bind(), checkfirst=True)

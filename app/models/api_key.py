from sqlalchemy import JSON, Boolean, Column, Enum, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

from app.database.base import Base, TimestampMixin

KEY_TYPES = ("frontend", "internal", "admin")

JSONType = JSON().with_variant(JSONB(), "postgresql")


class ApiKey(TimestampMixin, Base):
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    key_hash = Column(String(255), nullable=False, unique=True)  # never the raw key
    key_prefix = Column(String(10), nullable=False, index=True)
    type = Column(Enum(*KEY_TYPES, name="api_key_type"), nullable=False, default="frontend")
    rate_limit_per_minute = Column(Integer, nullable=False, default=60)
    allowed_endpoints = Column(JSONType, nullable=True)  # glob patterns, null = all
    metadata_ = Column("metadata", JSONType, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(TIMESTAMP(timezone=True), nullable=True, index=True)
    total_requests = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_api_keys_type_active", "type", "is_active"),
    )

    @property
    def masked_key(self) -> str:
        return f"{self.key_prefix}****{self.key_prefix[-4:]}"

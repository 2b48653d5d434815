from sqlalchemy import Column, func
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class TimestampMixin:
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class SoftDeleteMixin:
    """Rows are hidden by setting ``deleted_at`` instead of being removed."""

    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def active(cls):
        """Filter clause matching rows that have not been soft-deleted."""
        return cls.deleted_at.is_(None)

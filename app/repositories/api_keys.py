"""Data access for API keys."""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.api_key import ApiKey


class ApiKeyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key_id: int) -> Optional[ApiKey]:
        return self.db.query(ApiKey).filter(ApiKey.id == key_id).first()

    def find_active_by_prefix(self, prefix: str) -> List[ApiKey]:
        return (
            self.db.query(ApiKey)
            .filter(ApiKey.key_prefix == prefix, ApiKey.is_active.is_(True))
            .order_by(ApiKey.id)
            .all()
        )

    def list(self, key_type: Optional[str] = None, active_only: bool = False) -> List[ApiKey]:
        q = self.db.query(ApiKey)
        if key_type:
            q = q.filter(ApiKey.type == key_type)
        if active_only:
            q = q.filter(ApiKey.is_active.is_(True))
        return q.order_by(ApiKey.created_at.desc(), ApiKey.id.desc()).all()

    def add(self, **fields) -> ApiKey:
        api_key = ApiKey(**fields)
        self.db.add(api_key)
        self.db.flush()
        return api_key

    def set_active(self, api_key: ApiKey, active: bool) -> ApiKey:
        api_key.is_active = active
        self.db.flush()
        return api_key

    def record_usage(self, api_key: ApiKey) -> None:
        # SQL-side increment so concurrent requests don't lose counts
        self.db.query(ApiKey).filter(ApiKey.id == api_key.id).update(
            {
                ApiKey.total_requests: ApiKey.total_requests + 1,
                ApiKey.last_used_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )

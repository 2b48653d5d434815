"""Platform admin routes: API key issuance and management."""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from app.api.dependencies import get_api_key_service, require_api_key
from app.models.api_key import ApiKey
from app.services.api_key_service import ApiKeyService

router = APIRouter(
    prefix="/admin/api-keys",
    tags=["admin"],
    dependencies=[Depends(require_api_key("admin"))],
)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ApiKeyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: Literal["frontend", "internal", "admin"] = "frontend"
    rate_limit_per_minute: Optional[int] = Field(None, ge=1)
    allowed_endpoints: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class ApiKeyResponse(BaseModel):
    id: int
    name: str
    type: str
    masked_key: str
    key_prefix: str
    rate_limit_per_minute: int
    allowed_endpoints: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None
    is_active: bool
    total_requests: int
    last_used_at: Optional[str] = None
    created_at: str


class ApiKeyCreateResponse(ApiKeyResponse):
    api_key: str  # shown once, never retrievable again


class ApiKeyDetailResponse(ApiKeyResponse):
    requests_this_minute: Optional[int] = None
    remaining_this_minute: Optional[int] = None


def _fields(k: ApiKey) -> Dict[str, Any]:
    return dict(
        id=k.id,
        name=k.name,
        type=k.type,
        masked_key=k.masked_key,
        key_prefix=k.key_prefix,
        rate_limit_per_minute=k.rate_limit_per_minute,
        allowed_endpoints=k.allowed_endpoints,
        metadata=k.metadata_,
        is_active=k.is_active,
        total_requests=k.total_requests,
        last_used_at=k.last_used_at.isoformat() if k.last_used_at else None,
        created_at=k.created_at.isoformat(),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("", response_model=List[ApiKeyResponse])
def list_api_keys(
    type: Optional[Literal["frontend", "internal", "admin"]] = Query(None),
    active_only: bool = Query(False),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return [ApiKeyResponse(**_fields(k)) for k in service.list(key_type=type, active_only=active_only)]


@router.post("", response_model=ApiKeyCreateResponse, status_code=status.HTTP_201_CREATED)
def create_api_key(
    body: ApiKeyCreateRequest,
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Issue a new key. The raw key is only ever returned by this call."""
    issued = service.generate(
        name=body.name,
        key_type=body.type,
        rate_limit_per_minute=body.rate_limit_per_minute,
        allowed_endpoints=body.allowed_endpoints,
        metadata=body.metadata,
    )
    return ApiKeyCreateResponse(api_key=issued.raw_key, **_fields(issued.api_key))


@router.get("/{key_id}", response_model=ApiKeyDetailResponse)
def get_api_key(
    key_id: int,
    service: ApiKeyService = Depends(get_api_key_service),
):
    api_key = service.get(key_id)
    used = service.current_usage(api_key)
    remaining = max(0, api_key.rate_limit_per_minute - used) if used is not None else None
    return ApiKeyDetailResponse(
        requests_this_minute=used,
        remaining_this_minute=remaining,
        **_fields(api_key),
    )


@router.post("/{key_id}/enable", response_model=ApiKeyResponse)
def enable_api_key(
    key_id: int,
    service: ApiKeyService = Depends(get_api_key_service),
):
    return ApiKeyResponse(**_fields(service.set_active(key_id, True)))


@router.post("/{key_id}/disable", response_model=ApiKeyResponse)
def disable_api_key(
    key_id: int,
    service: ApiKeyService = Depends(get_api_key_service),
):
    return ApiKeyResponse(**_fields(service.set_active(key_id, False)))

"""API key issuance, verification and per-request admission."""

import hashlib
import hmac
import logging
import secrets
import string
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any, Dict, Iterable, List, Optional

from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from app.core.config import RateLimitConfig, settings
from app.core.errors import (
    ApiKeyNotFound,
    EndpointNotAllowed,
    Forbidden,
    InvalidCredential,
    InvalidKeyType,
    MissingCredential,
)
from app.database.session import atomic
from app.models.api_key import KEY_TYPES, ApiKey
from app.repositories.api_keys import ApiKeyRepository
from app.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

PREFIX_LENGTH = 8
SECRET_LENGTH = 40
SECRET_ALPHABET = string.ascii_letters + string.digits

TYPE_PREFIXES = {
    "frontend": "ak_",
    "internal": "ik_",
    "admin": "admin_",
}


@dataclass
class IssuedKey:
    """A freshly generated key. ``raw_key`` exists only on this object."""

    api_key: ApiKey
    raw_key: str


def generate_raw_key(key_type: str) -> str:
    body = "".join(secrets.choice(SECRET_ALPHABET) for _ in range(SECRET_LENGTH))
    return f"{TYPE_PREFIXES.get(key_type, 'ak_')}{body}"


def key_prefix(raw_key: str) -> str:
    return raw_key[:PREFIX_LENGTH]


def _peppered(raw_key: str) -> str:
    # 64 hex chars, well inside bcrypt's 72-byte input
    return hmac.new(settings.API_KEY_PEPPER.encode(), raw_key.encode(), hashlib.sha256).hexdigest()


def hash_key(raw_key: str) -> str:
    return bcrypt.using(rounds=settings.API_KEY_BCRYPT_ROUNDS).hash(_peppered(raw_key))


def verify_key(raw_key: str, key_hash: str) -> bool:
    try:
        return bcrypt.verify(_peppered(raw_key), key_hash)
    except ValueError:
        # malformed stored hash
        return False


def endpoint_allowed(api_key: ApiKey, path: str) -> bool:
    patterns = api_key.allowed_endpoints or []
    if not patterns:
        return True
    return any(fnmatchcase(path, pattern) for pattern in patterns)


class ApiKeyService:
    def __init__(
        self,
        db: Session,
        rate_limiter: RateLimiter,
        rate_config: Optional[RateLimitConfig] = None,
    ):
        self.db = db
        self.keys = ApiKeyRepository(db)
        self.rate_limiter = rate_limiter
        self.rate_config = rate_config or RateLimitConfig.from_settings(settings)

    # -----------------------------------------------------------------------
    # Administration
    # -----------------------------------------------------------------------

    def generate(
        self,
        name: str,
        key_type: str = "frontend",
        rate_limit_per_minute: Optional[int] = None,
        allowed_endpoints: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> IssuedKey:
        if key_type not in KEY_TYPES:
            raise InvalidKeyType(f"Invalid key type '{key_type}'. Use one of: {', '.join(KEY_TYPES)}")

        if rate_limit_per_minute is None:
            rate_limit_per_minute = self.rate_config.default_for(key_type)

        raw_key = generate_raw_key(key_type)
        with atomic(self.db):
            api_key = self.keys.add(
                name=name,
                key_hash=hash_key(raw_key),
                key_prefix=key_prefix(raw_key),
                type=key_type,
                rate_limit_per_minute=rate_limit_per_minute,
                allowed_endpoints=allowed_endpoints or None,
                metadata_=metadata or None,
                is_active=True,
                total_requests=0,
            )

        logger.info("Generated %s api key %s (%s)", key_type, api_key.id, api_key.masked_key)
        return IssuedKey(api_key=api_key, raw_key=raw_key)

    def get(self, key_id: int) -> ApiKey:
        api_key = self.keys.get(key_id)
        if not api_key:
            raise ApiKeyNotFound(f"API key {key_id} not found")
        return api_key

    def list(self, key_type: Optional[str] = None, active_only: bool = False) -> List[ApiKey]:
        return self.keys.list(key_type=key_type, active_only=active_only)

    def set_active(self, key_id: int, active: bool) -> ApiKey:
        api_key = self.get(key_id)
        if api_key.is_active == active:
            return api_key
        with atomic(self.db):
            self.keys.set_active(api_key, active)
        logger.info("Api key %s %s", api_key.id, "enabled" if active else "disabled")
        return api_key

    def current_usage(self, api_key: ApiKey) -> Optional[int]:
        """Requests counted in the current minute, None for unlimited key types."""
        if self.rate_limiter.is_exempt(api_key.type):
            return None
        return self.rate_limiter.current_usage(api_key.id)

    # -----------------------------------------------------------------------
    # Request admission
    # -----------------------------------------------------------------------

    def validate_key(self, raw_key: str) -> Optional[ApiKey]:
        """Return the active key matching ``raw_key``; the hash check decides."""
        for candidate in self.keys.find_active_by_prefix(key_prefix(raw_key)):
            if verify_key(raw_key, candidate.key_hash):
                return candidate
        return None

    def authenticate(
        self,
        raw_key: Optional[str],
        path: str,
        allowed_types: Iterable[str] = (),
    ) -> ApiKey:
        """Run every admission check in order and record the request.

        resolve -> type -> endpoint -> quota. The first failing check raises;
        usage statistics are only written for admitted requests.
        """
        if not raw_key:
            raise MissingCredential("An API key is required in the X-API-Key header")

        api_key = self.validate_key(raw_key)
        if api_key is None:
            logger.warning("Rejected api key with prefix %s", key_prefix(raw_key))
            raise InvalidCredential("The API key is invalid or inactive")

        allowed_types = tuple(allowed_types)
        if allowed_types and api_key.type not in allowed_types:
            raise Forbidden("This API key is not allowed to access this endpoint")

        if not endpoint_allowed(api_key, path):
            raise EndpointNotAllowed(f"This API key has no access to endpoint: {path}")

        self.rate_limiter.hit(api_key.id, api_key.type, api_key.rate_limit_per_minute)

        with atomic(self.db):
            self.keys.record_usage(api_key)
        return api_key

"""Application configuration loaded from environment variables."""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./sales.db"
    REDIS_URL: str = "redis://localhost:6379/0"

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    API_V1_PREFIX: str = "/api/v1"

    # Products microservice
    PRODUCTS_SERVICE_URL: str = "http://localhost:8010"
    PRODUCTS_SERVICE_TIMEOUT: float = 10.0
    PRODUCTS_SERVICE_RETRY: int = 3
    PRODUCTS_SERVICE_RETRY_DELAY_MS: int = 100

    # Shared tokens for service-to-service calls
    INTERNAL_PRODUCTS_TOKEN: str = "products_internal_dev_token"
    INTERNAL_SALES_TOKEN: str = "sales_internal_dev_token"
    INTERNAL_GATEWAY_TOKEN: str = "gateway_internal_dev_token"

    # API keys
    API_KEY_PEPPER: str = ""
    API_KEY_BCRYPT_ROUNDS: int = 12

    RATE_LIMIT_FRONTEND: int = 60
    RATE_LIMIT_ADMIN: int = 120
    RATE_LIMIT_INTERNAL: int = 1000

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()


@dataclass(frozen=True)
class PricingConfig:
    base_url: str
    service_token: str
    timeout: float = 10.0
    attempts: int = 3
    retry_delay_ms: int = 100
    health_timeout: float = 5.0

    @classmethod
    def from_settings(cls, s: Settings) -> "PricingConfig":
        return cls(
            base_url=s.PRODUCTS_SERVICE_URL.rstrip("/"),
            service_token=s.INTERNAL_SALES_TOKEN,
            timeout=s.PRODUCTS_SERVICE_TIMEOUT,
            attempts=s.PRODUCTS_SERVICE_RETRY,
            retry_delay_ms=s.PRODUCTS_SERVICE_RETRY_DELAY_MS,
        )


@dataclass(frozen=True)
class RateLimitConfig:
    """Default per-minute limits by key type, used when a key is generated."""

    defaults: Dict[str, int]
    window_seconds: int = 60

    def default_for(self, key_type: str) -> int:
        return self.defaults.get(key_type, self.defaults.get("frontend", 60))

    @classmethod
    def from_settings(cls, s: Settings) -> "RateLimitConfig":
        return cls(
            defaults={
                "frontend": s.RATE_LIMIT_FRONTEND,
                "admin": s.RATE_LIMIT_ADMIN,
                "internal": s.RATE_LIMIT_INTERNAL,
            },
        )


@dataclass(frozen=True)
class InternalAuthConfig:
    # (token, service name) pairs
    tokens: Tuple[Tuple[str, str], ...]
    environment: str = "production"
    allowed_networks: Tuple[str, ...] = (
        "127.0.0.1/32",
        "::1/128",
        "172.16.0.0/12",
        "10.0.0.0/8",
        "192.168.0.0/16",
    )
    trusted_environments: Tuple[str, ...] = ("local", "development")

    @classmethod
    def from_settings(cls, s: Settings) -> "InternalAuthConfig":
        return cls(
            tokens=(
                (s.INTERNAL_PRODUCTS_TOKEN, "products"),
                (s.INTERNAL_SALES_TOKEN, "sales"),
                (s.INTERNAL_GATEWAY_TOKEN, "gateway"),
            ),
            environment=s.ENVIRONMENT,
        )

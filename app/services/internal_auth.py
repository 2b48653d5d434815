"""Shared-token check for service-to-service calls."""

import hmac
import ipaddress
import logging
from typing import Optional

from app.core.config import InternalAuthConfig
from app.core.errors import InvalidCredential, MissingCredential, OriginNotAllowed

logger = logging.getLogger(__name__)


class InternalServiceGuard:
    def __init__(self, config: InternalAuthConfig):
        self.config = config
        self._networks = [ipaddress.ip_network(n, strict=False) for n in config.allowed_networks]

    def service_for_token(self, token: str) -> Optional[str]:
        for candidate, service in self.config.tokens:
            if candidate and hmac.compare_digest(candidate.encode(), token.encode()):
                return service
        return None

    def origin_allowed(self, client_ip: Optional[str]) -> bool:
        if self.config.environment in self.config.trusted_environments:
            return True
        if not client_ip:
            return False
        try:
            address = ipaddress.ip_address(client_ip)
        except ValueError:
            return False
        return any(address in network for network in self._networks if network.version == address.version)

    def authenticate(self, token: Optional[str], client_ip: Optional[str]) -> str:
        """Return the calling service's name or raise."""
        if not token:
            raise MissingCredential("A service token is required in the X-Service-Token header")

        service = self.service_for_token(token)
        if service is None:
            raise InvalidCredential("The service token is not valid")

        if not self.origin_allowed(client_ip):
            logger.warning("Internal call from %s rejected: origin not allowed", client_ip)
            raise OriginNotAllowed("The request origin is not allowed for internal calls")

        return service

"""IP allow-list access control for the ingestion endpoint.

Only exact string matches are honored: no wildcards, no subnets. An empty
allow-list is treated as a misconfiguration rather than "deny everyone
quietly", so the caller can tell the two failures apart.
"""

from typing import Iterable, Optional

from fastapi import Request

from tx_ingest_service.core.errors import AuthError, ConfigError
from tx_ingest_service.core.logging import get_logger

logger = get_logger(__name__)

FORWARDED_FOR_HEADER = "X-Forwarded-For"


def resolve_client_address(request: Request) -> Optional[str]:
    """Return the caller's address.

    The first entry of ``X-Forwarded-For`` wins when present, otherwise the
    socket peer is used.
    """
    forwarded = request.headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None and request.client.host:
        return request.client.host
    return None


def is_address_allowed(address: Optional[str], allow_list: Iterable[str]) -> bool:
    """Allow iff ``address`` is non-empty and present verbatim in ``allow_list``."""
    if not address:
        return False
    return address in set(allow_list)


class IPAllowListDependency:
    """FastAPI dependency guarding a route with a static IP allow-list.

    Usage:
        require_allowed_ip = IPAllowListDependency(["10.0.0.5"])
        @router.post("/api/data", dependencies=[Depends(require_allowed_ip)])
        async def ingest(...): ...

    Or to access the resolved address:
        async def ingest(client_ip: str = Depends(require_allowed_ip)): ...
    """

    def __init__(self, allowed_addresses: Iterable[str]):
        self.allowed_addresses = frozenset(allowed_addresses)

    async def __call__(self, request: Request) -> str:
        if not self.allowed_addresses:
            logger.error(
                "Rejecting request: ingestion allow-list is empty",
                path=request.url.path,
            )
            raise ConfigError()

        address = resolve_client_address(request)
        if not is_address_allowed(address, self.allowed_addresses):
            logger.warning(
                "Rejected request from unauthorized address",
                client_ip=address,
                allowed_ips=sorted(self.allowed_addresses),
            )
            raise AuthError()

        return address

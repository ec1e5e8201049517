"""Host/service resolution for UDP queries."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Any, List, Tuple

import structlog

from sntp_query.errors import ResolutionError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ResolvedAddress:
    family: int
    proto: int
    sockaddr: Tuple[Any, ...]
    host: str
    port: str

    @property
    def ipv4(self) -> bool:
        return self.family == socket.AF_INET

    def __str__(self) -> str:
        return f"{self.host} {self.port}"


def _lookup_flags() -> int:
    flags = getattr(socket, "AI_ADDRCONFIG", 0)
    flags |= getattr(socket, "AI_V4MAPPED", 0)
    return flags


def _numeric_name(sockaddr: Tuple[Any, ...]) -> Tuple[str, str]:
    flags = socket.NI_DGRAM | socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
    try:
        return socket.getnameinfo(sockaddr, flags)
    except OSError as e:
        logger.warning("getnameinfo_failed", sockaddr=sockaddr, error=str(e))
        return str(sockaddr[0]), str(sockaddr[1])


def resolve(host: str, service: str = "ntp") -> List[ResolvedAddress]:
    """Resolve ``host``/``service`` to datagram addresses, in resolver order."""
    try:
        infos = socket.getaddrinfo(
            host,
            service,
            socket.AF_UNSPEC,
            socket.SOCK_DGRAM,
            0,
            _lookup_flags(),
        )
    except socket.gaierror as e:
        raise ResolutionError(f"getaddrinfo: {e.strerror} ({e.errno})") from e

    addresses = []
    for family, _type, proto, _canon, sockaddr in infos:
        name, port = _numeric_name(sockaddr)
        addresses.append(
            ResolvedAddress(family=family, proto=proto, sockaddr=sockaddr, host=name, port=port)
        )
    logger.debug("resolved", host=host, service=service, count=len(addresses))
    return addresses

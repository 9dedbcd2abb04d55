import ipaddress
import logging
from typing import Generator, Optional, Sequence

from fastapi import Request

from app.config import settings
from app.db.session import SessionLocal

logger = logging.getLogger("linkforest.deps")

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def parse_networks(raw: Sequence[str]) -> list[IPNetwork]:
    networks: list[IPNetwork] = []
    for entry in raw:
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            logger.warning("Invalid IP/CIDR in TRUSTED_PROXY_IPS: %s", entry)
    return networks


TRUSTED_PROXIES = parse_networks(settings.trusted_proxy_ips)


def get_client_ip(request: Request, trusted_proxies: Sequence[IPNetwork]) -> Optional[str]:
    """
    Extract real client IP.
    Only trust X-Forwarded-For when the immediate peer is a trusted proxy.
    """
    direct_ip = request.client.host if request.client else ""
    if direct_ip:
        try:
            addr = ipaddress.ip_address(direct_ip)
        except ValueError:
            return direct_ip
        if any(addr in net for net in trusted_proxies):
            forwarded = request.headers.get("x-forwarded-for")
            if forwarded:
                return forwarded.split(",")[0].strip()
    return direct_ip or None


def client_ip(request: Request) -> Optional[str]:
    return get_client_ip(request, TRUSTED_PROXIES)

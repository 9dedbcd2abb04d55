import ipaddress
from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session
from app.models.click_event import ClickEvent, ClickEventType


def _clip(value: Optional[str], limit: int) -> Optional[str]:
    return (value or "")[:limit] or None


def _normalise_ip(value: Optional[str]) -> Optional[str]:
    """Canonical form of a valid IPv4/IPv6 address, else None."""
    if not value:
        return None
    try:
        ip = str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None
    # scoped IPv6 ("fe80::1%eth0") can exceed the column
    return ip if len(ip) <= 45 else None


def record(
    db: Session,
    *,
    user_id: UUID,
    target_url: str,
    event_type: ClickEventType = ClickEventType.LINK,
    link_id: Optional[UUID] = None,
    custom_domain: Optional[str] = None,
    subdomain: Optional[str] = None,
    client_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    referer: Optional[str] = None,
) -> ClickEvent:
    # Header and query values are client-controlled; keep them within column sizes
    db_obj = ClickEvent(
        user_id=user_id,
        link_id=link_id,
        event_type=event_type.value,
        target_url=target_url[:2048],
        custom_domain=_clip(custom_domain, 255),
        subdomain=_clip(subdomain, 63),
        client_ip=_normalise_ip(client_ip),
        user_agent=_clip(user_agent, 512),
        referer=_clip(referer, 2048),
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def count_for_user(db: Session, user_id: UUID, event_type: Optional[ClickEventType] = None) -> int:
    query = db.query(ClickEvent).filter(ClickEvent.user_id == user_id)
    if event_type is not None:
        query = query.filter(ClickEvent.event_type == event_type.value)
    return query.count()

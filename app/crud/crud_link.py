from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session
from app.models.short_link import ShortLink


def get_active_for_owner(db: Session, user_id: UUID) -> List[ShortLink]:
    """Active links in profile order."""
    return db.query(ShortLink).filter(
        ShortLink.user_id == user_id,
        ShortLink.is_active.is_(True),
    ).order_by(ShortLink.position.asc(), ShortLink.created_at.asc()).all()


def get_by_owner_and_slug(db: Session, user_id: UUID, slug: str) -> Optional[ShortLink]:
    return db.query(ShortLink).filter(
        ShortLink.user_id == user_id,
        ShortLink.slug == slug,
        ShortLink.is_active.is_(True),
    ).first()


def get_first_by_slug(db: Session, slug: str) -> Optional[ShortLink]:
    """Main-domain fallback when no routing context says whose slug this is."""
    return db.query(ShortLink).filter(
        ShortLink.slug == slug,
        ShortLink.is_active.is_(True),
    ).order_by(ShortLink.created_at.asc()).first()


def increment_clicks(db: Session, link: ShortLink) -> None:
    link.clicks = ShortLink.clicks + 1
    db.add(link)

from typing import Optional
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.user import User


def get(db: Session, user_id: UUID) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.username) == username.lower()).first()


# subdomain and custom_domain are stored lower-cased (see User.validates),
# so the plain column comparison keeps the unique indexes usable.

def get_by_subdomain(db: Session, subdomain: str) -> Optional[User]:
    return db.query(User).filter(User.subdomain == subdomain.strip().lower()).first()


def get_by_verified_custom_domain(db: Session, hostname: str) -> Optional[User]:
    """Only verified domains resolve; an unverified one behaves like an unknown host."""
    return db.query(User).filter(
        User.custom_domain == hostname.strip().lower(),
        User.domain_verified.is_(True),
    ).first()

"""
Short Link Model

A profile link that is also reachable as /{slug} on the owner's subdomain or
custom domain. Slugs are unique per owner only; the same slug may exist for
several users, which is why the router tags rewrites with the originating host.
"""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Uuid, UniqueConstraint, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class ShortLink(Base):
    __table_args__ = (UniqueConstraint("user_id", "slug", name="uq_shortlink_user_slug"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    slug = Column(String(64), nullable=False, index=True)
    title = Column(String(200), nullable=True)
    target_url = Column(String(2048), nullable=False)
    position = Column(Integer, default=0, nullable=False)  # order on the profile page
    is_active = Column(Boolean, default=True, nullable=False)
    clicks = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="links")

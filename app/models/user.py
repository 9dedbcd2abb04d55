import uuid
import enum
from sqlalchemy import Column, String, Boolean, DateTime, Text, Uuid, func
from sqlalchemy.orm import relationship, validates
from app.db.base_class import Base


class RootDomainMode(str, enum.Enum):
    PROFILE = "profile"
    REDIRECT = "redirect"


class User(Base):
    """A Linkforest account; the tenant that hostnames resolve to."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String(64), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)

    # ── Hostname routing ──
    subdomain = Column(String(63), unique=True, index=True, nullable=True)       # jane.linkforest.com
    custom_domain = Column(String(255), unique=True, index=True, nullable=True)  # links.jane.dev
    domain_verified = Column(Boolean, default=False, nullable=False)
    root_domain_mode = Column(String(16), default=RootDomainMode.PROFILE.value, nullable=False)
    root_domain_redirect_url = Column(String(2048), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    links = relationship("ShortLink", back_populates="owner", cascade="all, delete-orphan")
    click_events = relationship("ClickEvent", back_populates="user", cascade="all, delete-orphan")

    @validates("subdomain", "custom_domain")
    def _lower_hostname_part(self, key, value):
        # Lookups compare these columns directly against normalised hosts
        if value is None:
            return None
        return value.strip().lower().rstrip(".") or None

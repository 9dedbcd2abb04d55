import uuid
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class ClickEventType(str, enum.Enum):
    LINK = "link"                     # /l/{slug} short-link hit
    ROOT_REDIRECT = "root_redirect"   # custom-domain root in redirect mode


class ClickEvent(Base):
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    link_id = Column(Uuid, ForeignKey("shortlink.id", ondelete="SET NULL"), nullable=True, index=True)
    event_type = Column(String(32), nullable=False, default=ClickEventType.LINK.value)

    target_url = Column(String(2048), nullable=False)
    custom_domain = Column(String(255), nullable=True)
    subdomain = Column(String(63), nullable=True)

    # Client context
    client_ip = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)
    referer = Column(String(2048), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="click_events")

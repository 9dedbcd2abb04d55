from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict


class LinkPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slug: str
    title: Optional[str] = None
    target_url: str
    position: int = 0


class RoutingContext(BaseModel):
    """How the request reached the handler (set by the hostname router)."""
    custom_domain: Optional[str] = None
    subdomain: Optional[str] = None


class ProfilePublic(BaseModel):
    id: UUID
    username: str
    display_name: Optional[str] = None
    bio: Optional[str] = None
    links: List[LinkPublic] = []
    routing: RoutingContext = RoutingContext()

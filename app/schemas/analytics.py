from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class RedirectTrackIn(BaseModel):
    """Body posted by the hostname router when a custom-domain root redirects."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: UUID = Field(alias="userId")
    target_url: str = Field(alias="targetUrl", min_length=1, max_length=2048)
    custom_domain: Optional[str] = Field(default=None, alias="customDomain", max_length=255)


class RedirectTrackOut(BaseModel):
    success: bool = True

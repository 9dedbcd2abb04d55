"""
Redirect tracking sink

Receives the fire-and-forget notification the hostname router sends when a
verified custom domain's root redirects to an external URL.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.api import deps
from app.crud import crud_click, crud_user
from app.models.click_event import ClickEventType
from app.schemas.analytics import RedirectTrackIn, RedirectTrackOut

router = APIRouter()
logger = logging.getLogger("linkforest.analytics")


@router.post("/redirect-track", response_model=RedirectTrackOut)
def track_root_redirect(
    body: RedirectTrackIn,
    request: Request,
    db: Session = Depends(deps.get_db),
    client_ip: Optional[str] = Depends(deps.client_ip),
) -> Any:
    user = crud_user.get(db, body.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    crud_click.record(
        db,
        user_id=user.id,
        event_type=ClickEventType.ROOT_REDIRECT,
        target_url=body.target_url,
        custom_domain=body.custom_domain,
        client_ip=client_ip,
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )
    logger.info("Root redirect tracked", extra={"user_id": str(user.id), "custom_domain": body.custom_domain})
    return RedirectTrackOut()

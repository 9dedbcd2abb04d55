"""
Public profile & short-link handlers

These are the targets of the hostname router's rewrites:
  /{username}   public profile (rewritten from / and /bio on tenant hosts)
  /l/{slug}     short link (rewritten from /{slug} on tenant hosts)

`subdomain` / `customDomain` query params carry the routing context so that
identically-named slugs of different users are told apart.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from app.api import deps
from app.crud import crud_click, crud_link, crud_user
from app.models.click_event import ClickEventType
from app.schemas.profile import LinkPublic, ProfilePublic, RoutingContext
from app.schemas.routing import NO_CACHE_HEADERS

router = APIRouter()
logger = logging.getLogger("linkforest.public")


@router.get("/l/{slug}")
def follow_short_link(
    slug: str,
    request: Request,
    subdomain: Optional[str] = Query(None),
    custom_domain: Optional[str] = Query(None, alias="customDomain"),
    db: Session = Depends(deps.get_db),
    client_ip: Optional[str] = Depends(deps.client_ip),
) -> Any:
    """
    Resolve a short link and redirect to its target.

    Owner is disambiguated by routing context:
      1. ?subdomain=jane           → owner by subdomain
      2. ?customDomain=links.x.dev → owner by verified custom domain
      3. neither (main domain)     → oldest active link with that slug
    """
    if subdomain:
        owner = crud_user.get_by_subdomain(db, subdomain)
        link = crud_link.get_by_owner_and_slug(db, owner.id, slug) if owner else None
    elif custom_domain:
        owner = crud_user.get_by_verified_custom_domain(db, custom_domain)
        link = crud_link.get_by_owner_and_slug(db, owner.id, slug) if owner else None
    else:
        link = crud_link.get_first_by_slug(db, slug)

    if not link:
        raise HTTPException(status_code=404, detail="Link not found")

    target_url = link.target_url
    crud_link.increment_clicks(db, link)
    crud_click.record(
        db,
        user_id=link.user_id,
        link_id=link.id,
        event_type=ClickEventType.LINK,
        target_url=target_url,
        subdomain=subdomain,
        custom_domain=custom_domain,
        client_ip=client_ip,
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )
    logger.info("Short link followed", extra={"slug": slug, "link_id": str(link.id)})
    return RedirectResponse(target_url, status_code=302, headers=NO_CACHE_HEADERS)


@router.get("/{username}", response_model=ProfilePublic)
def get_public_profile(
    username: str,
    subdomain: Optional[str] = Query(None),
    custom_domain: Optional[str] = Query(None, alias="customDomain"),
    db: Session = Depends(deps.get_db),
) -> Any:
    """Public profile page data (no auth required)."""
    user = crud_user.get_by_username(db, username)
    if not user:
        raise HTTPException(status_code=404, detail="Profile not found")

    links = crud_link.get_active_for_owner(db, user.id)
    return ProfilePublic(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        bio=user.bio,
        links=[LinkPublic.model_validate(link) for link in links],
        routing=RoutingContext(custom_domain=custom_domain, subdomain=subdomain),
    )

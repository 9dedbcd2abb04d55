"""
Hostname Router

Decides, per request, whether to pass it through, rewrite it to an internal
path, redirect it, or reject it, based on the Host header and path.

Evaluation order:
  1. Bypass      API / build-asset / static-file paths → Pass (no lookup)
  2. Classify    main domain / user subdomain / candidate custom domain
  3. Subdomain   lookup by label; 404 if unknown, 503 on lookup failure
  4. Main        no lookup, always Pass
  5. Custom      lookup by verified hostname; 503 on lookup failure
  6. Fallback    404
"""

import logging
import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from app.config import Settings
from app.logging_config import tenant_ctx
from app.schemas.routing import Pass, Redirect, Reject, Rewrite, RouteDecision, decision_label
from app.services.hostname import (
    HostKind,
    ParsedHost,
    is_bypassed_path,
    is_reserved_route,
    parse_hostname,
    path_segments,
)
from app.services.redirect_tracking import AnalyticsSink, RedirectEvent
from app.services.tenant_directory import TenantDirectory, TenantLookupError, TenantRecord

logger = logging.getLogger("linkforest.routing")


@dataclass(frozen=True)
class RoutingConfig:
    main_domain: str
    main_domain_aliases: FrozenSet[str]
    reserved_subdomains: FrozenSet[str]
    reserved_routes: FrozenSet[str]
    bypass_prefixes: Tuple[str, ...]
    static_file_pattern: "re.Pattern[str]"
    lookup_timeout: float = 3.0
    retry_after: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> "RoutingConfig":
        return cls(
            main_domain=settings.MAIN_DOMAIN,
            main_domain_aliases=settings.main_domain_aliases,
            reserved_subdomains=settings.reserved_subdomains,
            reserved_routes=settings.reserved_routes,
            bypass_prefixes=settings.bypass_path_prefixes,
            static_file_pattern=settings.static_file_pattern,
            lookup_timeout=settings.TENANT_LOOKUP_TIMEOUT_SECONDS,
            retry_after=settings.UNAVAILABLE_RETRY_AFTER_SECONDS,
        )


@dataclass(frozen=True)
class RouteRequest:
    hostname: str
    path: str
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None


def _is_page_route(path: str, segments: List[str]) -> bool:
    return path.startswith("/page/") and len(segments) == 2


class HostnameRouter:
    def __init__(self, directory: TenantDirectory, analytics: AnalyticsSink, config: RoutingConfig):
        self.directory = directory
        self.analytics = analytics
        self.config = config

    async def resolve(self, request: RouteRequest) -> RouteDecision:
        path = request.path or "/"

        if is_bypassed_path(path, self.config.bypass_prefixes, self.config.static_file_pattern):
            return Pass()

        host = parse_hostname(
            request.hostname,
            self.config.main_domain,
            self.config.main_domain_aliases,
            self.config.reserved_subdomains,
        )
        segments = path_segments(path)
        logger.debug(
            "Routing branch entered",
            extra={"branch": host.kind.value, "hostname": host.hostname, "path": path},
        )

        if host.kind is HostKind.USER_SUBDOMAIN:
            decision = await self._route_subdomain(host, path, segments)
        elif host.kind is HostKind.MAIN:
            decision = self._route_main(path, segments)
        else:
            decision = await self._route_custom_domain(host, request, path, segments)

        logger.info(
            "Route decided",
            extra={
                "branch": host.kind.value,
                "hostname": host.hostname,
                "path": path,
                "decision": decision_label(decision),
            },
        )
        return decision

    # ── Branches ──

    async def _route_subdomain(self, host: ParsedHost, path: str, segments: List[str]) -> RouteDecision:
        try:
            tenant = await self.directory.find_by_subdomain(host.subdomain, timeout=self.config.lookup_timeout)
        except TenantLookupError:
            return Reject.unavailable(self.config.retry_after)

        if tenant is None:
            return Reject.not_found("Profile not found")
        self._tenant_resolved(tenant, host)

        if _is_page_route(path, segments):
            return Pass()
        if path in ("/", "/bio"):
            return Rewrite(f"/{tenant.username}")
        if len(segments) == 1 and not is_reserved_route(segments[0], self.config.reserved_routes):
            return Rewrite(f"/l/{segments[0]}", {"subdomain": host.subdomain})
        return Pass()

    def _route_main(self, path: str, segments: List[str]) -> RouteDecision:
        # Profiles and short links on the main domain are resolved downstream.
        if path == "/" or is_reserved_route(segments[0] if segments else "", self.config.reserved_routes):
            case = "root_or_reserved"
        elif len(segments) == 1:
            case = "profile"
        else:
            case = "nested"
        logger.debug("Main domain pass-through", extra={"case": case})
        return Pass()

    async def _route_custom_domain(
        self, host: ParsedHost, request: RouteRequest, path: str, segments: List[str]
    ) -> RouteDecision:
        try:
            tenant = await self.directory.find_by_verified_custom_domain(
                host.hostname, timeout=self.config.lookup_timeout
            )
        except TenantLookupError:
            return Reject.unavailable(self.config.retry_after)

        if tenant is None:
            return Reject.not_found()
        self._tenant_resolved(tenant, host)

        context = {"customDomain": host.hostname}
        if _is_page_route(path, segments):
            return Pass()
        if path == "/":
            if tenant.redirects_root:
                self._track_root_redirect(tenant, host, request)
                return Redirect(tenant.root_domain_redirect_url)
            return Rewrite(f"/{tenant.username}", context)
        if path == "/bio":
            return Rewrite(f"/{tenant.username}", context)
        if len(segments) == 1 and not is_reserved_route(segments[0], self.config.reserved_routes):
            return Rewrite(f"/l/{segments[0]}", context)
        return Pass()

    # ── Helpers ──

    def _tenant_resolved(self, tenant: TenantRecord, host: ParsedHost) -> None:
        tenant_ctx.set(tenant.username)
        logger.debug(
            "Tenant resolved",
            extra={"branch": host.kind.value, "hostname": host.hostname, "username": tenant.username},
        )

    def _track_root_redirect(self, tenant: TenantRecord, host: ParsedHost, request: RouteRequest) -> None:
        event = RedirectEvent(
            user_id=tenant.id,
            target_url=tenant.root_domain_redirect_url,
            custom_domain=host.hostname,
            client_ip=request.client_ip,
            user_agent=request.user_agent,
            referer=request.referer,
        )
        try:
            self.analytics.notify(event)
        except Exception as e:  # tracking must never affect the redirect
            logger.debug("Redirect tracking notify raised: %s", e)

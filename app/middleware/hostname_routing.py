"""
Hostname Routing Middleware

Applies the HostnameRouter decision to every request:
  Pass     → continue to the matched route
  Rewrite  → swap path / query string in the ASGI scope, then continue
  Redirect → 302 with cache-disabling headers
  Reject   → plain-text 404 / 503

The decision is also stored on request.state.route_decision.
"""

from typing import Optional
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response

from app.api.deps import get_client_ip, parse_networks
from app.config import settings
from app.middleware.metrics import record_route_decision
from app.schemas.routing import Pass, Redirect, Reject, Rewrite, decision_label
from app.services.hostname_router import HostnameRouter, RouteRequest


def apply_rewrite(request: Request, rewrite: Rewrite) -> None:
    """Point the ASGI scope at the rewritten path; call_next shares this scope."""
    request.state.original_path = request.url.path
    request.scope["path"] = rewrite.path
    request.scope["raw_path"] = rewrite.path.encode("utf-8")
    request.scope["query_string"] = urlencode(rewrite.query).encode("latin-1")


class HostnameRoutingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, router: Optional[HostnameRouter] = None):  # type: ignore
        super().__init__(app)
        self._router = router
        self.trusted_proxies = parse_networks(settings.trusted_proxy_ips)

    def get_router(self, request: Request) -> HostnameRouter:
        # app.state.hostname_router is set in app.main; tests swap it out
        return self._router or request.app.state.hostname_router

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        route_request = RouteRequest(
            hostname=request.headers.get("host", ""),
            path=request.url.path,
            client_ip=get_client_ip(request, self.trusted_proxies),
            user_agent=request.headers.get("user-agent"),
            referer=request.headers.get("referer"),
        )
        decision = await self.get_router(request).resolve(route_request)
        request.state.route_decision = decision
        record_route_decision(decision_label(decision))

        if isinstance(decision, Pass):
            return await call_next(request)
        if isinstance(decision, Rewrite):
            apply_rewrite(request, decision)
            return await call_next(request)
        if isinstance(decision, Redirect):
            return RedirectResponse(decision.url, status_code=decision.status, headers=decision.headers)
        if isinstance(decision, Reject):
            return PlainTextResponse(decision.body, status_code=decision.status, headers=decision.headers)
        raise TypeError(f"Unhandled route decision: {decision!r}")

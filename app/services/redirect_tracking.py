"""
Redirect tracking (fire-and-forget)

When a verified custom domain's root redirects elsewhere, the hit is reported
to the analytics endpoint without holding up the 302. Delivery is best-effort:
nothing here may raise into, or delay, the request that triggered it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Set
from uuid import UUID

import httpx

logger = logging.getLogger("linkforest.analytics")


@dataclass(frozen=True)
class RedirectEvent:
    user_id: UUID
    target_url: str
    custom_domain: str
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None

    def to_payload(self) -> dict:
        return {
            "userId": str(self.user_id),
            "targetUrl": self.target_url,
            "customDomain": self.custom_domain,
        }

    def to_headers(self) -> dict:
        return {
            "x-forwarded-for": self.client_ip or "",
            "user-agent": self.user_agent or "",
            "referer": self.referer or "",
        }


class AnalyticsSink:
    def notify(self, event: RedirectEvent) -> None:
        """Schedule delivery and return immediately. Must never raise."""
        raise NotImplementedError


class NullAnalyticsSink(AnalyticsSink):
    def notify(self, event: RedirectEvent) -> None:
        return None


class HttpAnalyticsSink(AnalyticsSink):
    """POSTs redirect events to the redirect-track endpoint."""

    def __init__(self, endpoint_url: str, timeout: float = 2.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.transport = transport
        # Strong references so pending tasks are not garbage-collected mid-flight
        self._pending: Set[asyncio.Task] = set()

    def notify(self, event: RedirectEvent) -> None:
        try:
            task = asyncio.get_running_loop().create_task(self._send(event))
        except RuntimeError as e:
            logger.debug("Redirect tracking not scheduled: %s", e)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, event: RedirectEvent) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                await client.post(
                    self.endpoint_url,
                    json=event.to_payload(),
                    headers=event.to_headers(),
                )
        except Exception as e:  # best-effort: ignore all delivery errors
            logger.debug(
                "Redirect tracking delivery failed",
                extra={"user_id": str(event.user_id), "error": str(e)},
            )

    async def drain(self) -> None:
        """Wait for in-flight deliveries (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

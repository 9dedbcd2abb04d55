"""
Tenant Directory

Resolves a subdomain label or a verified custom hostname to the owning user.
Every lookup is bounded by a caller-supplied timeout; a timeout and a database
error are reported the same way (TenantLookupError) so the router can answer
503 instead of 404.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.crud import crud_user
from app.models.user import RootDomainMode, User

logger = logging.getLogger("linkforest.tenants")


class TenantLookupError(Exception):
    """Lookup timed out or the database failed."""

    def __init__(self, kind: str, key: str, reason: str):
        self.kind = kind
        self.key = key
        self.reason = reason
        super().__init__(f"{kind} lookup for {key!r} failed: {reason}")


@dataclass(frozen=True)
class TenantRecord:
    id: UUID
    username: str
    root_domain_mode: str = RootDomainMode.PROFILE.value
    root_domain_redirect_url: Optional[str] = None

    @property
    def redirects_root(self) -> bool:
        return self.root_domain_mode == RootDomainMode.REDIRECT.value and bool(self.root_domain_redirect_url)

    @classmethod
    def from_user(cls, user: User) -> "TenantRecord":
        return cls(
            id=user.id,
            username=user.username,
            root_domain_mode=user.root_domain_mode or RootDomainMode.PROFILE.value,
            root_domain_redirect_url=user.root_domain_redirect_url,
        )


class TenantDirectory:
    """Interface consumed by the hostname router."""

    async def find_by_subdomain(self, label: str, *, timeout: float) -> Optional[TenantRecord]:
        raise NotImplementedError

    async def find_by_verified_custom_domain(self, hostname: str, *, timeout: float) -> Optional[TenantRecord]:
        raise NotImplementedError


class SQLTenantDirectory(TenantDirectory):
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    async def find_by_subdomain(self, label: str, *, timeout: float) -> Optional[TenantRecord]:
        return await self._bounded("subdomain", label, crud_user.get_by_subdomain, timeout)

    async def find_by_verified_custom_domain(self, hostname: str, *, timeout: float) -> Optional[TenantRecord]:
        return await self._bounded("custom_domain", hostname, crud_user.get_by_verified_custom_domain, timeout)

    def _query(self, finder: Callable[[Session, str], Optional[User]], key: str) -> Optional[TenantRecord]:
        db = self._session_factory()
        try:
            user = finder(db, key)
            return TenantRecord.from_user(user) if user else None
        finally:
            db.close()

    async def _bounded(self, kind: str, key: str, finder, timeout: float) -> Optional[TenantRecord]:
        # On timeout the await is abandoned at once; the worker thread finishes on its own
        query = asyncio.get_running_loop().run_in_executor(None, functools.partial(self._query, finder, key))
        try:
            return await asyncio.wait_for(query, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Tenant lookup timed out", extra={"lookup": kind, "key": key, "timeout_s": timeout})
            raise TenantLookupError(kind, key, f"timed out after {timeout}s")
        except SQLAlchemyError as e:
            logger.error("Tenant lookup failed", extra={"lookup": kind, "key": key, "error": str(e)})
            raise TenantLookupError(kind, key, str(e)) from e

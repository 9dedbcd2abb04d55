"""Unit tests for the hostname router decision table."""
import asyncio
import time
import uuid

import pytest
from sqlalchemy.exc import OperationalError

from app.crud import crud_user
from app.schemas.routing import Pass, Redirect, Reject, Rewrite
from app.services.hostname_router import HostnameRouter, RouteRequest
from app.services.redirect_tracking import HttpAnalyticsSink
from app.services.tenant_directory import (
    SQLTenantDirectory,
    TenantDirectory,
    TenantLookupError,
    TenantRecord,
)
from tests.conftest import REDIRECT_TARGET, RecordingSink, routing_config

JANE = TenantRecord(id=uuid.uuid4(), username="jane")
ACME = TenantRecord(id=uuid.uuid4(), username="acme")
REDIR = TenantRecord(
    id=uuid.uuid4(), username="redir",
    root_domain_mode="redirect", root_domain_redirect_url=REDIRECT_TARGET,
)
REDIR_NO_URL = TenantRecord(id=uuid.uuid4(), username="nourl", root_domain_mode="redirect")


class _FakeDirectory(TenantDirectory):
    def __init__(self, subdomains=None, domains=None, error=None):
        self.subdomains = subdomains or {}
        self.domains = domains or {}
        self.error = error
        self.calls = []

    async def find_by_subdomain(self, label, *, timeout):
        self.calls.append(("subdomain", label, timeout))
        if self.error:
            raise self.error
        return self.subdomains.get(label)

    async def find_by_verified_custom_domain(self, hostname, *, timeout):
        self.calls.append(("custom_domain", hostname, timeout))
        if self.error:
            raise self.error
        return self.domains.get(hostname)


class _SessionStub:
    def close(self):
        pass


def _router(directory=None, sink=None, **config):
    directory = directory or _FakeDirectory(
        subdomains={"jane": JANE},
        domains={"links.acme.dev": ACME, "go.redir.io": REDIR, "nourl.example": REDIR_NO_URL},
    )
    return HostnameRouter(directory, sink or RecordingSink(), routing_config(**config))


async def _resolve(router, host, path, **kwargs):
    return await router.resolve(RouteRequest(hostname=host, path=path, **kwargs))


# ── Bypass ──

@pytest.mark.asyncio
@pytest.mark.parametrize("host", ["linkforest.com", "jane.linkforest.com", "ghost.linkforest.com", "unknown.io"])
@pytest.mark.parametrize("path", ["/api/profile/redirect-track", "/_next/data.json", "/static/x", "/favicon.ico", "/img/a.webp"])
async def test_bypass_paths_always_pass_without_lookup(host, path):
    directory = _FakeDirectory(error=TenantLookupError("x", "y", "should not be called"))
    decision = await _resolve(_router(directory), host, path)
    assert decision == Pass()
    assert directory.calls == []


# ── Subdomain branch ──

@pytest.mark.asyncio
async def test_subdomain_root_rewrites_to_profile():
    assert await _resolve(_router(), "jane.linkforest.com", "/") == Rewrite("/jane")


@pytest.mark.asyncio
async def test_subdomain_bio_rewrites_to_profile():
    assert await _resolve(_router(), "jane.linkforest.com", "/bio") == Rewrite("/jane")


@pytest.mark.asyncio
async def test_subdomain_single_segment_rewrites_to_short_link():
    decision = await _resolve(_router(), "jane.linkforest.com", "/instagram")
    assert decision == Rewrite("/l/instagram", {"subdomain": "jane"})


@pytest.mark.asyncio
async def test_subdomain_page_route_passes():
    assert await _resolve(_router(), "jane.linkforest.com", "/page/about") == Pass()


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/dashboard", "/l", "/a/b", "/page/a/b"])
async def test_subdomain_reserved_or_nested_passes(path):
    assert await _resolve(_router(), "jane.linkforest.com", path) == Pass()


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/", "/bio", "/instagram", "/a/b"])
async def test_unknown_subdomain_is_404(path):
    decision = await _resolve(_router(), "ghost.linkforest.com", path)
    assert isinstance(decision, Reject)
    assert decision.status == 404
    assert decision.body == "Profile not found"


@pytest.mark.asyncio
async def test_subdomain_lookup_uses_configured_timeout():
    directory = _FakeDirectory(subdomains={"jane": JANE})
    await _resolve(_router(directory, lookup_timeout=1.5), "jane.linkforest.com", "/")
    assert directory.calls == [("subdomain", "jane", 1.5)]


@pytest.mark.asyncio
async def test_subdomain_lookup_failure_is_503():
    directory = _FakeDirectory(error=TenantLookupError("subdomain", "jane", "db down"))
    decision = await _resolve(_router(directory), "jane.linkforest.com", "/")
    assert decision.status == 503
    assert decision.headers == {"Cache-Control": "no-store", "Retry-After": "5"}


# ── Main-domain branch ──

@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/", "/jane", "/anything", "/dashboard", "/jane/links", "/page/x"])
async def test_main_domain_always_passes_without_lookup(path):
    directory = _FakeDirectory(subdomains={"jane": JANE, "anything": ACME})
    for host in ("linkforest.com", "www.linkforest.com"):
        assert await _resolve(_router(directory), host, path) == Pass()
    assert directory.calls == []


# ── Custom-domain branch ──

@pytest.mark.asyncio
async def test_custom_domain_root_rewrites_with_context():
    decision = await _resolve(_router(), "links.acme.dev", "/")
    assert decision == Rewrite("/acme", {"customDomain": "links.acme.dev"})


@pytest.mark.asyncio
async def test_custom_domain_host_is_normalized():
    decision = await _resolve(_router(), "Links.Acme.Dev:443", "/bio")
    assert decision == Rewrite("/acme", {"customDomain": "links.acme.dev"})


@pytest.mark.asyncio
async def test_custom_domain_single_segment_rewrites_to_short_link():
    decision = await _resolve(_router(), "links.acme.dev", "/twitter")
    assert decision == Rewrite("/l/twitter", {"customDomain": "links.acme.dev"})


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/page/about", "/settings", "/x/y"])
async def test_custom_domain_other_paths_pass(path):
    assert await _resolve(_router(), "links.acme.dev", path) == Pass()


@pytest.mark.asyncio
async def test_custom_domain_root_redirect_mode():
    sink = RecordingSink()
    decision = await _resolve(
        _router(sink=sink), "go.redir.io", "/",
        client_ip="203.0.113.9", user_agent="UA/1.0", referer="https://t.co/x",
    )
    assert decision == Redirect(REDIRECT_TARGET)
    assert decision.status == 302
    assert "no-store" in decision.headers["Cache-Control"]
    assert len(sink.events) == 1
    event = sink.events[0]
    assert event.user_id == REDIR.id
    assert event.target_url == REDIRECT_TARGET
    assert event.custom_domain == "go.redir.io"
    assert event.client_ip == "203.0.113.9"


@pytest.mark.asyncio
async def test_redirect_mode_only_applies_to_root():
    sink = RecordingSink()
    decision = await _resolve(_router(sink=sink), "go.redir.io", "/bio")
    assert decision == Rewrite("/redir", {"customDomain": "go.redir.io"})
    assert sink.events == []


@pytest.mark.asyncio
async def test_redirect_mode_without_url_falls_back_to_profile():
    decision = await _resolve(_router(), "nourl.example", "/")
    assert decision == Rewrite("/nourl", {"customDomain": "nourl.example"})


@pytest.mark.asyncio
async def test_redirect_survives_failing_sink():
    class _ExplodingSink(RecordingSink):
        def notify(self, event):
            raise RuntimeError("boom")

    decision = await _resolve(_router(sink=_ExplodingSink()), "go.redir.io", "/")
    assert decision == Redirect(REDIRECT_TARGET)


@pytest.mark.asyncio
async def test_redirect_does_not_wait_for_tracking(monkeypatch):
    never = asyncio.Event()

    async def _hang(self, event):
        await never.wait()

    monkeypatch.setattr(HttpAnalyticsSink, "_send", _hang)
    sink = HttpAnalyticsSink("http://analytics.invalid/api/profile/redirect-track")

    decision = await asyncio.wait_for(_resolve(_router(sink=sink), "go.redir.io", "/"), timeout=1.0)

    assert decision == Redirect(REDIRECT_TARGET)
    assert len(sink._pending) == 1
    for task in list(sink._pending):
        task.cancel()
    await asyncio.gather(*sink._pending, return_exceptions=True)


@pytest.mark.asyncio
async def test_unknown_custom_domain_is_404():
    decision = await _resolve(_router(), "nobody.example", "/")
    assert decision == Reject.not_found()


@pytest.mark.asyncio
async def test_custom_domain_lookup_failure_is_503():
    directory = _FakeDirectory(error=TenantLookupError("custom_domain", "links.acme.dev", "timeout"))
    decision = await _resolve(_router(directory), "links.acme.dev", "/")
    assert decision.status == 503
    assert decision.headers["Retry-After"] == "5"


# ── Bounded SQL lookups ──

@pytest.mark.asyncio
async def test_slow_lookup_times_out_as_503(monkeypatch):
    def _slow(db, label):
        time.sleep(0.3)
        return None

    monkeypatch.setattr(crud_user, "get_by_subdomain", _slow)
    router = _router(SQLTenantDirectory(_SessionStub), lookup_timeout=0.05)

    decision = await _resolve(router, "jane.linkforest.com", "/")

    assert isinstance(decision, Reject)
    assert decision.status == 503
    assert decision.headers["Retry-After"] == "5"


@pytest.mark.asyncio
async def test_database_error_is_lookup_error(monkeypatch):
    def _broken(db, hostname):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(crud_user, "get_by_verified_custom_domain", _broken)
    directory = SQLTenantDirectory(_SessionStub)

    with pytest.raises(TenantLookupError):
        await directory.find_by_verified_custom_domain("links.acme.dev", timeout=1.0)


@pytest.mark.asyncio
async def test_sql_directory_only_resolves_verified_domains(session_factory, seed):
    directory = SQLTenantDirectory(session_factory)

    acme = await directory.find_by_verified_custom_domain("links.acme.dev", timeout=3.0)
    pending = await directory.find_by_verified_custom_domain("pending.example.org", timeout=3.0)

    assert acme.username == "acme"
    assert pending is None


@pytest.mark.asyncio
async def test_sql_directory_subdomain_lookup(session_factory, seed):
    directory = SQLTenantDirectory(session_factory)

    jane = await directory.find_by_subdomain("JANE", timeout=3.0)

    assert jane == TenantRecord(id=seed["jane"].id, username="jane")
    assert await directory.find_by_subdomain("ghost", timeout=3.0) is None

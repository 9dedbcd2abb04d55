"""Pytest configuration and fixtures for routing and handler tests."""
import os
import uuid
from contextlib import asynccontextmanager

# Must be set before app.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "development")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base_class import Base
from app.services.hostname_router import HostnameRouter, RoutingConfig
from app.services.redirect_tracking import AnalyticsSink
from app.services.tenant_directory import SQLTenantDirectory

# --- Constants ---
MAIN_DOMAIN = "linkforest.com"
REDIRECT_TARGET = "https://shop.redir.io/landing"
UNTRUSTED_PEER = "203.0.113.77"


class RecordingSink(AnalyticsSink):
    def __init__(self):
        self.events = []

    def notify(self, event) -> None:
        self.events.append(event)


def routing_config(**overrides) -> RoutingConfig:
    from app.config import settings

    config = RoutingConfig.from_settings(settings)
    values = {**config.__dict__, "main_domain": MAIN_DOMAIN, **overrides}
    return RoutingConfig(**values)


# --- Per-test fixtures ---

@pytest.fixture(scope="function")
def test_engine():
    """In-memory SQLite shared across threads (lookups run in the threadpool)."""
    import app.models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db):
    """
    Seed four tenants:
      jane    subdomain jane.linkforest.com
      acme    verified custom domain links.acme.dev (profile mode)
      redir   verified custom domain go.redir.io (redirect mode)
      pending unverified custom domain pending.example.org
    Both jane and acme own a link with slug "instagram".
    """
    from app.models.short_link import ShortLink
    from app.models.user import User

    jane = User(id=uuid.uuid4(), email="jane@example.com", username="jane",
                display_name="Jane", subdomain="jane")
    acme = User(id=uuid.uuid4(), email="ops@acme.dev", username="acme",
                custom_domain="links.acme.dev", domain_verified=True)
    redir = User(id=uuid.uuid4(), email="me@redir.io", username="redir",
                 custom_domain="go.redir.io", domain_verified=True,
                 root_domain_mode="redirect", root_domain_redirect_url=REDIRECT_TARGET)
    pending = User(id=uuid.uuid4(), email="p@example.org", username="pending",
                   custom_domain="pending.example.org", domain_verified=False)
    db.add_all([jane, acme, redir, pending])
    db.flush()

    db.add_all([
        ShortLink(user_id=jane.id, slug="instagram", title="IG",
                  target_url="https://instagram.com/jane", position=1),
        ShortLink(user_id=jane.id, slug="blog", title="Blog",
                  target_url="https://jane.blog", position=0),
        ShortLink(user_id=acme.id, slug="instagram",
                  target_url="https://instagram.com/acme", position=0),
        ShortLink(user_id=acme.id, slug="twitter",
                  target_url="https://twitter.com/acme", position=1),
    ])
    db.commit()
    return {"jane": jane, "acme": acme, "redir": redir, "pending": pending}


@pytest.fixture
def analytics_sink():
    return RecordingSink()


@pytest.fixture
def sql_router(session_factory, analytics_sink):
    return HostnameRouter(
        directory=SQLTenantDirectory(session_factory),
        analytics=analytics_sink,
        config=routing_config(),
    )


@asynccontextmanager
async def _app_client(session_factory, sql_router, peer=("127.0.0.1", 123)):
    """
    Async HTTP client over the real app.
    Each test gets:
      - get_db overridden to use the test database
      - the hostname router wired to the test database and a recording sink
      - requests arriving from `peer` (the default is a trusted proxy)
    """
    from app.main import app as fastapi_app
    from app.api.deps import get_db

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    original_router = fastapi_app.state.hostname_router
    fastapi_app.state.hostname_router = sql_router

    transport = ASGITransport(app=fastapi_app, client=peer)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        fastapi_app.state.hostname_router = original_router
        fastapi_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(session_factory, sql_router):
    async with _app_client(session_factory, sql_router) as ac:
        yield ac


@pytest.fixture(scope="function")
async def untrusted_client(session_factory, sql_router):
    """Client whose direct peer is a public address, not a trusted proxy."""
    async with _app_client(session_factory, sql_router, peer=(UNTRUSTED_PEER, 4321)) as ac:
        yield ac


# --- Helpers ---

def on_host(host: str, **headers) -> dict:
    """Request headers for a given Host."""
    return {"host": host, **headers}

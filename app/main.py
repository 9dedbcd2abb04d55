from contextlib import asynccontextmanager

from fastapi import FastAPI
from app.config import settings
from app.api.v1.api import api_router
from app.api.v1.endpoints import public
from app.db.session import SessionLocal, get_pool_status
from app.middleware.hostname_routing import HostnameRoutingMiddleware
from app.middleware.request_logging import RequestLoggingMiddleware
from app.middleware.metrics import PrometheusMiddleware, metrics_endpoint, set_app_info
from app.logging_config import setup_logging
from app.services.hostname_router import HostnameRouter, RoutingConfig
from app.services.redirect_tracking import HttpAnalyticsSink, NullAnalyticsSink
from app.services.tenant_directory import SQLTenantDirectory

# ── Initialize structured logging ──
setup_logging()


def create_hostname_router() -> HostnameRouter:
    """Production wiring: SQL tenant lookups + HTTP redirect tracking."""
    if settings.REDIRECT_TRACKING_ENABLED:
        analytics = HttpAnalyticsSink(
            settings.redirect_track_url, timeout=settings.REDIRECT_TRACK_TIMEOUT_SECONDS
        )
    else:
        analytics = NullAnalyticsSink()
    return HostnameRouter(
        directory=SQLTenantDirectory(SessionLocal),
        analytics=analytics,
        config=RoutingConfig.from_settings(settings),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Let in-flight redirect tracking finish before shutdown
    analytics = getattr(app.state.hostname_router, "analytics", None)
    if isinstance(analytics, HttpAnalyticsSink):
        await analytics.drain()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.state.hostname_router = create_hostname_router()

# Hostname routing – subdomain / custom-domain rewrites, redirects, 404 / 503
app.add_middleware(HostnameRoutingMiddleware)

# Prometheus metrics middleware – request count, latency, route decisions
app.add_middleware(PrometheusMiddleware)

# Request logging middleware – request ID, host context, timing (outermost)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/")
def root():
    return {"message": f"Welcome to {settings.APP_NAME}"}

@app.get("/health")
def health_check():
    return {"status": "ok", "env": settings.APP_ENV, "db_pool": get_pool_status()}

# Prometheus metrics endpoint
app.add_route("/metrics", metrics_endpoint)
set_app_info(version="1.0.0", env=settings.APP_ENV)

app.include_router(api_router, prefix=settings.API_PREFIX)

# Catch-all /{username} and /l/{slug}; must be registered last
app.include_router(public.router, tags=["public"])

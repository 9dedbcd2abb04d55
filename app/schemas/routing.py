"""
Route decisions produced by the hostname router.

Exactly one of these is returned per request. They are plain frozen values;
the middleware turns them into ASGI behaviour.
"""
from dataclasses import dataclass, field
from typing import Dict, Union

NO_CACHE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0"}


@dataclass(frozen=True)
class Pass:
    pass


@dataclass(frozen=True)
class Rewrite:
    path: str
    query: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Redirect:
    url: str
    status: int = 302
    headers: Dict[str, str] = field(default_factory=lambda: dict(NO_CACHE_HEADERS))


@dataclass(frozen=True)
class Reject:
    status: int
    reason: str
    body: str
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def not_found(cls, body: str = "Not Found") -> "Reject":
        return cls(status=404, reason="not_found", body=body)

    @classmethod
    def unavailable(cls, retry_after: int) -> "Reject":
        return cls(
            status=503,
            reason="unavailable",
            body="Service temporarily unavailable. Please try again.",
            headers={"Cache-Control": "no-store", "Retry-After": str(retry_after)},
        )


RouteDecision = Union[Pass, Rewrite, Redirect, Reject]


def decision_label(decision: RouteDecision) -> str:
    """Short name for logs and metrics."""
    if isinstance(decision, Reject):
        return f"reject_{decision.status}"
    return type(decision).__name__.lower()

"""
Hostname classification

Splits an incoming Host header into one of three mutually exclusive kinds:

  - MAIN            linkforest.com, or a configured alias (www., localhost)
  - USER_SUBDOMAIN  {label}.linkforest.com, label not reserved
  - CUSTOM          anything else (candidate custom domain)
"""

import enum
import re
from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Optional

_DNS_LABEL = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")


class HostKind(str, enum.Enum):
    MAIN = "main"
    USER_SUBDOMAIN = "user_subdomain"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ParsedHost:
    kind: HostKind
    hostname: str
    subdomain: Optional[str] = None


def normalize_hostname(raw: str) -> str:
    """Lower-case, strip the port and any trailing dot."""
    host = (raw or "").strip().lower()
    if host.startswith("["):
        # IPv6 literal: [::1]:8000 -> ::1
        end = host.find("]")
        return host[1:end] if end != -1 else host
    if host.count(":") > 1:
        return host  # bare IPv6, no port
    host = host.split(":", 1)[0]
    return host.rstrip(".")


def parse_hostname(
    raw: str,
    main_domain: str,
    aliases: AbstractSet[str] = frozenset(),
    reserved_subdomains: AbstractSet[str] = frozenset(),
) -> ParsedHost:
    hostname = normalize_hostname(raw)
    main = normalize_hostname(main_domain)

    if hostname == main or hostname in aliases:
        return ParsedHost(HostKind.MAIN, hostname)

    suffix = f".{main}"
    if hostname.endswith(suffix):
        label = hostname[: -len(suffix)]
        if _DNS_LABEL.match(label) and label not in reserved_subdomains:
            return ParsedHost(HostKind.USER_SUBDOMAIN, hostname, subdomain=label)

    return ParsedHost(HostKind.CUSTOM, hostname)


def path_segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def is_reserved_route(segment: str, reserved: AbstractSet[str]) -> bool:
    return bool(segment) and segment.lower() in reserved


def is_bypassed_path(path: str, prefixes: Iterable[str], static_pattern: "re.Pattern[str]") -> bool:
    """API, build-asset and static-file paths skip routing entirely."""
    if any(path.startswith(prefix) for prefix in prefixes):
        return True
    return static_pattern.search(path) is not None

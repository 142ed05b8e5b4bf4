"""
Hostname parsing for tenant resolution.

Everything here is pure: no I/O, no logging, and malformed input produces a
best-effort ``DomainInfo`` rather than an exception.
"""

import ipaddress
import re
from collections.abc import Mapping

from growplate.platform.tenant.models import DomainInfo

MAX_DOMAIN_LENGTH = 253

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://")
_DOMAIN_RE = re.compile(
    r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)*$"
)


def hostname_from_headers(headers: Mapping[str, str], url_host: str | None = None) -> str:
    """Pick the host the client asked for.

    ``X-Forwarded-Host`` wins over ``Host`` (first entry when a proxy chain
    appended several), falling back to the host of the request URL.
    """
    forwarded = headers.get("x-forwarded-host")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    host = headers.get("host")
    if host and host.strip():
        return host.strip()
    return url_host or ""


def _split_port(raw: str) -> tuple[str, str | None]:
    if raw.startswith("["):
        end = raw.find("]")
        if end == -1:
            return raw.strip("[]"), None
        host = raw[1:end]
        rest = raw[end + 1 :]
        return host, rest[1:] if rest.startswith(":") else None

    if raw.count(":") == 1:
        host, port = raw.split(":", 1)
        return host, port

    # zero colons, or a bare IPv6 literal
    return raw, None


def is_localhost(hostname: str) -> bool:
    if hostname == "localhost" or hostname.endswith(".localhost"):
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return address.is_loopback or address.is_private


def normalize_domain(host: str) -> str:
    """Lowercase, drop scheme, path, port and stray dots."""
    value = host.strip().lower()
    value = _SCHEME_RE.sub("", value)
    value = value.split("/", 1)[0]
    hostname, _ = _split_port(value)
    return hostname.strip(".")


def validate_domain(domain: str) -> bool:
    """RFC 1035 style label check."""
    if not domain or len(domain) > MAX_DOMAIN_LENGTH:
        return False
    return _DOMAIN_RE.match(domain) is not None


def parse_domain(host_header: str | None, platform_domain: str) -> DomainInfo:
    """Turn a Host header value into a ``DomainInfo``.

    A hostname with exactly one label in front of ``platform_domain`` is a
    platform subdomain; every other hostname is a custom domain.
    """
    raw = (host_header or "").strip().lower()
    raw = _SCHEME_RE.sub("", raw).split("/", 1)[0]

    hostname, port_text = _split_port(raw)
    hostname = hostname.strip(".")

    port: int | None = None
    if port_text:
        try:
            port = int(port_text)
        except ValueError:
            return DomainInfo(hostname=hostname, domain=hostname)
        if not 0 < port < 65536:
            return DomainInfo(hostname=hostname, domain=hostname)

    if not hostname:
        return DomainInfo(hostname="", domain="", port=port)

    if is_localhost(hostname):
        return DomainInfo(
            hostname=hostname,
            domain=hostname,
            port=port,
            is_custom_domain=False,
            is_localhost=True,
        )

    platform = platform_domain.strip(".").lower()
    suffix = f".{platform}"
    if platform and hostname.endswith(suffix):
        label = hostname[: -len(suffix)]
        if label and "." not in label:
            return DomainInfo(
                hostname=hostname,
                domain=platform,
                subdomain=label,
                port=port,
                is_custom_domain=False,
            )

    return DomainInfo(hostname=hostname, domain=hostname, port=port)

"""Request inspection for incoming WebSocket connections."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping
from urllib.parse import urlsplit

REMOTE_ADDR_HEADER = "REMOTE_ADDR"

_NANOID_ALPHABET = "_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
_NANOID_SIZE = 21


def _get_header(headers: Mapping[str, Any], name: str) -> str:
    """Case-insensitive header lookup returning an empty string when absent."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return str(value)
    return ""


def _remote_host(addr: str) -> str:
    """Extract the host part from a host:port address, or '' if malformed."""
    if addr.startswith("["):
        end = addr.find("]")
        if end == -1 or not addr[end + 1:].startswith(":"):
            return ""
        return addr[1:end]
    host, sep, _port = addr.rpartition(":")
    if not sep or ":" in host:
        return ""
    return host


@dataclass
class RequestInfo:
    """Identity and environment of a connection request."""

    uid: str
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class DefaultHeadersExtractor:
    """Picks configured headers (and, optionally, cookies) from a request."""

    headers: list[str] = field(default_factory=list)
    cookies: list[str] = field(default_factory=list)

    def from_request(self, headers: Mapping[str, Any], remote_addr: str) -> dict[str, str]:
        """Return the selected headers plus the client's remote address."""
        result: dict[str, str] = {}
        for name in self.headers:
            value = _get_header(headers, name)
            if name.lower() == "cookie":
                value = parse_cookies(value, self.cookies)
            result[name] = value
        result[REMOTE_ADDR_HEADER] = _remote_host(remote_addr)
        return result


def new_request_info(
    headers: Mapping[str, Any], remote_addr: str, extractor: DefaultHeadersExtractor
) -> RequestInfo:
    """Build request info with a connection uid and the extracted headers."""
    return RequestInfo(uid=fetch_uid(headers), headers=extractor.from_request(headers, remote_addr))


def fetch_uid(headers: Mapping[str, Any]) -> str:
    """Return the X-Request-ID header value or a freshly generated id."""
    request_id = _get_header(headers, "X-Request-ID")
    if request_id:
        return request_id
    return "".join(secrets.choice(_NANOID_ALPHABET) for _ in range(_NANOID_SIZE))


def check_origin(origins: str) -> Callable[[Mapping[str, Any]], bool]:
    """Return a predicate telling whether a request's Origin is allowed.

    ``origins`` is a comma-separated list of hosts; an entry starting with
    ``*`` matches any host ending with the rest of it. An empty list allows all.
    """
    if not origins:
        return lambda headers: True

    hosts = origins.lower().split(",")

    def allowed(headers: Mapping[str, Any]) -> bool:
        origin = _get_header(headers, "Origin").lower()
        try:
            netloc = urlsplit(origin).netloc
        except ValueError:
            return False
        origin_host = netloc.rpartition("@")[2]

        for host in hosts:
            if not host:
                continue
            if host.startswith("*") and origin_host.endswith(host[1:]):
                return True
            if origin_host == host:
                return True
        return False

    return allowed


def parse_cookies(value: str, cookie_filter: list[str]) -> str:
    """Keep only the cookies whose names are in the filter (all when it is empty)."""
    if not cookie_filter:
        return value

    wanted = set(cookie_filter)
    kept = []
    for cookie in value.split(";"):
        parts = cookie.split("=")
        if len(parts) != 2:
            continue
        if parts[0] in wanted:
            kept.append(cookie + ";")
    return "".join(kept)
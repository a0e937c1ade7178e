"""
URL helpers shared by the stream proxy and the playlist rewriter
"""
from typing import Optional, Tuple
from urllib.parse import quote, urljoin, urlsplit

from fastapi import Request

from .. import config

DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}


def encode_uri_component(value: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent"""
    return quote(value, safe="!~*'()")


def parse_absolute_url(url: str) -> str:
    """
    Validate that `url` is an absolute URL with a scheme and host.

    Raises ValueError otherwise. Returns the URL unchanged.
    """
    if not url or not url.strip():
        raise ValueError("Empty URL")

    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc or not parts.hostname:
        raise ValueError(f"Not an absolute URL: {url}")

    # Accessing .port validates it (raises ValueError on garbage)
    parts.port
    return url.strip()


def url_origin(url: str) -> Tuple[str, str, Optional[int]]:
    """Origin tuple (scheme, host, effective port) of an absolute URL"""
    parts = urlsplit(parse_absolute_url(url))
    scheme = parts.scheme.lower()
    port = parts.port if parts.port is not None else DEFAULT_PORTS.get(scheme)
    return scheme, (parts.hostname or "").lower(), port


def origin_string(url: str) -> str:
    """Serialized origin, default port omitted (e.g. "https://cam.local")"""
    scheme, host, port = url_origin(url)
    if ":" in host:
        host = f"[{host}]"
    if port is None or port == DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def resolve_url(reference: str, base_url: str) -> str:
    """
    Resolve `reference` against `base_url` into an absolute URL.

    Raises ValueError when the result is not an absolute URL.
    """
    resolved = urljoin(base_url, reference.strip())
    return parse_absolute_url(resolved)


def resolve_public_origin(request: Request) -> str:
    """
    External origin of this service as seen by the browser.

    Behind a reverse proxy the forwarded headers win over the Host header.
    """
    headers = request.headers
    proto = (
        headers.get("x-forwarded-proto")
        or headers.get("x-forwarded-protocol")
        or config.DEFAULT_PUBLIC_SCHEME
    )
    host = headers.get("x-forwarded-host") or headers.get("host")

    if not host:
        raise ValueError("Cannot determine public host")

    # Chained proxies append values: "https, http"
    proto = proto.split(",")[0].strip()
    host = host.split(",")[0].strip()
    return f"{proto}://{host}"


def add_cache_buster(url: str, timestamp_ms: int) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}t={timestamp_ms}"

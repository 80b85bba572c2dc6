"""URL normalization, resolution, and fragment helpers."""

from __future__ import annotations

from typing import Sequence
from urllib.parse import quote, urldefrag, urljoin, urlsplit, urlunsplit


DEFAULT_ALLOWED_SCHEMES = ("http", "https")


def hostname_from_url(url: str | None) -> str:
    """Extract the lowercased hostname (no port) from a URL."""

    if not url:
        return ""
    try:
        return (urlsplit(url).hostname or "").strip().lower().strip(".")
    except ValueError:
        return ""


def port_from_url(url: str) -> int | None:
    """Return the explicit or scheme-default port of a URL."""

    parsed = urlsplit(url)
    try:
        port = parsed.port
    except ValueError:
        return None
    if port is not None:
        return port
    return {"http": 80, "https": 443}.get(parsed.scheme.lower())


def scheme_of(url: str) -> str:
    return urlsplit(url).scheme.lower()


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(parsed_url) -> str:  # urllib.parse.SplitResult
    host = (parsed_url.hostname or "").lower()
    if not host:
        return parsed_url.netloc.lower()

    userinfo = ""
    if parsed_url.username:
        userinfo = quote(parsed_url.username, safe="")
        if parsed_url.password:
            userinfo += ":" + quote(parsed_url.password, safe="")
        userinfo += "@"

    port: int | None
    try:
        port = parsed_url.port
    except ValueError:
        port = None

    if ":" in host:
        host = f"[{host}]"

    if port is not None and not _has_default_port(parsed_url.scheme.lower(), port):
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def normalize_url(url: str | None, *, strip_fragment: bool = True) -> str | None:
    """Canonicalize an absolute URL for frontier dedup.

    Lowercases scheme and host, drops default ports, and (by default) the
    fragment. Path and query are kept verbatim because the server decides
    whether `/a` and `/a/` are the same page.

    Returns `None` for URLs that are not absolute.
    """

    if not url:
        return None

    raw = url.strip()
    if not raw:
        return None

    try:
        parsed = urlsplit(raw)
        netloc = _normalize_netloc(parsed)
    except ValueError:
        return None

    if not parsed.scheme or not netloc:
        return None

    path = parsed.path or "/"
    fragment = "" if strip_fragment else parsed.fragment
    return urlunsplit((parsed.scheme.lower(), netloc, path, parsed.query, fragment))


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative reference against a page URL."""

    if href is None:
        return None
    candidate = href.strip()
    if not candidate:
        return None
    try:
        return urljoin(base_url, candidate)
    except ValueError:
        return None


def strip_fragment(url: str) -> str:
    return urldefrag(url)[0]


def fragment_of(url: str | None) -> str:
    """Return the fragment id of a URL without the leading '#'."""

    if not url:
        return ""
    return urldefrag(url)[1]


def is_bare_fragment(href: str | None) -> bool:
    """True for in-page references such as '#install' (but not a lone '#')."""

    return bool(href) and href.startswith("#") and len(href) > 1


def path_segments(url: str | None) -> list[str]:
    if not url:
        return []
    return [segment for segment in urlsplit(url).path.split("/") if segment]


def device_from_referrer(referrer: str | None, devices: Sequence[str]) -> str | None:
    """Return the first referrer path segment that names a known device."""

    known = set(devices)
    for segment in path_segments(referrer):
        if segment in known:
            return segment
    return None


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "device_from_referrer",
    "fragment_of",
    "hostname_from_url",
    "is_bare_fragment",
    "normalize_url",
    "path_segments",
    "port_from_url",
    "resolve_url",
    "scheme_of",
    "strip_fragment",
]

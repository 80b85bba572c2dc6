"""URL fetching over `requests` with per-host spacing and MIME filtering."""

from __future__ import annotations

import logging
import threading
import time
from http.cookiejar import DefaultCookiePolicy
from typing import Callable

import requests

from .config import CrawlConfig
from .types import FetchResult
from .url import hostname_from_url, strip_fragment


LOGGER = logging.getLogger(__name__)

BODY_CHUNK_BYTES = 64 * 1024


class Fetcher:
    """Fetch URLs with `requests`, one session per worker thread.

    A fetch never raises for transport problems; they are folded into the
    returned `FetchResult` (`timed_out` or `error`). Failed fetches are not
    retried. Bodies are only downloaded from the site under test, and only for
    content types matching `config.supported_mime_types`.

    requests applies `fetch_timeout_seconds` to the connect and to each socket
    read. Reading the body also stops with a timeout once the time since the
    request started passes it, so a slowly trickling response cannot stall a
    worker.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.config = config
        self._session_factory = session_factory

        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

        self._rate_lock = threading.Lock()
        self._next_allowed_time_by_host: dict[str, float] = {}

        self._closed = False
        self._closed_lock = threading.Lock()

    def fetch(self, url: str) -> FetchResult:
        """Fetch one URL; the fragment is never sent to the server."""

        if self._is_closed():
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                error="Fetcher is closed",
            )

        self._wait_for_rate_limit(url)
        started = time.perf_counter()
        deadline = started + self.config.fetch_timeout_seconds
        session = self._thread_local_session()

        try:
            with session.get(
                strip_fragment(url),
                headers=self.config.headers(),
                timeout=self.config.fetch_timeout_seconds,
                allow_redirects=True,
                stream=True,
            ) as response:
                final_url = response.url or url
                content_type = response.headers.get("Content-Type")
                body = None
                if self._wants_body(final_url, content_type):
                    body = self._read_body(response, deadline=deadline)
                return FetchResult(
                    requested_url=url,
                    final_url=final_url,
                    status_code=response.status_code,
                    content_type=content_type,
                    body=body,
                    elapsed_ms=int((time.perf_counter() - started) * 1000),
                )
        except requests.Timeout as exc:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                elapsed_ms=int((time.perf_counter() - started) * 1000),
                timed_out=True,
                error=f"{exc.__class__.__name__}: {exc}",
            )
        except requests.RequestException as exc:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                elapsed_ms=int((time.perf_counter() - started) * 1000),
                error=f"{exc.__class__.__name__}: {exc}",
            )

    def close(self) -> None:
        """Close every session opened by worker threads."""

        with self._closed_lock:
            self._closed = True

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _wants_body(self, final_url: str, content_type: str | None) -> bool:
        # External pages are only checked for reachability, never parsed.
        if hostname_from_url(final_url) != self.config.site_host:
            return False
        return self.config.is_supported_mime_type(content_type)

    def _read_body(self, response: requests.Response, *, deadline: float) -> bytes:
        chunks: list[bytes] = []
        for chunk in response.iter_content(chunk_size=BODY_CHUNK_BYTES):
            if time.perf_counter() > deadline:
                raise requests.Timeout(
                    f"Body read exceeded {self.config.fetch_timeout_seconds:g}s"
                )
            if chunk:
                chunks.append(chunk)
        return b"".join(chunks)

    def _is_closed(self) -> bool:
        with self._closed_lock:
            return self._closed

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = self._session_factory()
            if not self.config.accept_cookies:
                session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def _wait_for_rate_limit(self, url: str) -> None:
        wait_seconds = max(0.0, self.config.rate_limit_seconds)
        if wait_seconds <= 0:
            return

        host = hostname_from_url(url)

        while True:
            with self._rate_lock:
                now = time.monotonic()
                next_allowed = self._next_allowed_time_by_host.get(host, 0.0)
                if now >= next_allowed:
                    self._next_allowed_time_by_host[host] = now + wait_seconds
                    return
                sleep_for = next_allowed - now

            if sleep_for > 0:
                LOGGER.debug("Rate limit: sleeping %.3fs before %s", sleep_for, url)
                time.sleep(sleep_for)


__all__ = ["Fetcher"]

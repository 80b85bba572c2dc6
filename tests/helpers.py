"""In-memory fetcher and page helpers for tests."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable

from sitecheck.crawler import FetchResult
from sitecheck.crawler.url import strip_fragment


SITE = "http://localhost:8081"


@dataclass
class FakePage:
    status: int = 200
    body: str | None = None
    content_type: str = "text/html; charset=utf-8"
    timed_out: bool = False
    error: str | None = None


def html_page(inner: str, status: int = 200) -> FakePage:
    return FakePage(status=status, body=f"<html><body>{inner}</body></html>")


class FakeFetcher:
    """Serve canned pages; unknown URLs answer 404."""

    def __init__(
        self,
        pages: dict[str, FakePage | Callable[[str], FetchResult]] | None = None,
    ) -> None:
        self.pages = dict(pages or {})
        self.calls: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def fetch(self, url: str) -> FetchResult:
        with self._lock:
            self.calls.append(url)

        target = strip_fragment(url)
        page = self.pages.get(target)
        if callable(page):
            return page(url)
        if page is None:
            page = FakePage(status=404, body="<html><body>Not found</body></html>")

        if page.timed_out or page.error:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                timed_out=page.timed_out,
                error=page.error or "ReadTimeout: timed out",
            )

        body = None
        if page.body is not None and page.content_type.startswith("text/"):
            body = page.body.encode("utf-8")
        return FetchResult(
            requested_url=url,
            final_url=target,
            status_code=page.status,
            content_type=page.content_type,
            body=body,
            elapsed_ms=1,
        )

    def close(self) -> None:
        self.closed = True

    def fetched(self, url: str) -> int:
        with self._lock:
            return sum(1 for call in self.calls if call == url)

"""HTML link extraction and in-document anchor validation."""

from __future__ import annotations

from urllib.parse import unquote

from bs4 import BeautifulSoup

from ..config import CrawlConfig
from ..constants import IMAGE_CONTENT_LABEL
from ..types import (
    AnchorError,
    Classification,
    DiscoveredLink,
    ExtractionResult,
    QueueItem,
)
from ..url import fragment_of, is_bare_fragment, resolve_url, strip_fragment


class LinkExtractor:
    """Turn a fetched internal document into discovered links and anchor errors.

    Extraction is a pure function of its inputs: nothing is enqueued here, and
    running it twice on the same document gives the same result.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config

    def extract(
        self,
        *,
        item: QueueItem,
        body: str | bytes,
        classification: Classification,
        base_url: str | None = None,
    ) -> ExtractionResult:
        if classification.external or classification.image:
            return ExtractionResult()

        page_url = base_url or item.url
        soup = BeautifulSoup(self._coerce_html_text(body), "lxml")

        if self._is_device_redirector(soup):
            return ExtractionResult(
                discovered=self._device_forwards(soup, item=item, page_url=page_url),
                redirector=True,
            )

        fragment = fragment_of(item.url)
        if fragment:
            # Only the anchor is checked here; the fragment-less URL is crawled
            # separately and extracts the page's links.
            result = ExtractionResult()
            if not self._anchor_checks_suppressed(classification) and not self._has_anchor(
                soup, fragment
            ):
                result.anchor_errors.append(
                    AnchorError(
                        page_url=item.url,
                        referrer=item.referrer,
                        content=item.content,
                        target="#" + fragment,
                        relative=False,
                    )
                )
            return result

        return self._extract_page(soup, item=item, page_url=page_url, classification=classification)

    def _extract_page(
        self,
        soup: BeautifulSoup,
        *,
        item: QueueItem,
        page_url: str,
        classification: Classification,
    ) -> ExtractionResult:
        result = ExtractionResult()
        seen: set[str] = set()
        suppressed = self._anchor_checks_suppressed(classification)

        for anchor in soup.find_all("a"):
            href = anchor.get("href")
            if not href:
                continue
            link_text = anchor.get_text(" ", strip=True)

            if is_bare_fragment(href) and not suppressed:
                if not self._has_anchor(soup, href[1:]):
                    result.anchor_errors.append(
                        AnchorError(
                            page_url=item.url,
                            referrer=item.referrer,
                            content=link_text,
                            target=href,
                            relative=True,
                        )
                    )

            if href.startswith("#"):
                continue

            resolved = resolve_url(page_url, href)
            if not resolved:
                continue
            resolved = strip_fragment(resolved)
            if resolved in seen:
                continue
            seen.add(resolved)
            result.discovered.append(DiscoveredLink(url=resolved, content=link_text))

        for image in soup.find_all("img"):
            resolved = resolve_url(page_url, image.get("src"))
            if not resolved or resolved in seen:
                continue
            seen.add(resolved)
            result.discovered.append(DiscoveredLink(url=resolved, content=IMAGE_CONTENT_LABEL))

        return result

    def _is_device_redirector(self, soup: BeautifulSoup) -> bool:
        redirect = self.config.device_redirect
        if not redirect.enabled:
            return False
        return len(soup.select(redirect.marker_selector)) == 1

    def _device_forwards(
        self,
        soup: BeautifulSoup,
        *,
        item: QueueItem,
        page_url: str,
    ) -> list[DiscoveredLink]:
        redirect = self.config.device_redirect
        device = redirect.match_device(item.referrer)
        wanted_id = redirect.link_id_for(device) if device else None
        fragment = fragment_of(item.url)

        forwards: list[DiscoveredLink] = []
        for link in soup.select(redirect.link_selector):
            if wanted_id is not None and link.get("id") != wanted_id:
                continue

            resolved = resolve_url(page_url, link.get("href"))
            if not resolved:
                continue
            if fragment:
                resolved = f"{strip_fragment(resolved)}#{fragment}"

            # Keep the label of the link that led to the redirector so a
            # downstream 404 still points at the real source.
            forwards.append(
                DiscoveredLink(
                    url=resolved,
                    content=item.content,
                    keep_fragment=bool(fragment_of(resolved)),
                )
            )
        return forwards

    def _anchor_checks_suppressed(self, classification: Classification) -> bool:
        return self.config.pull_request_mode and classification.autogenerated_api_link

    @staticmethod
    def _has_anchor(soup: BeautifulSoup, fragment: str) -> bool:
        if soup.find(id=fragment) is not None:
            return True
        decoded = unquote(fragment)
        return decoded != fragment and soup.find(id=decoded) is not None

    @staticmethod
    def _coerce_html_text(html: str | bytes) -> str:
        if isinstance(html, bytes):
            return html.decode("utf-8", errors="replace")
        return html


__all__ = [
    "LinkExtractor",
]

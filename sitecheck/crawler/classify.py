"""Scope and kind classification for queue items."""

from __future__ import annotations

import posixpath
from urllib.parse import urlsplit

from .config import CrawlConfig
from .types import Classification, QueueItem
from .url import hostname_from_url


def classify_url(url: str, config: CrawlConfig) -> Classification:
    """Derive scope/kind flags for one absolute URL.

    Pure and deterministic; only the URL and the site settings are consulted.
    """

    external = hostname_from_url(url) != config.site_host
    path = urlsplit(url).path or "/"
    extension = posixpath.splitext(path)[1].lower()
    edit_prefix = config.documentation_edit_link_prefix

    return Classification(
        external=external,
        image=bool(extension) and extension in config.image_extensions,
        github_edit_link=bool(edit_prefix) and url.startswith(edit_prefix),
        autogenerated_api_link=not external and path.startswith(config.api_reference_prefix),
    )


def classify(item: QueueItem, config: CrawlConfig) -> Classification:
    """Classify a queue item by its URL."""

    return classify_url(item.url, config)


__all__ = ["classify", "classify_url"]

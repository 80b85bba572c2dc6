"""Admission (fetch) and download policies."""

from __future__ import annotations

from typing import Callable, Iterable

from .config import CrawlConfig
from .types import Classification, QueueItem
from .url import DEFAULT_ALLOWED_SCHEMES, hostname_from_url, port_from_url, scheme_of


FetchCondition = Callable[[str], bool]


class FetchPolicy:
    """Ordered admission predicates; a URL is fetchable only if all accept it."""

    def __init__(
        self,
        config: CrawlConfig,
        *,
        extra_conditions: Iterable[FetchCondition] | None = None,
    ) -> None:
        self.config = config
        self._conditions: list[FetchCondition] = [
            self._allowed_scheme,
            self._not_live_reload,
            self._not_denylisted,
        ]
        for condition in extra_conditions or ():
            self.add_condition(condition)

    def add_condition(self, condition: FetchCondition) -> None:
        """Append a predicate; it runs after the built-in ones."""

        self._conditions.append(condition)

    def admit(self, url: str) -> bool:
        return all(condition(url) for condition in self._conditions)

    @staticmethod
    def _allowed_scheme(url: str) -> bool:
        return scheme_of(url) in DEFAULT_ALLOWED_SCHEMES

    def _not_live_reload(self, url: str) -> bool:
        port = self.config.live_reload_port
        if port is None:
            return True
        return not (
            hostname_from_url(url) == self.config.site_host and port_from_url(url) == port
        )

    def _not_denylisted(self, url: str) -> bool:
        return hostname_from_url(url) not in self.config.host_denylist


def should_parse(item: QueueItem, classification: Classification) -> bool:
    """Return True when a fetched body should be searched for further links.

    External pages are only checked for reachability and never crawled further.
    """

    if classification.external:
        return False
    return not classification.image


__all__ = ["FetchCondition", "FetchPolicy", "should_parse"]

"""Thread-safe deduplicating frontier with a registry of every queue item."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .policy import FetchPolicy
from .types import DiscoveredLink, QueueItem, QueueState
from .url import normalize_url, scheme_of


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_REJECTED = "skipped_rejected"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_CLOSED = "skipped_closed"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one enqueue attempt."""

    status: EnqueueStatus
    normalized_url: str | None = None
    item: QueueItem | None = None

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED


class Frontier:
    """Frontier queue shared by the crawl workers.

    - Thread-safe `push` and `pop`; all bookkeeping happens under one lock.
    - A URL is accepted at most once; the first referrer/content label wins.
    - Items are never removed from the registry, so the referrer and content of
      every URL stay available for error reporting.
    - URLs rejected by the fetch policy are dropped silently.
    """

    def __init__(self, *, policy: FetchPolicy | None = None) -> None:
        self.policy = policy

        self._queue: queue.Queue[QueueItem] = queue.Queue()
        self._lock = threading.Lock()

        self._items: dict[str, QueueItem] = {}

        self._enqueued_count = 0
        self._dequeued_count = 0
        self._skipped_seen_count = 0
        self._skipped_rejected_count = 0
        self._skipped_invalid_count = 0

        self._closed = False

    def push(
        self,
        url: str,
        *,
        referrer: str | None = None,
        content: str = "",
        keep_fragment: bool = False,
    ) -> EnqueueResult:
        """Attempt to enqueue one URL.

        The fragment is part of the dedup key only when `keep_fragment` is set;
        such entries exist so the destination page can validate that anchor.
        """

        normalized = normalize_url(url, strip_fragment=not keep_fragment)
        if not normalized:
            # mailto:, javascript: and friends have a scheme but no host; the
            # policy still gets to reject them by scheme.
            if self.policy is not None and url and scheme_of(url) and not self.policy.admit(url):
                with self._lock:
                    self._skipped_rejected_count += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_REJECTED)

            with self._lock:
                self._skipped_invalid_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_INVALID_URL)

        if self.policy is not None and not self.policy.admit(normalized):
            with self._lock:
                self._skipped_rejected_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_REJECTED, normalized_url=normalized)

        with self._lock:
            if self._closed:
                return EnqueueResult(EnqueueStatus.SKIPPED_CLOSED, normalized_url=normalized)

            if normalized in self._items:
                self._skipped_seen_count += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_SEEN, normalized_url=normalized)

            item = QueueItem(
                url=normalized,
                referrer=referrer,
                meta={"content": content},
            )
            self._items[normalized] = item
            self._queue.put(item)
            self._enqueued_count += 1

        return EnqueueResult(EnqueueStatus.ENQUEUED, normalized_url=normalized, item=item)

    def push_links(
        self,
        links: Iterable[DiscoveredLink],
        *,
        referrer: str | None,
    ) -> list[EnqueueResult]:
        """Enqueue discovered links, preserving discovery order."""

        return [
            self.push(
                link.url,
                referrer=referrer,
                content=link.content,
                keep_fragment=link.keep_fragment,
            )
            for link in links
        ]

    def pop(self, *, block: bool = True, timeout: float | None = None) -> QueueItem | None:
        """Pop one item for a worker thread.

        Returns `None` when no item is available under the requested blocking mode.
        """

        try:
            if block:
                item = self._queue.get(block=True, timeout=timeout)
            else:
                item = self._queue.get(block=False)
        except queue.Empty:
            return None

        with self._lock:
            self._dequeued_count += 1
        return item

    def mark(
        self,
        item: QueueItem,
        state: QueueState,
        *,
        status_code: int | None = None,
    ) -> None:
        """Move an item to a new state under the frontier lock."""

        with self._lock:
            item.state = state
            if status_code is not None:
                item.status_code = status_code

    def task_done(self) -> None:
        """Mark one popped item as finished (delegates to Queue.task_done)."""

        self._queue.task_done()

    def join(self, timeout: float | None = None) -> bool:
        """Block until every queued item is finished.

        Returns False if `timeout` elapsed first.
        """

        if timeout is None:
            self._queue.join()
            return True

        deadline = time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def close(self) -> None:
        """Close frontier to future enqueue attempts."""

        with self._lock:
            self._closed = True

    def discard_pending(self) -> list[QueueItem]:
        """Drop every item still waiting in the queue and mark it as errored."""

        dropped: list[QueueItem] = []
        while True:
            item = self.pop(block=False)
            if item is None:
                break
            self.mark(item, QueueState.ERROR)
            dropped.append(item)
            self.task_done()
        return dropped

    @property
    def closed(self) -> bool:
        """Whether frontier has been closed for new enqueue attempts."""

        with self._lock:
            return self._closed

    def qsize(self) -> int:
        """Approximate queue size."""

        return self._queue.qsize()

    def empty(self) -> bool:
        """Return True if queue is currently empty."""

        return self._queue.empty()

    def get(self, url: str) -> QueueItem | None:
        """Look up the registered item for a URL, preferring an exact fragment match."""

        keys = [normalize_url(url, strip_fragment=False), normalize_url(url)]
        with self._lock:
            for key in keys:
                if key and key in self._items:
                    return self._items[key]
        return None

    def items(self) -> list[QueueItem]:
        """Return every registered item in insertion order."""

        with self._lock:
            return list(self._items.values())

    def unresolved(self) -> list[QueueItem]:
        """Return items that have not reached a terminal state."""

        with self._lock:
            return [item for item in self._items.values() if not item.state.terminal]

    def snapshot(self) -> dict[str, int | bool]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            return {
                "closed": self._closed,
                "queue_size": self._queue.qsize(),
                "known_urls": len(self._items),
                "enqueued": self._enqueued_count,
                "dequeued": self._dequeued_count,
                "skipped_seen": self._skipped_seen_count,
                "skipped_rejected": self._skipped_rejected_count,
                "skipped_invalid": self._skipped_invalid_count,
            }


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
]

"""Run counters for one link check."""

from __future__ import annotations

from collections import Counter
import threading
import time
from typing import Any, Iterable, Mapping

from .frontier import EnqueueResult, EnqueueStatus
from .types import Classification, FetchResult, utc_now_iso


class StatsCollector:
    """Count what a crawl did: admissions, fetch outcomes by scope, parsed pages.

    Every mutator takes the collector lock, so workers can report directly.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

        self._started_at = utc_now_iso()
        self._finished_at: str | None = None
        self._started_clock = time.monotonic()
        self._finished_clock: float | None = None

        self._enqueue_outcomes: Counter[str] = Counter()
        self._frontier_snapshot: dict[str, int | bool] = {}

        self._checked_by_scope: Counter[str] = Counter()
        self._fetched_ok = 0
        self._fetched_error = 0
        self._timeouts = 0
        self._status_codes: Counter[str] = Counter()
        self._transport_errors: Counter[str] = Counter()
        self._elapsed_ms: list[int] = []
        self._body_bytes = 0

        self._parsed_pages = 0
        self._redirector_pages = 0
        self._links_discovered = 0
        self._anchor_errors = 0

    def record_enqueue(self, outcome: EnqueueResult | EnqueueStatus) -> None:
        status = outcome.status if isinstance(outcome, EnqueueResult) else outcome
        with self._lock:
            self._enqueue_outcomes[status.value] += 1

    def record_enqueue_many(self, outcomes: Iterable[EnqueueResult]) -> None:
        for outcome in outcomes:
            self.record_enqueue(outcome)

    def record_frontier_snapshot(self, snapshot: Mapping[str, int | bool]) -> None:
        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def record_fetch(
        self,
        result: FetchResult,
        classification: Classification | None = None,
    ) -> None:
        """Count one fetch; `classification` splits the totals by scope."""

        with self._lock:
            if classification is not None:
                if classification.image:
                    self._checked_by_scope["image"] += 1
                elif classification.external:
                    self._checked_by_scope["external"] += 1
                else:
                    self._checked_by_scope["internal"] += 1

            if result.ok:
                self._fetched_ok += 1
            else:
                self._fetched_error += 1
            if result.timed_out:
                self._timeouts += 1

            if result.status_code is not None:
                self._status_codes[str(result.status_code)] += 1
            elif result.error:
                # "ConnectionError: ..." -> "ConnectionError"
                self._transport_errors[result.error.partition(":")[0].strip() or "Unknown"] += 1

            if result.elapsed_ms is not None:
                self._elapsed_ms.append(int(result.elapsed_ms))
            self._body_bytes += result.content_length or 0

    def record_extraction(
        self,
        *,
        links_discovered: int,
        anchor_errors: int,
        redirector: bool = False,
    ) -> None:
        with self._lock:
            self._parsed_pages += 1
            self._links_discovered += links_discovered
            self._anchor_errors += anchor_errors
            if redirector:
                self._redirector_pages += 1

    def finish(self) -> None:
        with self._lock:
            self._finished_at = utc_now_iso()
            self._finished_clock = time.monotonic()

    def to_json(self) -> dict[str, Any]:
        """Return the counters as a JSON-serializable mapping."""

        with self._lock:
            end = self._finished_clock if self._finished_clock is not None else time.monotonic()
            duration_seconds = max(0.0, end - self._started_clock)
            fetched_total = self._fetched_ok + self._fetched_error
            elapsed_total = sum(self._elapsed_ms)

            return {
                "started_at": self._started_at,
                "finished_at": self._finished_at,
                "duration_seconds": round(duration_seconds, 3),
                "frontier_enqueued": self._enqueue_outcomes[EnqueueStatus.ENQUEUED.value],
                "frontier_skipped_seen": self._enqueue_outcomes[EnqueueStatus.SKIPPED_SEEN.value],
                "frontier_skipped_rejected": self._enqueue_outcomes[
                    EnqueueStatus.SKIPPED_REJECTED.value
                ],
                "checked_internal": self._checked_by_scope["internal"],
                "checked_external": self._checked_by_scope["external"],
                "checked_images": self._checked_by_scope["image"],
                "fetched_ok": self._fetched_ok,
                "fetched_error": self._fetched_error,
                "timeouts": self._timeouts,
                "parsed_pages": self._parsed_pages,
                "redirector_pages": self._redirector_pages,
                "links_discovered": self._links_discovered,
                "anchor_errors": self._anchor_errors,
                "throughput": {
                    "urls_per_second": (
                        fetched_total / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                },
                "frontier": {
                    "enqueue_outcomes": dict(self._enqueue_outcomes),
                    "snapshot": dict(self._frontier_snapshot),
                },
                "fetch": {
                    "status_codes": dict(self._status_codes),
                    "transport_errors": dict(self._transport_errors),
                    "elapsed_ms_total": elapsed_total,
                    "elapsed_ms_avg": (
                        elapsed_total / len(self._elapsed_ms) if self._elapsed_ms else 0.0
                    ),
                    "body_bytes": self._body_bytes,
                },
            }


__all__ = ["StatsCollector"]

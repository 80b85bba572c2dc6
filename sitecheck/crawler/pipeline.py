"""Crawl engine: drains the frontier with a bounded pool of worker threads."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from .classify import classify, classify_url
from .config import CrawlConfig
from .fetcher import Fetcher
from .frontier import Frontier
from .parsers import LinkExtractor
from .policy import FetchPolicy, should_parse
from .reporter import ErrorReporter
from .stats import StatsCollector
from .types import CrawlVerdict, FetchResult, QueueItem, QueueState


LOGGER = logging.getLogger(__name__)

WORKER_POLL_SECONDS = 0.5
WORKER_JOIN_SECONDS = 5.0


class FetchBackend(Protocol):
    def fetch(self, url: str) -> FetchResult: ...

    def close(self) -> None: ...


class Pipeline:
    """Orchestrates frontier, fetcher, extractor, reporter, and stats.

    Each worker performs one blocking fetch at a time and then classifies,
    extracts, and enqueues synchronously. Children are pushed before the
    parent is marked done, so `Frontier.join()` only returns once the queue
    is empty and no fetch is in flight.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        fetcher: FetchBackend | None = None,
        policy: FetchPolicy | None = None,
        extractor: LinkExtractor | None = None,
        reporter: ErrorReporter | None = None,
        stats: StatsCollector | None = None,
        on_fetch_start: Callable[[QueueItem], None] | None = None,
        on_fetch_complete: Callable[[QueueItem, FetchResult], None] | None = None,
        on_complete: Callable[[CrawlVerdict], None] | None = None,
    ) -> None:
        self.config = config

        self.policy = policy or FetchPolicy(config)
        self.extractor = extractor or LinkExtractor(config)

        # Fetcher, reporter and stats hold per-run state. The ones built here
        # are replaced on every run; injected ones can only serve one run.
        self._injected_fetcher = fetcher
        self._injected_reporter = reporter
        self._injected_stats = stats
        self.fetcher: FetchBackend = fetcher or Fetcher(config)
        self.reporter = reporter or ErrorReporter(config)
        self.stats = stats or StatsCollector()

        self.on_fetch_start = on_fetch_start
        self.on_fetch_complete = on_fetch_complete
        self.on_complete = on_complete

        self._runs = 0
        self.frontier: Frontier | None = None

    def run(self) -> CrawlVerdict:
        """Crawl from the root URL until the frontier drains, then render the verdict.

        Every run starts from an empty frontier, a zero error tally and fresh
        stats. Raises `RuntimeError` when an injected reporter or stats
        collector would carry results over from a previous run.
        """

        self._start_run()
        frontier = Frontier(policy=self.policy)
        self.frontier = frontier

        LOGGER.info(
            "Starting crawl: root=%s, concurrency=%d, pull_request_mode=%s",
            self.config.root_url,
            self.config.max_concurrency,
            self.config.pull_request_mode,
        )

        try:
            seed_result = frontier.push(self.config.root_url, referrer=None, content="")
            self.stats.record_enqueue(seed_result)
            if not seed_result.accepted:
                LOGGER.warning("Root URL was not admitted: %s", self.config.root_url)

            self._drain(frontier)
        finally:
            if self._injected_fetcher is None:
                self.fetcher.close()

        self.stats.record_frontier_snapshot(frontier.snapshot())
        self.stats.finish()

        verdict = self.reporter.verdict()
        verdict.stats = self.stats.to_json()

        if verdict.success:
            LOGGER.info("Crawl complete: %d URL(s) checked, no broken links", len(frontier.items()))
        else:
            LOGGER.error("Crawl complete: %s", verdict.summary)

        if self.on_complete is not None:
            self.on_complete(verdict)
        return verdict

    def _start_run(self) -> None:
        if self._runs > 0:
            if self._injected_reporter is not None or self._injected_stats is not None:
                raise RuntimeError(
                    "Pipeline was given its own reporter/stats and has already run; "
                    "build a new Pipeline for another crawl"
                )
            if self._injected_fetcher is None:
                self.fetcher = Fetcher(self.config)
            self.reporter = ErrorReporter(self.config)
            self.stats = StatsCollector()
        self._runs += 1

    def _drain(self, frontier: Frontier) -> None:
        workers = [
            threading.Thread(
                target=self._frontier_worker,
                args=(frontier,),
                name=f"sitecheck-worker-{idx}",
                daemon=True,
            )
            for idx in range(self.config.max_concurrency)
        ]

        for worker in workers:
            worker.start()

        drained = frontier.join(timeout=self.config.max_run_seconds)
        frontier.close()
        if not drained:
            dropped = frontier.discard_pending()
            in_flight = frontier.unresolved()
            self.reporter.record_run_timeout(
                self.config.max_run_seconds or 0.0,
                len(dropped) + len(in_flight),
            )

        for worker in workers:
            worker.join(timeout=WORKER_JOIN_SECONDS)

    def _frontier_worker(self, frontier: Frontier) -> None:
        while True:
            item = frontier.pop(block=True, timeout=WORKER_POLL_SECONDS)
            if item is None:
                if frontier.closed and frontier.empty():
                    return
                continue

            try:
                self._process(frontier, item)
            except Exception as exc:
                LOGGER.exception("Failed to process %s", item.url)
                frontier.mark(item, QueueState.ERROR)
                self.reporter.record_internal_error(item, exc)
            finally:
                frontier.task_done()

    def _process(self, frontier: Frontier, item: QueueItem) -> None:
        classification = classify(item, self.config)

        frontier.mark(item, QueueState.FETCHING)
        if self.on_fetch_start is not None:
            self.on_fetch_start(item)

        result = self.fetcher.fetch(item.url)
        self.stats.record_fetch(result, classification)

        if result.status_code is None:
            frontier.mark(item, QueueState.ERROR)
        else:
            frontier.mark(item, QueueState.FETCHED, status_code=result.status_code)

        self.reporter.record_fetch(item, result, classification)
        if self.on_fetch_complete is not None:
            self.on_fetch_complete(item, result)

        if not result.ok or result.body is None:
            return
        if not should_parse(item, classification):
            return
        if classify_url(result.effective_url, self.config).external:
            LOGGER.debug("Not parsing %s: redirected off-site to %s", item.url, result.effective_url)
            return

        extraction = self.extractor.extract(
            item=item,
            body=result.body,
            classification=classification,
            base_url=result.effective_url,
        )
        self.reporter.record_anchor_errors(extraction.anchor_errors, classification)
        self.stats.record_extraction(
            links_discovered=len(extraction.discovered),
            anchor_errors=len(extraction.anchor_errors),
            redirector=extraction.redirector,
        )

        if extraction.discovered:
            enqueue_results = frontier.push_links(extraction.discovered, referrer=item.url)
            self.stats.record_enqueue_many(enqueue_results)


def run_crawl(config: CrawlConfig, **kwargs) -> CrawlVerdict:
    """Convenience wrapper: build a pipeline and run it once."""

    return Pipeline(config, **kwargs).run()


__all__ = [
    "FetchBackend",
    "Pipeline",
    "run_crawl",
]

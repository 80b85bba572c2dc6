"""Tests for the deduplicating frontier."""

from __future__ import annotations

import threading

from sitecheck.crawler import DiscoveredLink, EnqueueStatus, FetchPolicy, Frontier, QueueState


class TestPush:
    def test_enqueue_once(self):
        frontier = Frontier()
        first = frontier.push("http://localhost:8081/a", referrer="http://localhost:8081/", content="A")
        second = frontier.push("http://localhost:8081/a#section", referrer="http://localhost:8081/b", content="B")
        third = frontier.push("HTTP://LOCALHOST:8081/a", referrer=None, content="C")

        assert first.accepted
        assert second.status == EnqueueStatus.SKIPPED_SEEN
        assert third.status == EnqueueStatus.SKIPPED_SEEN
        assert frontier.qsize() == 1

    def test_first_metadata_wins(self):
        frontier = Frontier()
        frontier.push("http://localhost:8081/a", referrer="http://localhost:8081/", content="first")
        frontier.push("http://localhost:8081/a", referrer="http://localhost:8081/other", content="second")

        item = frontier.get("http://localhost:8081/a")
        assert item is not None
        assert item.referrer == "http://localhost:8081/"
        assert item.content == "first"
        assert item.state == QueueState.QUEUED

    def test_keep_fragment_is_a_separate_entry(self):
        frontier = Frontier()
        frontier.push("http://localhost:8081/photon/tools")
        result = frontier.push("http://localhost:8081/photon/tools#flash", keep_fragment=True)

        assert result.accepted
        assert result.normalized_url == "http://localhost:8081/photon/tools#flash"
        assert frontier.get("http://localhost:8081/photon/tools#flash").url.endswith("#flash")
        assert not frontier.get("http://localhost:8081/photon/tools").url.endswith("#flash")

    def test_invalid_url_skipped(self):
        frontier = Frontier()
        assert frontier.push("not a url").status == EnqueueStatus.SKIPPED_INVALID_URL
        assert frontier.empty()

    def test_policy_rejections_are_silent(self, config):
        frontier = Frontier(policy=FetchPolicy(config))
        assert frontier.push("mailto:team@example.com").status == EnqueueStatus.SKIPPED_REJECTED
        assert frontier.push("javascript:void(0)").status == EnqueueStatus.SKIPPED_REJECTED
        assert frontier.push("https://vimeo.com/1").status == EnqueueStatus.SKIPPED_REJECTED
        assert frontier.push("/relative/path").status == EnqueueStatus.SKIPPED_INVALID_URL
        assert frontier.items() == []

        snapshot = frontier.snapshot()
        assert snapshot["skipped_rejected"] == 3
        assert snapshot["skipped_invalid"] == 1

    def test_closed_frontier_refuses(self):
        frontier = Frontier()
        frontier.close()
        assert frontier.push("http://localhost:8081/").status == EnqueueStatus.SKIPPED_CLOSED

    def test_push_links_preserves_order_and_content(self):
        frontier = Frontier()
        results = frontier.push_links(
            [
                DiscoveredLink(url="http://localhost:8081/a", content="A"),
                DiscoveredLink(url="http://localhost:8081/b", content="B"),
                DiscoveredLink(url="http://localhost:8081/a", content="again"),
            ],
            referrer="http://localhost:8081/",
        )
        assert [r.status for r in results] == [
            EnqueueStatus.ENQUEUED,
            EnqueueStatus.ENQUEUED,
            EnqueueStatus.SKIPPED_SEEN,
        ]
        assert [item.content for item in frontier.items()] == ["A", "B"]

    def test_concurrent_pushes_enqueue_once(self):
        frontier = Frontier()
        barrier = threading.Barrier(8)

        def push_same():
            barrier.wait()
            for _ in range(50):
                frontier.push("http://localhost:8081/shared")

        threads = [threading.Thread(target=push_same) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert frontier.qsize() == 1
        assert frontier.snapshot()["skipped_seen"] == 8 * 50 - 1


class TestLifecycle:
    def test_pop_mark_and_join(self):
        frontier = Frontier()
        frontier.push("http://localhost:8081/")
        item = frontier.pop(block=False)
        assert item is not None
        assert frontier.pop(block=False) is None

        frontier.mark(item, QueueState.FETCHED, status_code=200)
        frontier.task_done()

        assert frontier.join(timeout=1.0)
        assert frontier.unresolved() == []
        assert item.status_code == 200

    def test_join_times_out_with_outstanding_work(self):
        frontier = Frontier()
        frontier.push("http://localhost:8081/")
        assert not frontier.join(timeout=0.05)

    def test_discard_pending_marks_errors(self):
        frontier = Frontier()
        frontier.push("http://localhost:8081/a")
        frontier.push("http://localhost:8081/b")
        frontier.close()

        dropped = frontier.discard_pending()

        assert [item.url for item in dropped] == [
            "http://localhost:8081/a",
            "http://localhost:8081/b",
        ]
        assert all(item.state == QueueState.ERROR for item in dropped)
        assert frontier.join(timeout=0.1)

"""Tests for fetch-outcome classification and the final verdict."""

from __future__ import annotations

import logging

import pytest

from sitecheck.crawler import (
    AnchorError,
    ErrorReporter,
    FetchResult,
    FindingKind,
    QueueItem,
    Severity,
    classify,
)

from tests.helpers import SITE


def _item(url: str, content: str = "Link text") -> QueueItem:
    return QueueItem(url=url, referrer=f"{SITE}/index", meta={"content": content})


def _status(url: str, code: int) -> FetchResult:
    return FetchResult(requested_url=url, final_url=url, status_code=code, content_type=None, body=None)


def _timeout(url: str) -> FetchResult:
    return FetchResult(
        requested_url=url,
        final_url=None,
        status_code=None,
        content_type=None,
        body=None,
        timed_out=True,
        error="ReadTimeout: read timed out",
    )


def _record(reporter: ErrorReporter, url: str, result: FetchResult):
    item = _item(url)
    return reporter.record_fetch(item, result, classify(item, reporter.config))


class TestFetchOutcomes:
    @pytest.mark.parametrize("code", [200, 204, 301, 304, 429])
    def test_successes_not_reported(self, config, code):
        reporter = ErrorReporter(config)
        assert _record(reporter, f"{SITE}/a", _status(f"{SITE}/a", code)) is None
        assert reporter.error_count == 0
        assert reporter.findings() == []

    def test_internal_404_is_error_with_context(self, config, caplog):
        reporter = ErrorReporter(config)
        with caplog.at_level(logging.ERROR):
            finding = _record(reporter, f"{SITE}/missing", _status(f"{SITE}/missing", 404))

        assert finding.severity == Severity.ERROR
        assert finding.message == (
            f"404 ON {SITE}/index CONTENT Link text LINKS TO {SITE}/missing"
        )
        assert reporter.error_count == 1
        assert "ERROR: 404 ON" in caplog.text

    def test_external_404_is_error(self, config):
        reporter = ErrorReporter(config)
        _record(reporter, "https://example.com/gone", _status("https://example.com/gone", 404))
        assert reporter.error_count == 1

    def test_external_5xx_is_warning(self, config, caplog):
        reporter = ErrorReporter(config)
        with caplog.at_level(logging.WARNING):
            finding = _record(reporter, "https://example.com/", _status("https://example.com/", 503))

        assert finding.severity == Severity.WARNING
        assert reporter.error_count == 0
        assert "WARN: 503 ON" in caplog.text

    def test_internal_5xx_is_error(self, config):
        reporter = ErrorReporter(config)
        _record(reporter, f"{SITE}/boom", _status(f"{SITE}/boom", 503))
        assert reporter.error_count == 1

    def test_external_timeout_is_warning(self, config):
        reporter = ErrorReporter(config)
        finding = _record(reporter, "https://slow.example.com/", _timeout("https://slow.example.com/"))
        assert finding.severity == Severity.WARNING
        assert finding.kind == FindingKind.TIMEOUT
        assert finding.message.startswith("timeout ON ")
        assert reporter.error_count == 0

    def test_internal_timeout_is_error(self, config):
        reporter = ErrorReporter(config)
        finding = _record(reporter, f"{SITE}/slow", _timeout(f"{SITE}/slow"))
        assert finding.severity == Severity.ERROR
        assert reporter.error_count == 1

    def test_transport_error_follows_scope(self, config):
        reporter = ErrorReporter(config)
        failure = FetchResult(
            requested_url="x", final_url=None, status_code=None, content_type=None, body=None,
            error="ConnectionError: refused",
        )
        external = _record(reporter, "https://down.example.com/", failure)
        internal = _record(reporter, f"{SITE}/down", failure)
        assert external.severity == Severity.WARNING
        assert internal.severity == Severity.ERROR
        assert internal.kind == FindingKind.TRANSPORT
        assert reporter.error_count == 1


class TestPullRequestMode:
    def test_api_404_suppressed_only_in_pull_requests(self, config, pr_config):
        url = f"{SITE}/reference/api/devices"

        strict = ErrorReporter(config)
        _record(strict, url, _status(url, 404))
        assert strict.error_count == 1

        lenient = ErrorReporter(pr_config)
        finding = _record(lenient, url, _status(url, 404))
        assert lenient.error_count == 0
        assert finding.severity == Severity.SUPPRESSED

    def test_edit_link_404_suppressed(self, pr_config):
        url = pr_config.documentation_edit_link_prefix + "/new-page.md"
        reporter = ErrorReporter(pr_config)
        _record(reporter, url, _status(url, 404))
        assert reporter.error_count == 0
        assert reporter.verdict().suppressed_count == 1

    def test_only_404_is_suppressed(self, pr_config):
        url = f"{SITE}/reference/api/devices"
        reporter = ErrorReporter(pr_config)
        _record(reporter, url, _status(url, 500))
        assert reporter.error_count == 1


class TestAnchorErrors:
    def test_relative_anchor_counts(self, config):
        reporter = ErrorReporter(config)
        item = QueueItem(url=f"{SITE}/docs")
        finding = reporter.record_anchor_error(
            AnchorError(page_url=f"{SITE}/docs", referrer=None, content="Jump", target="#missing", relative=True),
            classify(item, config),
        )
        assert finding.kind == FindingKind.MISSING_RELATIVE_ANCHOR
        assert finding.message == f"404 relative link ON {SITE}/docs CONTENT Jump LINKS TO #missing"
        assert reporter.error_count == 1

    def test_missing_hash_counts(self, config):
        reporter = ErrorReporter(config)
        item = QueueItem(url=f"{SITE}/docs#gone")
        finding = reporter.record_anchor_error(
            AnchorError(
                page_url=f"{SITE}/docs#gone",
                referrer=f"{SITE}/",
                content="Gone",
                target="#gone",
                relative=False,
            ),
            classify(item, config),
        )
        assert finding.message == f"404 (missing hash) ON {SITE}/ CONTENT Gone LINKS TO {SITE}/docs#gone"
        assert reporter.error_count == 1

    def test_api_anchor_suppressed_in_pull_requests(self, pr_config):
        reporter = ErrorReporter(pr_config)
        item = QueueItem(url=f"{SITE}/reference/api/")
        reporter.record_anchor_errors(
            [AnchorError(page_url=item.url, referrer=None, content="x", target="#y", relative=True)],
            classify(item, pr_config),
        )
        assert reporter.error_count == 0


class TestVerdict:
    def test_clean_run_succeeds(self, config):
        verdict = ErrorReporter(config).verdict()
        assert verdict.success
        assert verdict.exit_code == 0
        assert verdict.error_count == 0

    def test_errors_fail_with_summary(self, config):
        reporter = ErrorReporter(config)
        _record(reporter, f"{SITE}/a", _status(f"{SITE}/a", 404))
        _record(reporter, f"{SITE}/b", _status(f"{SITE}/b", 410))
        _record(reporter, "https://example.com/", _status("https://example.com/", 502))

        verdict = reporter.verdict()
        assert not verdict.success
        assert verdict.exit_code == 1
        assert verdict.error_count == 2
        assert verdict.warning_count == 1
        assert verdict.summary == "There are 2 broken link(s)"
        assert len(verdict.to_json()["findings"]) == 3

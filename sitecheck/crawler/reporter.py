"""Classification of fetch outcomes and anchor checks into errors and warnings."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from .config import CrawlConfig
from .types import (
    AnchorError,
    Classification,
    CrawlVerdict,
    FetchResult,
    Finding,
    FindingKind,
    QueueItem,
    Severity,
)


LOGGER = logging.getLogger(__name__)

RATE_LIMITED_STATUS = 429


class ErrorTally:
    """Lock-guarded error counter for one crawl run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0

    def increment(self, value: int = 1) -> int:
        with self._lock:
            self._count += value
            return self._count

    @property
    def count(self) -> int:
        with self._lock:
            return self._count


def _link_message(prefix: str, item: QueueItem) -> str:
    return f"{prefix} ON {item.referrer} CONTENT {item.content} LINKS TO {item.url}"


class ErrorReporter:
    """Decide, at the moment an outcome is observed, whether it is an error.

    Errors are counted in the tally and logged at ERROR level; external
    problems are logged as warnings; expected 404s in pull-request mode are
    suppressed. Every decision is kept as a `Finding` for the final summary.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        tally: ErrorTally | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.tally = tally or ErrorTally()
        self.logger = logger or LOGGER

        self._lock = threading.Lock()
        self._findings: list[Finding] = []

    def record_fetch(
        self,
        item: QueueItem,
        result: FetchResult,
        classification: Classification,
    ) -> Finding | None:
        """Classify one fetch outcome. Returns None when it is a success."""

        if result.timed_out:
            return self._external_warning_or_error(
                kind=FindingKind.TIMEOUT,
                item=item,
                classification=classification,
                message=_link_message("timeout", item),
            )

        status = result.status_code
        if status is None:
            detail = result.error or "fetch failed"
            return self._external_warning_or_error(
                kind=FindingKind.TRANSPORT,
                item=item,
                classification=classification,
                message=_link_message(detail, item),
            )

        if status < 400 or status == RATE_LIMITED_STATUS:
            return None

        message = _link_message(str(status), item)
        if status == 404 and self._pull_request_exempt(classification):
            return self._emit(Severity.SUPPRESSED, FindingKind.HTTP_STATUS, item, message, status)

        if classification.external and status // 100 == 5:
            return self._emit(Severity.WARNING, FindingKind.HTTP_STATUS, item, message, status)

        return self._emit(Severity.ERROR, FindingKind.HTTP_STATUS, item, message, status)

    def record_anchor_error(
        self,
        error: AnchorError,
        classification: Classification,
    ) -> Finding:
        """Count a missing anchor unless the pull-request exemption applies."""

        if error.relative:
            kind = FindingKind.MISSING_RELATIVE_ANCHOR
            message = (
                f"404 relative link ON {error.page_url} CONTENT {error.content} "
                f"LINKS TO {error.target}"
            )
            referrer = error.page_url
            url = error.target
        else:
            kind = FindingKind.MISSING_HASH
            message = (
                f"404 (missing hash) ON {error.referrer} CONTENT {error.content} "
                f"LINKS TO {error.page_url}"
            )
            referrer = error.referrer
            url = error.page_url

        severity = Severity.ERROR
        if self.config.pull_request_mode and classification.autogenerated_api_link:
            severity = Severity.SUPPRESSED

        finding = Finding(
            severity=severity,
            kind=kind,
            url=url,
            message=message,
            referrer=referrer,
            content=error.content,
            status_code=404,
        )
        return self._store(finding)

    def record_anchor_errors(
        self,
        errors: Iterable[AnchorError],
        classification: Classification,
    ) -> list[Finding]:
        return [self.record_anchor_error(error, classification) for error in errors]

    def record_internal_error(self, item: QueueItem, exc: BaseException) -> Finding:
        """Count an unexpected failure while processing one item."""

        message = _link_message(f"{exc.__class__.__name__}: {exc}", item)
        return self._emit(Severity.ERROR, FindingKind.INTERNAL, item, message, item.status_code)

    def record_run_timeout(self, seconds: float, pending: int) -> Finding:
        finding = Finding(
            severity=Severity.ERROR,
            kind=FindingKind.RUN_TIMEOUT,
            url="",
            message=f"Crawl exceeded {seconds:g}s with {pending} URL(s) unchecked",
        )
        return self._store(finding)

    def findings(self, severity: Severity | None = None) -> list[Finding]:
        with self._lock:
            if severity is None:
                return list(self._findings)
            return [finding for finding in self._findings if finding.severity == severity]

    @property
    def error_count(self) -> int:
        return self.tally.count

    def verdict(self) -> CrawlVerdict:
        """Render the pass/fail verdict; call only after the frontier drained."""

        findings = self.findings()
        error_count = self.tally.count
        return CrawlVerdict(
            success=error_count == 0,
            error_count=error_count,
            warning_count=sum(1 for f in findings if f.severity == Severity.WARNING),
            suppressed_count=sum(1 for f in findings if f.severity == Severity.SUPPRESSED),
            findings=findings,
        )

    def _pull_request_exempt(self, classification: Classification) -> bool:
        if not self.config.pull_request_mode:
            return False
        return classification.github_edit_link or classification.autogenerated_api_link

    def _external_warning_or_error(
        self,
        *,
        kind: FindingKind,
        item: QueueItem,
        classification: Classification,
        message: str,
    ) -> Finding:
        severity = Severity.WARNING if classification.external else Severity.ERROR
        return self._emit(severity, kind, item, message, None)

    def _emit(
        self,
        severity: Severity,
        kind: FindingKind,
        item: QueueItem,
        message: str,
        status_code: int | None,
    ) -> Finding:
        finding = Finding(
            severity=severity,
            kind=kind,
            url=item.url,
            message=message,
            referrer=item.referrer,
            content=item.content,
            status_code=status_code,
        )
        return self._store(finding)

    def _store(self, finding: Finding) -> Finding:
        with self._lock:
            self._findings.append(finding)

        if finding.severity == Severity.ERROR:
            self.tally.increment()
            self.logger.error("ERROR: %s", finding.message)
        elif finding.severity == Severity.WARNING:
            self.logger.warning("WARN: %s", finding.message)
        else:
            self.logger.debug("Suppressed expected 404: %s", finding.message)
        return finding


__all__ = [
    "ErrorReporter",
    "ErrorTally",
    "RATE_LIMITED_STATUS",
]

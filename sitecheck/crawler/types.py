"""Core type definitions for the link checker.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class QueueState(str, Enum):
    """Lifecycle of one frontier entry."""

    QUEUED = "queued"
    FETCHING = "fetching"
    FETCHED = "fetched"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in {QueueState.FETCHED, QueueState.ERROR}


class Severity(str, Enum):
    """How a finding affects the verdict."""

    ERROR = "error"
    WARNING = "warning"
    SUPPRESSED = "suppressed"


class FindingKind(str, Enum):
    """What produced a finding."""

    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    MISSING_HASH = "missing_hash"
    MISSING_RELATIVE_ANCHOR = "missing_relative_anchor"
    INTERNAL = "internal"
    RUN_TIMEOUT = "run_timeout"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(slots=True)
class QueueItem:
    """One unit of crawl work: a URL plus the context it was discovered in."""

    url: str
    referrer: str | None = None
    meta: dict[str, str] = field(default_factory=dict)
    state: QueueState = QueueState.QUEUED
    status_code: int | None = None
    discovered_at: str = field(default_factory=utc_now_iso)

    @property
    def content(self) -> str:
        return self.meta.get("content", "")


@dataclass(frozen=True, slots=True)
class Classification:
    """Scope and kind flags derived from a queue item's URL."""

    external: bool
    image: bool
    github_edit_link: bool
    autogenerated_api_link: bool


@dataclass(slots=True)
class FetchResult:
    """Result of attempting to download one URL."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None
    body: bytes | None
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None
    timed_out: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and not self.timed_out
            and self.status_code is not None
            and 200 <= self.status_code < 300
        )

    @property
    def content_length(self) -> int | None:
        return None if self.body is None else len(self.body)

    @property
    def effective_url(self) -> str:
        return self.final_url or self.requested_url


@dataclass(frozen=True, slots=True)
class DiscoveredLink:
    """An outbound reference found while extracting a document."""

    url: str
    content: str
    keep_fragment: bool = False


@dataclass(frozen=True, slots=True)
class AnchorError:
    """A fragment target that does not exist in the document it points into."""

    page_url: str
    referrer: str | None
    content: str
    target: str
    relative: bool


@dataclass(slots=True)
class ExtractionResult:
    """Discovered edges and anchor failures for one parsed document."""

    discovered: list[DiscoveredLink] = field(default_factory=list)
    anchor_errors: list[AnchorError] = field(default_factory=list)
    redirector: bool = False


@dataclass(frozen=True, slots=True)
class Finding:
    """One reported outcome (error, warning, or suppressed 404)."""

    severity: Severity
    kind: FindingKind
    url: str
    message: str
    referrer: str | None = None
    content: str | None = None
    status_code: int | None = None
    created_at: str = field(default_factory=utc_now_iso)

    def to_json(self) -> JSONDict:
        return {
            "severity": self.severity.value,
            "kind": self.kind.value,
            "url": self.url,
            "message": self.message,
            "referrer": self.referrer,
            "content": self.content,
            "status_code": self.status_code,
            "created_at": self.created_at,
        }


@dataclass(slots=True)
class CrawlVerdict:
    """Final pass/fail result of one run."""

    success: bool
    error_count: int
    warning_count: int = 0
    suppressed_count: int = 0
    findings: list[Finding] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)

    @property
    def summary(self) -> str:
        if self.success:
            return "No broken links found"
        return f"There are {self.error_count} broken link(s)"

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def to_json(self) -> JSONDict:
        return {
            "success": self.success,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "suppressed_count": self.suppressed_count,
            "findings": [finding.to_json() for finding in self.findings],
            "stats": dict(self.stats),
        }


__all__ = [
    "AnchorError",
    "Classification",
    "CrawlVerdict",
    "DiscoveredLink",
    "ExtractionResult",
    "FetchResult",
    "Finding",
    "FindingKind",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "QueueItem",
    "QueueState",
    "Severity",
    "utc_now_iso",
]

"""Crawler package: config, shared types, and link-checking components."""

from .classify import classify, classify_url
from .config import CrawlConfig, DeviceRedirectConfig, load_config, pull_request_mode_from_env, save_config
from .fetcher import Fetcher
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .parsers import LinkExtractor
from .pipeline import Pipeline, run_crawl
from .policy import FetchPolicy, should_parse
from .reporter import ErrorReporter, ErrorTally
from .stats import StatsCollector
from .types import (
    AnchorError,
    Classification,
    CrawlVerdict,
    DiscoveredLink,
    ExtractionResult,
    FetchResult,
    Finding,
    FindingKind,
    QueueItem,
    QueueState,
    Severity,
    utc_now_iso,
)
from .url import device_from_referrer, hostname_from_url, normalize_url, resolve_url

__all__ = [
    "AnchorError",
    "Classification",
    "CrawlConfig",
    "CrawlVerdict",
    "DeviceRedirectConfig",
    "DiscoveredLink",
    "EnqueueResult",
    "EnqueueStatus",
    "ErrorReporter",
    "ErrorTally",
    "ExtractionResult",
    "FetchPolicy",
    "FetchResult",
    "Fetcher",
    "Finding",
    "FindingKind",
    "Frontier",
    "LinkExtractor",
    "Pipeline",
    "QueueItem",
    "QueueState",
    "Severity",
    "StatsCollector",
    "classify",
    "classify_url",
    "device_from_referrer",
    "hostname_from_url",
    "load_config",
    "normalize_url",
    "pull_request_mode_from_env",
    "resolve_url",
    "run_crawl",
    "save_config",
    "should_parse",
    "utc_now_iso",
]

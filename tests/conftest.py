"""Shared fixtures for the link-checker tests."""

from __future__ import annotations

import pytest

from sitecheck.crawler import CrawlConfig
from tests.helpers import SITE


@pytest.fixture
def config() -> CrawlConfig:
    return CrawlConfig(
        base_url=SITE,
        max_concurrency=4,
        rate_limit_seconds=0.0,
        pull_request_mode=False,
    )


@pytest.fixture
def pr_config() -> CrawlConfig:
    return CrawlConfig(
        base_url=SITE,
        max_concurrency=4,
        rate_limit_seconds=0.0,
        pull_request_mode=True,
    )

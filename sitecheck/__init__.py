"""sitecheck: crawl a built site and report broken links and anchors."""

__version__ = "0.1.0"

"""Default values shared by config, fetcher, and policies."""

from __future__ import annotations

DEFAULT_BASE_URL = "http://localhost:8081"
DEFAULT_START_PATH = "/"

DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_FETCH_TIMEOUT_SECONDS = 20.0
DEFAULT_RATE_LIMIT_SECONDS = 0.005
DEFAULT_MAX_RUN_SECONDS: float | None = None

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_10_4) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/43.0.2357.134 Safari/537.36"
)
DEFAULT_ACCEPT_COOKIES = False
DEFAULT_SUPPORTED_MIME_TYPES = ("^text/",)
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

DEFAULT_LIVE_RELOAD_PORT = 35729
DEFAULT_HOST_DENYLIST = (
    "vimeo.com",
    "tools.usps.com",
    "www.microsoft.com",
    # Broken webserver that returns 404 for regular pages.
    "www.emaxmodel.com",
    "192.168.0.1",
)

DEFAULT_DOCUMENTATION_EDIT_LINK_PREFIX = "https://github.com/spark/docs/tree/master/src/content"
DEFAULT_API_REFERENCE_PREFIX = "/reference/api/"
DEFAULT_IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".bmp", ".gif", ".svg", ".webp", ".ico")

DEFAULT_DEVICES = ("photon", "electron", "core", "raspberry-pi")
DEFAULT_REDIRECTOR_MARKER_SELECTOR = "#device-redirector"
DEFAULT_REDIRECTOR_LINK_SELECTOR = "ul.devices a"
DEFAULT_DEVICE_LINK_ID_TEMPLATE = "{device}-link"

PULL_REQUEST_ENV_VARS = ("TRAVIS_PULL_REQUEST", "PULL_REQUEST")

IMAGE_CONTENT_LABEL = "image"

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")

"""Typed link-checker configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence
from urllib.parse import urljoin, urlsplit

import yaml  # type: ignore

from .constants import (
    DEFAULT_ACCEPT_COOKIES,
    DEFAULT_API_REFERENCE_PREFIX,
    DEFAULT_BASE_URL,
    DEFAULT_DEVICE_LINK_ID_TEMPLATE,
    DEFAULT_DEVICES,
    DEFAULT_DOCUMENTATION_EDIT_LINK_PREFIX,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_HOST_DENYLIST,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_IMAGE_EXTENSIONS,
    DEFAULT_LIVE_RELOAD_PORT,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_RUN_SECONDS,
    DEFAULT_RATE_LIMIT_SECONDS,
    DEFAULT_REDIRECTOR_LINK_SELECTOR,
    DEFAULT_REDIRECTOR_MARKER_SELECTOR,
    DEFAULT_START_PATH,
    DEFAULT_SUPPORTED_MIME_TYPES,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    PULL_REQUEST_ENV_VARS,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict
from .url import device_from_referrer, hostname_from_url


DeviceMatcher = Callable[[str | None, Sequence[str]], str | None]


def pull_request_mode_from_env(environ: Mapping[str, str] | None = None) -> bool:
    """Return True when a CI pull-request variable is set to anything but 'false'."""

    env = os.environ if environ is None else environ
    for name in PULL_REQUEST_ENV_VARS:
        value = (env.get(name) or "").strip()
        if value and value.lower() != "false":
            return True
    return False


def _as_float(value: Any, key: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(item) for item in value]
    raise ValueError(f"Invalid list for '{key}': {value!r}")


@dataclass(slots=True)
class DeviceRedirectConfig:
    """How device-redirector pages are recognized and traversed."""

    devices: list[str] = field(default_factory=lambda: list(DEFAULT_DEVICES))
    marker_selector: str = DEFAULT_REDIRECTOR_MARKER_SELECTOR
    link_selector: str = DEFAULT_REDIRECTOR_LINK_SELECTOR
    link_id_template: str = DEFAULT_DEVICE_LINK_ID_TEMPLATE
    enabled: bool = True
    matcher: DeviceMatcher | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.devices = [device.strip() for device in self.devices if device and device.strip()]
        if "{device}" not in self.link_id_template:
            raise ValueError("link_id_template must contain '{device}'")

    def match_device(self, referrer: str | None) -> str | None:
        """Return the device a visitor came from, or None when unknown."""

        matcher = self.matcher or device_from_referrer
        return matcher(referrer, self.devices)

    def link_id_for(self, device: str) -> str:
        return self.link_id_template.format(device=device)

    def to_dict(self) -> JSONDict:
        return {
            "devices": list(self.devices),
            "marker_selector": self.marker_selector,
            "link_selector": self.link_selector,
            "link_id_template": self.link_id_template,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DeviceRedirectConfig":
        return cls(
            devices=_as_str_list(payload.get("devices", list(DEFAULT_DEVICES)), "devices"),
            marker_selector=str(payload.get("marker_selector", DEFAULT_REDIRECTOR_MARKER_SELECTOR)),
            link_selector=str(payload.get("link_selector", DEFAULT_REDIRECTOR_LINK_SELECTOR)),
            link_id_template=str(
                payload.get("link_id_template", DEFAULT_DEVICE_LINK_ID_TEMPLATE)
            ),
            enabled=_as_bool(payload.get("enabled", True), "enabled"),
        )


@dataclass(slots=True)
class CrawlConfig:
    """Top-level configuration used by the pipeline, policies, and fetcher."""

    base_url: str = DEFAULT_BASE_URL
    start_path: str = DEFAULT_START_PATH

    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    rate_limit_seconds: float = DEFAULT_RATE_LIMIT_SECONDS
    max_run_seconds: float | None = DEFAULT_MAX_RUN_SECONDS

    user_agent: str = DEFAULT_USER_AGENT
    accept_cookies: bool = DEFAULT_ACCEPT_COOKIES
    supported_mime_types: list[str] = field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_MIME_TYPES)
    )
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))

    pull_request_mode: bool = field(default_factory=pull_request_mode_from_env)
    host_denylist: set[str] = field(default_factory=lambda: set(DEFAULT_HOST_DENYLIST))
    live_reload_port: int | None = DEFAULT_LIVE_RELOAD_PORT
    documentation_edit_link_prefix: str = DEFAULT_DOCUMENTATION_EDIT_LINK_PREFIX
    api_reference_prefix: str = DEFAULT_API_REFERENCE_PREFIX
    image_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_IMAGE_EXTENSIONS))

    device_redirect: DeviceRedirectConfig = field(default_factory=DeviceRedirectConfig)

    _mime_patterns: list[re.Pattern[str]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.strip()
        parsed = urlsplit(self.base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise ValueError(f"base_url must be an absolute http(s) URL: {self.base_url!r}")

        if not self.start_path.startswith("/"):
            self.start_path = "/" + self.start_path

        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")
        if self.rate_limit_seconds < 0:
            raise ValueError("rate_limit_seconds must be >= 0")
        if self.max_run_seconds is not None and self.max_run_seconds <= 0:
            raise ValueError("max_run_seconds must be > 0 when set")

        self.host_denylist = {host.strip().lower() for host in self.host_denylist if host.strip()}
        self.image_extensions = [
            ext.lower() if ext.startswith(".") else "." + ext.lower()
            for ext in self.image_extensions
            if ext
        ]

        try:
            self._mime_patterns = [
                re.compile(pattern, re.IGNORECASE) for pattern in self.supported_mime_types
            ]
        except re.error as exc:
            raise ValueError(f"Invalid supported_mime_types pattern: {exc}") from exc

    @property
    def site_host(self) -> str:
        """Hostname that marks a URL as internal."""

        return hostname_from_url(self.base_url)

    @property
    def root_url(self) -> str:
        return urljoin(self.base_url, self.start_path)

    def is_supported_mime_type(self, content_type: str | None) -> bool:
        """Check a Content-Type header against the configured patterns."""

        normalized = (content_type or "").split(";", maxsplit=1)[0].strip()
        if not normalized:
            return False
        return any(pattern.search(normalized) for pattern in self._mime_patterns)

    def headers(self) -> dict[str, str]:
        """Return request headers with the configured user agent applied."""

        merged: dict[str, str] = dict(self.default_headers)
        merged["User-Agent"] = self.user_agent
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for logs and reproducibility."""

        return {
            "base_url": self.base_url,
            "start_path": self.start_path,
            "max_concurrency": self.max_concurrency,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "rate_limit_seconds": self.rate_limit_seconds,
            "max_run_seconds": self.max_run_seconds,
            "user_agent": self.user_agent,
            "accept_cookies": self.accept_cookies,
            "supported_mime_types": list(self.supported_mime_types),
            "default_headers": dict(self.default_headers),
            "pull_request_mode": self.pull_request_mode,
            "host_denylist": sorted(self.host_denylist),
            "live_reload_port": self.live_reload_port,
            "documentation_edit_link_prefix": self.documentation_edit_link_prefix,
            "api_reference_prefix": self.api_reference_prefix,
            "image_extensions": list(self.image_extensions),
            "device_redirect": self.device_redirect.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary."""

        pull_request_mode = payload.get("pull_request_mode")
        device_payload = payload.get("device_redirect") or {}
        if not isinstance(device_payload, Mapping):
            raise ValueError(f"device_redirect must be a mapping: {device_payload!r}")

        return cls(
            base_url=str(payload.get("base_url", DEFAULT_BASE_URL)),
            start_path=str(payload.get("start_path", DEFAULT_START_PATH)),
            max_concurrency=int(payload.get("max_concurrency", DEFAULT_MAX_CONCURRENCY)),
            fetch_timeout_seconds=float(
                payload.get("fetch_timeout_seconds", DEFAULT_FETCH_TIMEOUT_SECONDS)
            ),
            rate_limit_seconds=float(payload.get("rate_limit_seconds", DEFAULT_RATE_LIMIT_SECONDS)),
            max_run_seconds=_as_float(
                payload.get("max_run_seconds", DEFAULT_MAX_RUN_SECONDS), "max_run_seconds"
            ),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            accept_cookies=_as_bool(
                payload.get("accept_cookies", DEFAULT_ACCEPT_COOKIES), "accept_cookies"
            ),
            supported_mime_types=_as_str_list(
                payload.get("supported_mime_types", list(DEFAULT_SUPPORTED_MIME_TYPES)),
                "supported_mime_types",
            ),
            default_headers={
                str(k): str(v)
                for k, v in dict(payload.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
            pull_request_mode=(
                pull_request_mode_from_env()
                if pull_request_mode is None
                else _as_bool(pull_request_mode, "pull_request_mode")
            ),
            host_denylist=set(
                _as_str_list(
                    payload.get("host_denylist", list(DEFAULT_HOST_DENYLIST)), "host_denylist"
                )
            ),
            live_reload_port=_as_int(
                payload.get("live_reload_port", DEFAULT_LIVE_RELOAD_PORT), "live_reload_port"
            ),
            documentation_edit_link_prefix=str(
                payload.get(
                    "documentation_edit_link_prefix", DEFAULT_DOCUMENTATION_EDIT_LINK_PREFIX
                )
            ),
            api_reference_prefix=str(
                payload.get("api_reference_prefix", DEFAULT_API_REFERENCE_PREFIX)
            ),
            image_extensions=_as_str_list(
                payload.get("image_extensions", list(DEFAULT_IMAGE_EXTENSIONS)),
                "image_extensions",
            ),
            device_redirect=DeviceRedirectConfig.from_dict(device_payload),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    return CrawlConfig.from_dict(payload)


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "CrawlConfig",
    "DeviceMatcher",
    "DeviceRedirectConfig",
    "load_config",
    "pull_request_mode_from_env",
    "save_config",
]

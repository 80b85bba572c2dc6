"""CLI entrypoint: crawl a running site and fail on broken links."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from sitecheck.crawler import CrawlConfig, CrawlVerdict, Pipeline, load_config
from sitecheck.crawler.constants import DEFAULT_HOST_DENYLIST


# Pass/broken-link codes (0/1) come from CrawlVerdict.exit_code.
EXIT_CONFIG_ERROR = 2
EXIT_RUN_FAILED = 3
EXIT_INTERRUPTED = 130


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a site from its root URL and report broken links and anchors.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML link-check config.",
    )
    parser.add_argument(
        "--base_url",
        type=str,
        default=None,
        help="Scheme, host and port of the site under test (e.g. http://localhost:8081).",
    )
    parser.add_argument("--start_path", type=str, default=None)

    parser.add_argument("--max_concurrency", type=int, default=None)
    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument("--rate_limit_seconds", type=float, default=None)
    parser.add_argument(
        "--max_run_seconds",
        type=float,
        default=None,
        help="Overall wall-clock ceiling for the crawl.",
    )
    parser.add_argument("--user_agent", type=str, default=None)

    parser.add_argument(
        "--pull_request",
        dest="pull_request_mode",
        action="store_true",
        default=None,
        help="Tolerate 404s on edit links and generated API pages (default: from CI env).",
    )
    parser.add_argument(
        "--no_pull_request",
        dest="pull_request_mode",
        action="store_false",
        help="Treat every broken link as an error.",
    )
    parser.add_argument(
        "--deny_host",
        action="append",
        default=[],
        help="Host that must never be fetched (repeatable). Added to the config denylist.",
    )
    parser.add_argument("--edit_link_prefix", type=str, default=None)

    parser.add_argument(
        "--log_file",
        type=Path,
        default=None,
        help="Also write log lines to this file.",
    )
    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON in stdout after run.",
    )
    parser.add_argument(
        "--report_json",
        type=Path,
        default=None,
        help="Write the verdict, findings and stats to this JSON file.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config is not None:
        payload: dict[str, Any] = load_config(args.config).to_dict()
    else:
        payload = {}

    if args.base_url is not None:
        payload["base_url"] = args.base_url
    if args.start_path is not None:
        payload["start_path"] = args.start_path

    if args.max_concurrency is not None:
        payload["max_concurrency"] = args.max_concurrency
    if args.timeout_seconds is not None:
        payload["fetch_timeout_seconds"] = args.timeout_seconds
    if args.rate_limit_seconds is not None:
        payload["rate_limit_seconds"] = args.rate_limit_seconds
    if args.max_run_seconds is not None:
        payload["max_run_seconds"] = args.max_run_seconds
    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent

    if args.pull_request_mode is not None:
        payload["pull_request_mode"] = args.pull_request_mode
    if args.deny_host:
        denylist = set(payload.get("host_denylist", DEFAULT_HOST_DENYLIST))
        payload["host_denylist"] = sorted(denylist | set(args.deny_host))
    if args.edit_link_prefix is not None:
        payload["documentation_edit_link_prefix"] = args.edit_link_prefix

    return CrawlConfig.from_dict(payload)


def setup_logging(log_file: Path | None, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # urllib3 logs every connection at DEBUG; keep verbose runs readable.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(verdict: CrawlVerdict, *, print_stats_json: bool) -> None:
    stats = verdict.stats

    print("\n=== Link Check Complete ===")
    print(f"result: {'PASS' if verdict.success else 'FAIL'}")
    print(f"errors: {verdict.error_count}")
    print(f"warnings: {verdict.warning_count}")
    print(f"suppressed: {verdict.suppressed_count}")

    print("\n--- Core Stats ---")
    for key in [
        "frontier_enqueued",
        "frontier_skipped_seen",
        "frontier_skipped_rejected",
        "checked_internal",
        "checked_external",
        "checked_images",
        "fetched_ok",
        "fetched_error",
        "timeouts",
        "parsed_pages",
        "links_discovered",
        "duration_seconds",
    ]:
        if key in stats:
            print(f"{key}: {stats[key]}")

    if not verdict.success:
        print(f"\n{verdict.summary}")

    if print_stats_json:
        print("\n--- Full Stats JSON ---")
        print(json.dumps(stats, indent=2, sort_keys=True))


def write_report(verdict: CrawlVerdict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(verdict.to_json(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    logging.info("Wrote report: %s", path)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, verbose=args.verbose)

    try:
        config = build_config(args)
    except (ValueError, TypeError, OSError) as exc:
        logging.error("Failed to build config: %s", exc)
        return EXIT_CONFIG_ERROR

    try:
        verdict = Pipeline(config).run()
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception:
        logging.exception("Link check failed to run")
        return EXIT_RUN_FAILED

    print_summary(verdict, print_stats_json=args.print_stats_json)
    if args.report_json is not None:
        write_report(verdict, args.report_json)
    return verdict.exit_code


if __name__ == "__main__":
    raise SystemExit(main())

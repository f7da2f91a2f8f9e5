# Geobound
# Copyright (c) 2025 Kevin Wyjad
# Licensed under the Geobound Non-Commercial Public License v1.0.
# See the LICENSE file in the project root for details.

"""Command line entrypoint for the boundary crawler."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .config import GeoboundConfig, load
from .hierarchy import HierarchyLoadError, load_hierarchy
from .ledger import Summary
from .logs import configure_root_logger
from .storage import DocumentStore
from .walker import HierarchyWalker

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2


def compute_exit_code(summary: Summary, *, fail_on_errors: bool = False) -> int:
    """0 for a completed run; 1 when failures occurred and the caller asked to fail."""

    if fail_on_errors and (summary.failed or summary.error_entries):
        return EXIT_FAILURES
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        "geobound",
        description="Download province and city boundary GeoJSON into data/{province}/{city}/geo.json",
    )
    parser.add_argument("--config", help="Path to a YAML config overriding the packaged defaults")
    parser.add_argument("--input", help="Hierarchy dataset (default: ChinaCitys.json)")
    parser.add_argument("--data-dir", help="Output directory (default: data)")
    parser.add_argument("--base-url", help="Boundary API base URL")
    parser.add_argument("--max-attempts", type=int, help="Attempts per fetch target")
    parser.add_argument(
        "--request-delay",
        type=float,
        help="Seconds to wait between sibling city requests",
    )
    parser.add_argument("--log-level", help="Logging level (default: GEOBOUND_LOG_LEVEL or INFO)")
    parser.add_argument("--debug", action="store_true", help="Shortcut for --log-level DEBUG")
    parser.add_argument(
        "--fail-on-errors",
        action="store_true",
        help="Exit with status 1 when any node failed",
    )
    return parser


def _apply_overrides(config: GeoboundConfig, args: argparse.Namespace) -> GeoboundConfig:
    if args.input:
        config.paths.input_path = args.input
    if args.data_dir:
        config.paths.data_dir = args.data_dir
    if args.base_url:
        config.api.base_url = args.base_url
    if args.max_attempts is not None:
        config.api.max_attempts = max(int(args.max_attempts), 1)
    if args.request_delay is not None:
        config.crawl.request_delay_s = max(float(args.request_delay), 0.0)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_root_logger(level="DEBUG" if args.debug else args.log_level)

    try:
        config = _apply_overrides(load(args.config), args)
    except (OSError, ValueError) as exc:
        LOGGER.error("Cannot load configuration: %s", exc)
        return EXIT_FATAL
    LOGGER.debug("Config source: %s", config.source)

    try:
        provinces = load_hierarchy(config.paths.input_path)
    except HierarchyLoadError as exc:
        LOGGER.error("Crawler aborted: %s", exc)
        return EXIT_FATAL

    store = DocumentStore(Path(config.paths.data_dir))
    LOGGER.info("Data directory: %s", store.root)
    LOGGER.info("API base URL: %s", config.api.base_url)
    summary = HierarchyWalker(config, store=store).run(provinces)
    return compute_exit_code(summary, fail_on_errors=args.fail_on_errors)


if __name__ == "__main__":
    raise SystemExit(main())

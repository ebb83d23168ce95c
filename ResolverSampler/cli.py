"""Command-line entry point for sampling GetIt, SFX and Ariadne responses."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load .env BEFORE importing config: config reads environment variables at import time
PACKAGE_ROOT = Path(__file__).resolve().parent
REPO_ROOT = PACKAGE_ROOT.parent
load_dotenv(REPO_ROOT / ".env")

from .browser_session import BrowserUnavailable, open_browser_session
from .case_files import discover_test_case_groups, load_test_case_urls
from .config import DEFAULT_TIMEOUT, FETCH_PAUSE_SECONDS, LOGS_DIR, RESPONSE_SAMPLES_DIR, TEST_CASE_FILES_DIR
from .sample_fetcher import FetchConfig, FetchSummary, fetch_response_samples, select_pending_urls
from .sample_store import IndexFileError, index_file_path, load_index
from .service_samplers import SERVICE_KEYS, build_samplers, sampler_names

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(logs_dir: Path, verbose: bool = False) -> None:
    """Log to the console, logs/combined.log, and errors only to logs/error.log."""
    logs_dir.mkdir(parents=True, exist_ok=True)

    error_handler = logging.FileHandler(logs_dir / "error.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(logs_dir / "combined.log", encoding="utf-8"),
            error_handler,
        ],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch GetIt, SFX and Ariadne response samples for a test case group",
    )
    parser.add_argument("test_case_group", help="Name of a subdirectory of the test case files directory")
    parser.add_argument("-g", "--getit-endpoint", help="Override GetIt endpoint")
    parser.add_argument("-s", "--sfx-endpoint", help="Override SFX endpoint")
    parser.add_argument("-a", "--ariadne-endpoint", help="Override Ariadne endpoint")
    parser.add_argument(
        "-x",
        "--exclude",
        action="append",
        default=[],
        choices=SERVICE_KEYS,
        metavar="SERVICE",
        help=f"Do not sample this service (may be repeated; one of: {', '.join(SERVICE_KEYS)})",
    )
    parser.add_argument("-l", "--limit", type=int, help="Fetch at most this many samples")
    parser.add_argument("-r", "--replace", action="store_true", help="Replace existing sample files and index entries")
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Seconds to wait for each page to finish loading (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument("--headed", action="store_true", help="Show the browser window while sampling")
    parser.add_argument(
        "--samples-dir",
        type=Path,
        default=RESPONSE_SAMPLES_DIR,
        help="Directory to write samples and index files to",
    )
    parser.add_argument(
        "--test-case-files-dir",
        type=Path,
        default=TEST_CASE_FILES_DIR,
        help="Directory containing one subdirectory per test case group",
    )
    parser.add_argument("--logs-dir", type=Path, default=LOGS_DIR, help="Directory for combined.log and error.log")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log wait-heuristic decisions")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)

    groups = discover_test_case_groups(args.test_case_files_dir)
    if args.test_case_group not in groups:
        choices = ", ".join(groups) if groups else f"(none found in {args.test_case_files_dir})"
        parser.error(
            f'"{args.test_case_group}" is not a recognized test case group. '
            f"Please select from one of the following: {choices}"
        )
    if set(SERVICE_KEYS).issubset(args.exclude):
        parser.error("At least one service must be sampled")
    if args.limit is not None and args.limit < 1:
        parser.error("--limit must be a positive integer")
    if args.timeout <= 0:
        parser.error("--timeout must be positive")

    return args


def run_sampler(args: argparse.Namespace) -> FetchSummary:
    configure_logging(args.logs_dir, verbose=args.verbose)

    group = args.test_case_group
    samplers = build_samplers(
        group,
        endpoints={
            "getit": args.getit_endpoint,
            "sfx": args.sfx_endpoint,
            "ariadne": args.ariadne_endpoint,
        },
        exclude=args.exclude,
    )
    for sampler in samplers:
        logging.info("[config] %s endpoint: %s", sampler.name, sampler.endpoint)

    index = load_index(index_file_path(args.samples_dir, group))
    test_case_urls = load_test_case_urls(args.test_case_files_dir, group)
    pending = select_pending_urls(test_case_urls, index, replace=args.replace, limit=args.limit)
    logging.info(
        "Test case group %s: %d URLs, %d already sampled, %d to fetch",
        group,
        len(test_case_urls),
        sum(1 for url in test_case_urls if url in index),
        len(pending),
    )
    if not pending:
        logging.info("Nothing to fetch")
        return FetchSummary()

    fetch_cfg = FetchConfig(timeout=args.timeout, pause=FETCH_PAUSE_SECONDS)
    with open_browser_session(headless=not args.headed, timeout=args.timeout) as session:
        summary = fetch_response_samples(
            session.page,
            samplers,
            pending,
            args.samples_dir,
            group,
            index,
            fetch_cfg,
        )

    for failure in summary.failures:
        logging.warning("[missing] %s - %s", failure.get("url", "unknown"), failure.get("reason", "unknown"))
    logging.info(
        "Run complete. Fetched %s responses for %d URLs, %d failed",
        sampler_names(samplers),
        len(summary.fetched),
        len(summary.failures),
    )
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        run_sampler(args)
    except BrowserUnavailable as exc:
        logging.error("[session][ERROR] %s", exc)
        return 1
    except IndexFileError as exc:
        logging.error("[index][ERROR] %s", exc)
        return 1
    except (OSError, ValueError) as exc:
        logging.error("[sampler][ERROR] %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Command-line entry point.

    google-search "query" [-l LIMIT] [-t TIMEOUT_MS] [--state-file PATH] [--no-save-state] [--locale TAG]

Prints the SearchResponse as indented JSON on stdout; logs go to stderr.
"""

import argparse
import asyncio
import json
import logging
import sys

from pydantic import ValidationError

from .core.config import settings
from .core.logger import setup_logging
from .schemas.search import SearchOptions
from .services.engine import google_search

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="google-search",
        description="Google search tool based on Playwright",
    )
    parser.add_argument("query", help="Search keywords")
    parser.add_argument(
        "-l",
        "--limit",
        type=_positive_int,
        default=settings.SEARCH_DEFAULT_LIMIT,
        help=f"Result count limit (default: {settings.SEARCH_DEFAULT_LIMIT})",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=_positive_int,
        default=settings.SEARCH_CLI_TIMEOUT_MS,
        help=f"Timeout in milliseconds (default: {settings.SEARCH_CLI_TIMEOUT_MS})",
    )
    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Deprecated: the browser starts headless and switches to headed mode on a CAPTCHA",
    )
    parser.add_argument(
        "--state-file",
        default=settings.SEARCH_DEFAULT_STATE_FILE,
        help=f"Browser state file path (default: {settings.SEARCH_DEFAULT_STATE_FILE})",
    )
    parser.add_argument("--no-save-state", action="store_true", help="Do not save browser state")
    parser.add_argument("--locale", default=None, help="Locale for a newly created fingerprint, e.g. en-US")
    return parser


def parse_options(parser: argparse.ArgumentParser, argv: list[str] | None = None) -> tuple[str, SearchOptions]:
    """Parse ``argv`` into (query, options). Exits with status 2 on invalid input."""
    args = parser.parse_args(argv)
    if not args.query.strip():
        parser.error("query must not be empty")

    if args.no_headless:
        logger.warning("--no-headless is deprecated and ignored; headed mode is used automatically when needed")

    try:
        options = SearchOptions(
            limit=args.limit,
            timeout=args.timeout,
            state_file=args.state_file,
            no_save_state=args.no_save_state,
            locale=args.locale,
        )
    except ValidationError as e:
        parser.error(str(e))
    return args.query, options


def main(argv: list[str] | None = None) -> int:
    setup_logging(settings)
    parser = build_parser()
    query, options = parse_options(parser, argv)

    try:
        response = asyncio.run(google_search(query, options))
    except Exception as e:
        logger.exception(f"Error: {e}")
        return 1

    print(json.dumps(response.model_dump(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())

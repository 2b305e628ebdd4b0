"""Entry point for ``python -m inbox_cal``.

Reads plain-text emails from files, a JSON batch, or stdin, runs them
through the extraction arbiter, and prints the results as JSON.

Subcommands:
    extract -- Default. Extract calendar items and print JSON.

Exit codes:
    0 -- Extraction completed (including zero items).
    1 -- An error occurred (file not found, bad batch file, config error).
    2 -- Argument parsing error (handled by argparse).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from inbox_cal.arbiter import Arbiter
from inbox_cal.batch import extract_batch
from inbox_cal.clients import build_client
from inbox_cal.config import ConfigError, Settings, load_settings
from inbox_cal.llm import LLMExtractor
from inbox_cal.log import setup_logging
from inbox_cal.models.request import ExtractionRequest

_REQUESTS_ADAPTER = TypeAdapter(list[ExtractionRequest])


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="inbox-cal",
        description="Extract calendar-ready items from email text.",
    )
    subparsers = parser.add_subparsers(dest="command")

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract calendar items and print them as JSON.",
    )
    extract_parser.add_argument(
        "files",
        nargs="*",
        help="Plain-text files, one email each. Reads stdin when omitted.",
    )
    extract_parser.add_argument(
        "--batch",
        type=str,
        default=None,
        help="JSON file holding a list of request records (overrides FILES).",
    )
    extract_parser.add_argument("--subject", type=str, default="", help="Subject line.")
    extract_parser.add_argument(
        "--now",
        type=str,
        default=None,
        help="Reference time (ISO 8601) for relative dates and missing years.",
    )
    extract_parser.add_argument(
        "--timezone",
        type=str,
        default=None,
        help="IANA timezone (defaults to TIMEZONE from config).",
    )
    extract_parser.add_argument(
        "--mode",
        choices=("auto", "rules", "llm"),
        default="auto",
        help="Merge-strategy mode (default: auto).",
    )
    extract_parser.add_argument(
        "--strategy",
        choices=("merge", "either-or"),
        default="merge",
        help="Arbitration strategy (default: merge).",
    )
    extract_parser.add_argument(
        "--llm-first",
        action="store_true",
        default=False,
        help="Either/or strategy, trying the LLM before the rules.",
    )
    extract_parser.add_argument(
        "--budget-ms",
        type=int,
        default=None,
        help="LLM timeout budget in milliseconds (clamped to 1000-20000).",
    )
    extract_parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of emails processed at once.",
    )
    extract_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )
    return parser


def _resolve_command(parser: argparse.ArgumentParser, argv: list[str]) -> argparse.Namespace:
    """Parse *argv*, routing to ``extract`` when no subcommand is given."""
    if not argv:
        argv = ["extract"]
    elif argv[0] not in {"extract", "-h", "--help"}:
        argv = ["extract", *argv]
    return parser.parse_args(argv)


def _llm_first(args: argparse.Namespace) -> bool | None:
    if args.llm_first:
        return True
    return False if args.strategy == "either-or" else None


def _build_requests(args: argparse.Namespace) -> list[ExtractionRequest]:
    """Turn CLI input into request records.

    Raises:
        FileNotFoundError: If an input file does not exist.
        UnicodeDecodeError: If an input file is not UTF-8 text.
        ValidationError: If the batch file does not hold valid records.
    """
    if args.batch:
        path = Path(args.batch)
        if not path.is_file():
            raise FileNotFoundError(f"Batch file not found: {path}")
        return _REQUESTS_ADAPTER.validate_json(path.read_text(encoding="utf-8"))

    if args.files:
        texts = []
        for name in args.files:
            path = Path(name)
            if not path.is_file():
                raise FileNotFoundError(f"File not found: {path}")
            texts.append(path.read_text(encoding="utf-8"))
    else:
        texts = [sys.stdin.read()]

    return [
        ExtractionRequest(
            subject=args.subject,
            text=text,
            reference_iso=args.now,
            timezone=args.timezone,
            mode=args.mode,
            llm_first=_llm_first(args),
            budget_ms=args.budget_ms,
        )
        for text in texts
    ]


def _build_arbiter(settings: Settings, timezone: str | None) -> Arbiter:
    extractor = LLMExtractor(
        build_client(settings),
        model=settings.llm_model,
        budget_ms=settings.llm_budget_ms,
        timezone=timezone or settings.timezone,
    )
    return Arbiter(extractor)


def _handle_extract(args: argparse.Namespace, settings: Settings) -> int:
    """Execute the ``extract`` subcommand."""
    try:
        requests = _build_requests(args)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as exc:
        print(f"Error: input is not valid UTF-8: {exc}", file=sys.stderr)
        return 1
    except ValidationError as exc:
        print(f"Error: invalid batch file: {exc}", file=sys.stderr)
        return 1

    arbiter = _build_arbiter(settings, args.timezone)
    results = asyncio.run(extract_batch(requests, arbiter, concurrency=args.concurrency))

    output = {"emails": [result.to_json_dict() for result in results]}
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the inbox-cal CLI.

    Args:
        argv: Command-line arguments.  Defaults to ``sys.argv[1:]``.

    Returns:
        Exit code: ``0`` on success, ``1`` on error.
    """
    parser = build_parser()
    args = _resolve_command(parser, argv if argv is not None else sys.argv[1:])

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        setup_logging("DEBUG" if args.verbose else settings.log_level)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return _handle_extract(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())

"""
Command-line interface for InternScout.

Usage:
    python -m internscout run -v
    python -m internscout test github_repo
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from internscout.config import Settings
from internscout.providers import PROVIDER_NAMES
from internscout.storage.base import StoreError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="internscout",
        description="Internship discovery pipeline: collect, dedupe, score and store postings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One full run with the default providers
  internscout run -v

  # Only the structured feeds, custom database and profile
  internscout run --providers simplify_list,github_repo --db ./data/internships.db --profile ./profile.json

  # Fast local run: no polite delays, tighter budget
  internscout run --no-delay --budget 30

  # Smoke-test one provider (first 5 postings, nothing stored)
  internscout test themuse
""",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--profile",
        default=None,
        help="Candidate profile JSON (targetRoles, targetFirms, keywords, blacklist)",
    )
    common.add_argument(
        "--no-delay",
        action="store_true",
        help="Disable the randomized delay between requests to one host",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print progress messages",
    )
    common.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress all output except errors",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", parents=[common], help="Run the pipeline once")
    run.add_argument(
        "--db",
        default=None,
        help="SQLite database path (default: INTERNSCOUT_DB_PATH or internscout.db)",
    )
    run.add_argument(
        "--providers", "-p",
        default=None,
        help=f"Comma-separated provider allowlist ({', '.join(PROVIDER_NAMES)})",
    )
    run.add_argument(
        "--budget",
        type=float,
        default=None,
        help="Overall run budget in seconds (default: 60)",
    )
    run.add_argument(
        "--max-new",
        type=int,
        default=None,
        help="Maximum new postings stored per run (default: 80)",
    )

    test = sub.add_parser("test", parents=[common], help="Smoke-test a single provider")
    test.add_argument(
        "provider",
        choices=PROVIDER_NAMES,
        help="Provider to test",
    )

    return parser.parse_args(argv)


def configure_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_settings(args: argparse.Namespace) -> Settings:
    """Settings from the environment, overridden by explicit flags."""
    overrides: Dict[str, Any] = {}
    if args.profile:
        overrides["profile_path"] = args.profile
    if args.no_delay:
        overrides["min_delay_s"] = 0.0
        overrides["max_delay_s"] = 0.0
    if getattr(args, "db", None):
        overrides["db_path"] = args.db
    if getattr(args, "providers", None):
        overrides["enabled_providers"] = args.providers
    if getattr(args, "budget", None) is not None:
        overrides["run_budget_s"] = args.budget
    if getattr(args, "max_new", None) is not None:
        overrides["max_new_per_run"] = args.max_new
    return Settings(**overrides)


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    from internscout.orchestrator import run_once

    if not args.quiet:
        print(f"InternScout - database: {settings.db_path}")
        print()

    result = await run_once(settings)

    if not args.quiet:
        print("=" * 50)
        print("Run Summary")
        print("=" * 50)
        for s in result.sources:
            flag = " (abandoned)" if s.abandoned else ""
            print(f"  {s.source:<16} {s.found:>4} found, {len(s.errors)} errors{flag}")
        print()
        print(f"  New postings:   {result.total_new}")
        print(f"  Errors:         {len(result.errors)}")
        if args.verbose:
            for e in result.errors:
                print(f"    - {e}")
    return 0


async def test_command(args: argparse.Namespace, settings: Settings) -> int:
    from internscout.orchestrator import run_provider_test

    result = await run_provider_test(args.provider, settings)

    print(f"{result.source}: {result.found} postings (first {len(result.postings)} shown)")
    for p in result.postings:
        visa = " [visa]" if p.visa_flag else ""
        print(f"  - {p.title} @ {p.company}{visa}")
        print(f"    {p.url}")
    for e in result.errors:
        print(f"  error: {e}")
    return 0


async def async_main(args: argparse.Namespace) -> int:
    """Async entry point."""
    try:
        settings = build_settings(args)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        if args.command == "test":
            return await test_command(args, settings)
        return await run_command(args, settings)

    except KeyboardInterrupt:
        if not args.quiet:
            print("\nInterrupted by user")
        return 130

    except (StoreError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args)
    return asyncio.run(async_main(args))


if __name__ == "__main__":
    sys.exit(main())

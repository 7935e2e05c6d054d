#!/usr/bin/env python3
"""
Aggregate Benchmark Results

Builds every derived document (per-library, per-scenario and per-category
aggregates, the library comparison, timelines, regression alerts and UI
data) from stored measurements.

Usage:
    python bin/aggregate_results.py latest
    python bin/aggregate_results.py run 2025-01-15_10-30-00
    python bin/aggregate_results.py all
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import asyncio
import json

from ormbench import StorageManager
from ormbench.config import Settings
from ormbench.console import ConsoleReporter, setup_logging
from ormbench.core.sweep import SweepReport


def build_parser() -> argparse.ArgumentParser:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Generate aggregations from stored benchmark results",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--results-dir", default=settings.results_dir, help="Results store root")
    parser.add_argument("--json", action="store_true", help="Print the sweep report as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("latest", help="Aggregate the most recent run")
    run = sub.add_parser("run", help="Aggregate one run")
    run.add_argument("run_id")
    all_runs = sub.add_parser("all", help="Rebuild everything from all runs, oldest first")
    all_runs.add_argument("--keep", action="store_true",
                          help="Keep existing aggregates instead of clearing them first")
    return parser


async def run_command(args: argparse.Namespace) -> SweepReport:
    manager = StorageManager(args.results_dir)
    await manager.initialize()
    if args.command == "latest":
        return await manager.generate_latest_aggregations()
    if args.command == "run":
        return await manager.generate_all_aggregations(args.run_id)
    return await manager.regenerate_all_aggregations(fresh=not args.keep)


def main() -> int:
    args = build_parser().parse_args()
    setup_logging(args.verbose, Settings.from_env().log_level)
    console = ConsoleReporter()

    try:
        report = asyncio.run(run_command(args))
    except LookupError as e:
        console.error(str(e))
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        console.section(f"Aggregation: {report.label}")
        console.success(f"{len(report.succeeded)} documents written")
        if report.skips:
            console.warning(f"{len(report.skips)} skipped")
        for failure in report.failures:
            console.error(f"{failure.step} {failure.key}: {failure.error}")
    return 0 if report.all_ok else 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Show Run Summary

Usage:
    python bin/run_summary.py
    python bin/run_summary.py --run 2025-01-15_10-30-00 --json
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import asyncio
import json
from typing import Any, Dict

from ormbench import StorageManager
from ormbench.config import Settings
from ormbench.console import ConsoleReporter, setup_logging


def build_parser() -> argparse.ArgumentParser:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Print the summary of a benchmark run",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--results-dir", default=settings.results_dir, help="Results store root")
    parser.add_argument("--run", dest="run_id", help="Run to show (default: latest)")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


async def load_summary(args: argparse.Namespace) -> Dict[str, Any]:
    manager = StorageManager(args.results_dir)
    return await manager.get_run_summary(await manager.resolve_run(args.run_id))


def main() -> int:
    args = build_parser().parse_args()
    setup_logging(args.verbose, Settings.from_env().log_level)
    console = ConsoleReporter()

    try:
        summary = asyncio.run(load_summary(args))
    except LookupError as e:
        console.error(str(e))
        return 1

    if args.json:
        print(json.dumps(summary, indent=2))
        return 0

    totals = summary["summary"]
    console.section(f"Run {summary['run_id']}")
    console.info(f"Status:       {summary['status']} (triggered by {summary['triggered_by']})")
    console.info(f"Started:      {summary['started']}")
    console.info(f"Duration:     {summary['duration_s']:.2f}s")
    console.info(f"Scenarios:    {totals['total_scenarios']} "
                 f"({totals['successful_tests']} ok, {totals['failed_tests']} failed)")
    console.info(f"Measurements: {totals['total_measurements']}")
    print()
    console.table(
        ["Library", "Version", "Run", "Succeeded", "Failed"],
        [[lib["name"], lib["version"], lib["scenarios_run"], lib["scenarios_succeeded"],
          lib["scenarios_failed"]] for lib in summary["libraries"]],
    )
    if summary["notes"]:
        print()
        console.info(f"Notes: {summary['notes']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

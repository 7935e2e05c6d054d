#!/usr/bin/env python3
"""
Compare Benchmark Results

Usage:
    python bin/compare_results.py latest
    python bin/compare_results.py runs 2025-01-14_09-00-00 2025-01-15_10-30-00
    python bin/compare_results.py versions libA 1.0.0 2.0.0
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import asyncio
import json
from typing import Any, Dict, Optional

from ormbench import StorageManager
from ormbench.config import Settings
from ormbench.console import ConsoleReporter, setup_logging


def build_parser() -> argparse.ArgumentParser:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Compare libraries, runs or versions",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--results-dir", default=settings.results_dir, help="Results store root")
    parser.add_argument("--json", action="store_true", help="Print the comparison document as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    latest = sub.add_parser("latest", help="Compare all libraries of a run")
    latest.add_argument("--run", dest="run_id", help="Run to compare (default: latest)")
    runs = sub.add_parser("runs", help="Compare two runs library by library")
    runs.add_argument("run_a")
    runs.add_argument("run_b")
    versions = sub.add_parser("versions", help="Compare versions of one library")
    versions.add_argument("library")
    versions.add_argument("versions", nargs="+")
    return parser


def _print_library_comparison(console: ConsoleReporter, data: Dict[str, Any]) -> None:
    console.section(f"Library comparison: {data['run_id']}")
    console.table(
        ["Scenario", "Category", "Winner", "Runner-up", "p50 delta"],
        [
            [s["scenario_id"], s["category"], s["winner"], s["runner_up"],
             f"{s['deltas']['latency_p50']['percentage']:.1f}%"]
            for s in data["scenarios"]
        ],
    )
    winner = data.get("overall_winner")
    if winner:
        console.success(f"Overall winner: {winner['library_id']} "
                        f"({winner['wins']} wins, {winner['losses']} losses, {winner['ties']} ties)")


def _print_run_comparison(console: ConsoleReporter, data: Dict[str, Any]) -> None:
    console.section(f"{data['run_a']} vs {data['run_b']}")
    rows = []
    for lib in data["libraries"]:
        for s in lib["scenarios"]:
            rows.append([lib["library_id"], s["scenario_id"],
                         f"{s['latency_change_pct']:+.1f}%", f"{s['throughput_change_pct']:+.1f}%", s["trend"]])
    console.table(["Library", "Scenario", "p50 change", "RPS change", "Trend"], rows)
    summary = data["summary"]
    console.info(f"Improved: {summary['improved']}  Degraded: {summary['degraded']}  Stable: {summary['stable']}")


def _print_version_comparison(console: ConsoleReporter, data: Dict[str, Any]) -> None:
    console.section(f"{data['library_name']}: {' vs '.join(data['versions'])}")
    console.table(
        ["Scenario", "Trend", "p50 change"],
        [[s["scenario_id"], s["trend"], f"{s['change_percentage']:+.1f}%"] for s in data["scenarios"]],
    )
    for change in data["summary"]["significant_changes"]:
        console.warning(f"{change['type']}: {change['scenario_id']} {change['metric']} "
                        f"{change['change_percentage']:+.1f}%")


async def run_command(args: argparse.Namespace) -> Optional[Dict[str, Any]]:
    manager = StorageManager(args.results_dir)
    if args.command == "latest":
        run_id = await manager.resolve_run(args.run_id)
        comparison = await manager.comparator.compare_libraries(run_id)
    elif args.command == "runs":
        comparison = await manager.compare_runs(args.run_a, args.run_b)
    else:
        comparison = await manager.compare_versions(args.library, args.versions)
    return comparison.to_dict() if comparison is not None else None


def main() -> int:
    args = build_parser().parse_args()
    setup_logging(args.verbose, Settings.from_env().log_level)
    console = ConsoleReporter()

    try:
        data = asyncio.run(run_command(args))
    except (LookupError, ValueError) as e:
        console.error(str(e))
        return 1

    if data is None:
        console.error("Nothing to compare: fewer than two libraries (or no common library)")
        return 1

    if args.json:
        print(json.dumps(data, indent=2))
    elif args.command == "latest":
        _print_library_comparison(console, data)
    elif args.command == "runs":
        _print_run_comparison(console, data)
    else:
        _print_version_comparison(console, data)
    return 0


if __name__ == "__main__":
    sys.exit(main())

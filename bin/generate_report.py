#!/usr/bin/env python3
"""
Generate Markdown Reports

Writes ``{output}/{run_id}/summary.md`` and one ``{CATEGORY}.md`` per
category. Run ``aggregate_results.py`` first so the library comparison
exists.

Usage:
    python bin/generate_report.py
    python bin/generate_report.py --run 2025-01-15_10-30-00 --output results
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import asyncio
from typing import List

from ormbench import StorageManager
from ormbench.config import Settings
from ormbench.console import ConsoleReporter, setup_logging
from ormbench.reporting import ReportGenerator


def build_parser() -> argparse.ArgumentParser:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Generate Markdown reports for a benchmark run",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--results-dir", default=settings.results_dir, help="Results store root")
    parser.add_argument("--run", dest="run_id", help="Run to report (default: latest)")
    parser.add_argument("--output", "-o", default="results", type=Path, help="Report output directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


async def generate(args: argparse.Namespace) -> List[Path]:
    manager = StorageManager(args.results_dir)
    run_id = await manager.resolve_run(args.run_id)
    metadata = await manager.require_run(run_id)
    comparison = await manager.comparator.load_library_comparison(run_id)
    return ReportGenerator(args.output).generate(metadata, comparison)


def main() -> int:
    args = build_parser().parse_args()
    setup_logging(args.verbose, Settings.from_env().log_level)
    console = ConsoleReporter()

    try:
        paths = asyncio.run(generate(args))
    except LookupError as e:
        console.error(str(e))
        return 1

    console.section("Reports generated")
    for path in paths:
        console.success(str(path))
    return 0


if __name__ == "__main__":
    sys.exit(main())

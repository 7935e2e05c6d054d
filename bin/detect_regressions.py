#!/usr/bin/env python3
"""
Detect Performance Regressions

Lists the regression alerts a run raised against the previous data point of
each library's timeline. With ``--fail-on`` the exit status is 1 when an
alert at or above that severity exists, for use as a CI gate.

Usage:
    python bin/detect_regressions.py
    python bin/detect_regressions.py --run 2025-01-15_10-30-00 --fail-on warning
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import asyncio
import json
from dataclasses import asdict
from typing import List

from ormbench import StorageManager
from ormbench.config import Settings
from ormbench.console import ConsoleReporter, setup_logging
from ormbench.history import RegressionAlert, Severity


def build_parser() -> argparse.ArgumentParser:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Detect performance regressions in a benchmark run",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--results-dir", default=settings.results_dir, help="Results store root")
    parser.add_argument("--run", dest="run_id", help="Run to check (default: latest)")
    parser.add_argument("--fail-on", choices=["critical", "warning", "minor", "never"], default="never",
                        help="Exit with status 1 when an alert of this severity or worse exists")
    parser.add_argument("--json", action="store_true", help="Print alerts as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def should_fail(alerts: List[RegressionAlert], fail_on: str) -> bool:
    if fail_on == "never":
        return False
    limit = Severity(fail_on).rank
    return any(Severity(a.severity).rank <= limit for a in alerts)


def main() -> int:
    args = build_parser().parse_args()
    setup_logging(args.verbose, Settings.from_env().log_level)
    console = ConsoleReporter()

    try:
        alerts = asyncio.run(StorageManager(args.results_dir).detect_regressions(args.run_id))
    except LookupError as e:
        console.error(str(e))
        return 1

    if args.json:
        print(json.dumps([asdict(a) for a in alerts], indent=2))
    elif not alerts:
        console.success("No regressions detected")
    else:
        console.section(f"{len(alerts)} regressions detected")
        console.table(
            ["Severity", "Library", "Scenario", "Metric", "Change", "From run"],
            [[a.severity.upper(), a.library_id, a.scenario_id, a.metric,
              f"+{a.change_percentage:.1f}%", a.from_run] for a in alerts],
        )
    return 1 if should_fail(alerts, args.fail_on) else 0


if __name__ == "__main__":
    sys.exit(main())

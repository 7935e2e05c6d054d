#!/usr/bin/env python3
"""
Clean Up Benchmark Storage

Usage:
    python bin/cleanup_storage.py older-than 30 --dry-run
    python bin/cleanup_storage.py keep-latest 10 --archive
    python bin/cleanup_storage.py stats
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import asyncio

from ormbench import CleanupOptions, StorageManager, StorageStats
from ormbench.config import Settings
from ormbench.console import ConsoleReporter, setup_logging


def build_parser() -> argparse.ArgumentParser:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Delete old benchmark runs or show storage statistics",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--results-dir", default=settings.results_dir, help="Results store root")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    older = sub.add_parser("older-than", help="Delete runs older than N days")
    older.add_argument("days", type=int)
    keep = sub.add_parser("keep-latest", help="Keep only the newest N runs")
    keep.add_argument("count", type=int)
    for p in (older, keep):
        p.add_argument("--dry-run", action="store_true", help="Only list what would be deleted")
        p.add_argument("--archive", action="store_true", help="Zip each run into archive/ before deleting")
    sub.add_parser("stats", help="Show storage statistics")
    return parser


def _format_bytes(size: float) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def print_stats(console: ConsoleReporter, stats: StorageStats) -> None:
    console.section("Storage Statistics")
    console.info(f"Total runs:    {stats.total_runs}")
    console.info(f"Total results: {stats.total_results}")
    console.info(f"Oldest run:    {stats.oldest_run or '-'}")
    console.info(f"Newest run:    {stats.newest_run or '-'}")
    if stats.runs_by_status:
        console.info("By status:     " + ", ".join(f"{s['status']}={s['count']}" for s in stats.runs_by_status))
    print()
    console.table(
        ["Area", "Size"],
        [[area["area"], _format_bytes(area["bytes"])] for area in stats.disk_usage]
        + [["total", _format_bytes(stats.total_bytes)]],
    )


async def run_command(args: argparse.Namespace, console: ConsoleReporter) -> int:
    manager = StorageManager(args.results_dir)
    if args.command == "stats":
        print_stats(console, await manager.get_statistics())
        return 0

    options = CleanupOptions(
        older_than_days=args.days if args.command == "older-than" else None,
        keep_latest=args.count if args.command == "keep-latest" else None,
        dry_run=args.dry_run,
        archive_before_delete=args.archive,
    )
    affected = await manager.cleanup(options)
    if not affected:
        console.success("Nothing to delete")
    for run_id in affected:
        console.step(f"{'would delete' if args.dry_run else 'deleted'} {run_id}")
    return 0


def main() -> int:
    args = build_parser().parse_args()
    setup_logging(args.verbose, Settings.from_env().log_level)
    console = ConsoleReporter()
    try:
        return asyncio.run(run_command(args, console))
    except ValueError as e:
        console.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())

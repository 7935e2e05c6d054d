#!/usr/bin/env python3
"""
Validate Benchmark Configuration

Checks a YAML benchmark configuration before anything is run.

Usage:
    python bin/validate_config.py benchmark.yaml
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse

import yaml

from ormbench.config import load_config
from ormbench.console import ConsoleReporter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate a benchmark configuration file",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("config", type=Path, help="YAML configuration file")
    parser.add_argument("--strict", action="store_true", help="Treat warnings as errors")
    return parser


def main() -> int:
    args = build_parser().parse_args()
    console = ConsoleReporter()

    try:
        config = load_config(args.config)
    except (OSError, yaml.YAMLError) as e:
        console.error(f"Cannot read {args.config}: {e}")
        return 1

    result = config.validate()
    console.section(f"Configuration: {args.config}")
    console.info(f"Libraries: {len(config.enabled_libraries)}/{len(config.libraries)} enabled")
    console.info(f"Scenarios: {len(config.enabled_scenarios)}/{len(config.scenarios)} enabled")
    for warning in result.warnings:
        console.warning(warning)
    for error in result.errors:
        console.error(error)

    if not result.valid or (args.strict and result.warnings):
        return 1
    console.success("Configuration is valid")
    return 0


if __name__ == "__main__":
    sys.exit(main())

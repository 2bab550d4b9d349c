#!/usr/bin/env python3
"""Fetch a batch of service desk issues and print the analysis report."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR / "config" / "config.yaml"
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from desk_insights.workflow import AnalyzeOptions, run_analysis  # type: ignore  # pylint: disable=import-error


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarise status, priority and resolution metrics for service desk issues."
    )
    parser.add_argument(
        "--config",
        help=(
            "Path to configuration YAML file. Defaults to "
            f"{DEFAULT_CONFIG_PATH} or config/config.yaml if present."
        ),
    )
    parser.add_argument(
        "--input",
        help="Analyse issues from a saved JSON file instead of calling the service desk API.",
    )
    parser.add_argument("--datapoints", type=int, help="Number of issues to request from the API.")
    parser.add_argument(
        "--output-directory",
        help="Directory where the report JSON should be written. Overrides reporting.output_directory.",
    )
    parser.add_argument("--report-name", help="Filename to use for the report JSON.")
    parser.add_argument("--no-write", action="store_true", help="Print the summary without writing a report file.")
    parser.add_argument(
        "--no-console",
        action="store_true",
        help="Disable console logging; the report summary is still printed.",
    )
    parser.add_argument(
        "--simple-console",
        action="store_true",
        help="Use a simple console log format instead of Rich formatting.",
    )
    parser.add_argument(
        "--console-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the console logging level.",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    options = AnalyzeOptions(
        config_path=args.config,
        input_path=args.input,
        output_directory=args.output_directory,
        report_name=args.report_name,
        datapoints=args.datapoints,
        disable_console=args.no_console,
        simple_console=args.simple_console,
        console_level=args.console_level,
        write_report=not args.no_write,
    )
    run_analysis(options, base_dir=BASE_DIR)


if __name__ == "__main__":
    main()

"""Higher level workflows used by the command line entry points."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .analytics import IssueReport, analyze
from .config import load_config, resolve_path
from .errors import DeskInsightsError, InvalidInputError
from .logging_setup import configure_logging
from .service_desk_client import ServiceDeskClient, create_client

LOGGER = logging.getLogger(__name__)

DEFAULT_ANALYSIS_DATAPOINTS = 500
DEFAULT_LISTING_DATAPOINTS = 100


@dataclass
class AnalyzeOptions:
    config_path: Optional[str]
    input_path: Optional[str] = None
    output_directory: Optional[str] = None
    report_name: Optional[str] = None
    datapoints: Optional[int] = None
    disable_console: bool = False
    simple_console: bool = False
    console_level: Optional[str] = None
    write_report: bool = True


def _prepare_logging(config: dict, options: AnalyzeOptions, *, base_dir: Path) -> None:
    logging_config = config.setdefault("logging", {})
    console_cfg = logging_config.setdefault("console", {})
    if options.disable_console:
        console_cfg["enabled"] = False
    if options.simple_console:
        console_cfg["rich_format"] = False
    if options.console_level:
        console_cfg["level"] = options.console_level
    configure_logging(config, base_dir=base_dir)


def analysis_datapoints(config: Dict[str, Any]) -> int:
    return int(config.get("service_desk", {}).get("analysis_datapoints", DEFAULT_ANALYSIS_DATAPOINTS))


def listing_datapoints(config: Dict[str, Any]) -> int:
    return int(config.get("service_desk", {}).get("listing_datapoints", DEFAULT_LISTING_DATAPOINTS))


def load_records_file(path: Path) -> List[Dict[str, Any]]:
    """Read issues saved from the API, either as a bare list or a ``results`` wrapper."""

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise InvalidInputError(f"Unable to read issues from {path}: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("results")
    if data is None:
        return []
    if not isinstance(data, list):
        raise InvalidInputError(f"{path} does not contain a list of issues")
    return data


def fetch_records(client: ServiceDeskClient, datapoints: int) -> List[Dict[str, Any]]:
    LOGGER.info("Requesting %s issues from the service desk API", datapoints)
    return client.fetch_issues(datapoints)


def _format_percent(value: float) -> str:
    return f"{value:.1f}%"


def format_report_summary(report: IssueReport) -> str:
    """Render the headline figures of a report as a plain text table."""

    status = report.status_breakdown
    priority = report.priority_breakdown
    timeliness = report.resolution_timeliness
    high = report.high_priority_analysis
    longest = report.longest_to_solve_high_priority
    insights = report.additional_insights

    rows: List[Tuple[str, str]] = [("Total issues", str(insights.total_issues))]
    for key, count in status.counts:
        rows.append((f"Status {key}", f"{count} ({_format_percent(status.percent(key))})"))
    for key, count in priority.counts:
        rows.append((f"Priority {key}", f"{count} ({_format_percent(priority.percent(key))})"))
    rows.extend(
        [
            ("Resolved on time", f"{timeliness.on_time} ({_format_percent(timeliness.on_time_percent)})"),
            ("Resolved overdue", f"{timeliness.overdue} ({_format_percent(timeliness.overdue_percent)})"),
            (
                "Currently overdue",
                f"{timeliness.currently_overdue} ({_format_percent(timeliness.currently_overdue_percent)})",
            ),
            ("Resolved high priority", str(high.total_closed_high_priority)),
            (
                "Avg high priority close",
                f"{high.average_time_to_close_hours:.2f}h / {high.average_time_to_close_days:.2f}d",
            ),
            (
                "Longest high priority",
                f"#{longest.issue_id} {longest.time_to_solve_hours:.2f}h ({longest.satisfaction_rating_score})",
            ),
        ]
    )

    label_width = max(len(label) for label, _ in rows + [("Metric", "")])
    value_width = max(len(value) for _, value in rows + [("", "Value")])
    border = f"+{'-' * (label_width + 2)}+{'-' * (value_width + 2)}+"
    header = f"| {'Metric'.ljust(label_width)} | {'Value'.rjust(value_width)} |"

    lines = [border, header, border]
    for label, value in rows:
        lines.append(f"| {label.ljust(label_width)} | {value.rjust(value_width)} |")
    lines.append(border)

    if insights.issues_by_type:
        by_type = ", ".join(f"{name or '(none)'}={count}" for name, count in sorted(insights.issues_by_type.items()))
        lines.extend(["", f"Issues by type: {by_type}"])
    if insights.average_satisfaction_by_priority:
        ratings = ", ".join(
            f"{name or '(none)'}={score}"
            for name, score in sorted(insights.average_satisfaction_by_priority.items())
        )
        lines.append(f"Most common rating by priority: {ratings}")
    return "\n".join(lines)


def save_report_json(report: IssueReport, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(report.as_dict(), indent=2), encoding="utf-8")
    LOGGER.info("Wrote issue report to %s", output_path)
    return output_path


def run_analysis(
    options: AnalyzeOptions,
    *,
    base_dir: Optional[Path] = None,
    client: Optional[ServiceDeskClient] = None,
    now: Optional[datetime] = None,
) -> IssueReport:
    """Fetch (or load) a batch of issues, analyse it, print and persist the report."""

    base_dir = base_dir or Path.cwd()
    config = load_config(options.config_path)
    _prepare_logging(config, options, base_dir=base_dir)

    try:
        if options.input_path:
            input_path = resolve_path(options.input_path, base=base_dir)
            LOGGER.info("Loading issues from %s", input_path)
            records = load_records_file(input_path)
        else:
            client = client or create_client(config)
            records = fetch_records(client, options.datapoints or analysis_datapoints(config))
        report = analyze(records, now=now)
    except DeskInsightsError as exc:
        LOGGER.error("Issue analysis failed: %s", exc)
        raise SystemExit(1) from exc

    print(format_report_summary(report))

    if options.write_report:
        reporting_cfg = config.get("reporting", {})
        output_directory = resolve_path(
            options.output_directory or reporting_cfg.get("output_directory", "reports"), base=base_dir
        )
        report_name = options.report_name or reporting_cfg.get("report_filename", "issue_analysis.json")
        report_path = save_report_json(report, output_directory / report_name)
        print(f"Report written to {report_path}")
    return report

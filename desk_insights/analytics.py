"""Status, priority and resolution metrics for batches of service desk issues."""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from dateutil import parser as date_parser

from .errors import EmptyDatasetError

LOGGER = logging.getLogger(__name__)

STATUSES: Tuple[str, ...] = ("open", "closed", "pending", "hold", "solved", "new")
RESOLVED_STATUSES = frozenset({"closed", "solved"})
UNRESOLVED_STATUSES = frozenset({"open", "pending", "hold", "new"})
PRIORITIES: Tuple[str, ...] = ("high", "normal", "low")
HIGH_PRIORITY = "high"
NO_RATING = "N/A"
MS_PER_HOUR = 1000 * 60 * 60
MS_PER_DAY = MS_PER_HOUR * 24


def normalise_category(value: Any) -> str:
    """Case-fold a categorical field (status, priority, type) for comparison."""
    if value is None:
        return ""
    return str(value).lower()


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    try:
        dt = value if isinstance(value, datetime) else date_parser.parse(str(value))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, TypeError, OverflowError):
        LOGGER.debug("Unable to parse datetime value %r", value)
        return None


def _milliseconds_between(start: datetime, end: datetime) -> int:
    return (end - start) // timedelta(milliseconds=1)


def _percent(count: int, total: int) -> float:
    return (count / total) * 100 if total > 0 else 0


def round_half_up(value: float, digits: int = 2) -> float:
    """Round to ``digits`` places with halves going up, so 0.125 -> 0.13 and -0.125 -> -0.12."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class IssueRecord:
    """Normalised view of one issue returned by the service desk API."""

    id: Any
    status: str
    priority: str
    type: str
    created: Optional[datetime]
    updated: Optional[datetime]
    due: Optional[datetime]
    satisfaction_score: Optional[str] = None
    organization_id: Optional[str] = None
    subject: str = ""
    assignee_id: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "IssueRecord":
        raw_id = payload.get("id")
        try:
            issue_id: Any = int(raw_id)
        except (TypeError, ValueError):
            issue_id = raw_id
        rating = payload.get("satisfaction_rating")
        score = rating.get("score") if isinstance(rating, Mapping) else None
        return cls(
            id=issue_id,
            status=normalise_category(payload.get("status")),
            priority=normalise_category(payload.get("priority")),
            type=normalise_category(payload.get("type")),
            created=_parse_datetime(payload.get("created")),
            updated=_parse_datetime(payload.get("updated")),
            due=_parse_datetime(payload.get("due")),
            satisfaction_score=str(score) if score else None,
            organization_id=payload.get("organization_id"),
            subject=str(payload.get("subject") or ""),
            assignee_id=payload.get("assignee_id"),
        )

    @property
    def is_resolved(self) -> bool:
        return self.status in RESOLVED_STATUSES

    @property
    def is_unresolved(self) -> bool:
        return self.status in UNRESOLVED_STATUSES


@dataclass(frozen=True)
class CategoryBreakdown:
    """Counts for a fixed set of categories plus their share of all issues."""

    counts: Tuple[Tuple[str, int], ...]
    total: int

    def count(self, key: str) -> int:
        return dict(self.counts).get(key, 0)

    def percent(self, key: str) -> float:
        return _percent(self.count(key), self.total)

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {key: count for key, count in self.counts}
        for key, count in self.counts:
            result[f"{key}Percent"] = _percent(count, self.total)
        return result


@dataclass(frozen=True)
class ResolutionTimeliness:
    on_time: int
    overdue: int
    currently_overdue: int
    total_issues: int

    @property
    def on_time_percent(self) -> float:
        return _percent(self.on_time, self.on_time + self.overdue)

    @property
    def overdue_percent(self) -> float:
        return _percent(self.overdue, self.on_time + self.overdue)

    @property
    def currently_overdue_percent(self) -> float:
        return _percent(self.currently_overdue, self.total_issues)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "onTime": self.on_time,
            "overdue": self.overdue,
            "currentlyOverdue": self.currently_overdue,
            "onTimePercent": self.on_time_percent,
            "overduePercent": self.overdue_percent,
            "currentlyOverduePercent": self.currently_overdue_percent,
        }


@dataclass(frozen=True)
class HighPriorityAnalysis:
    average_time_to_close_hours: float
    average_time_to_close_days: float
    total_closed_high_priority: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "averageTimeToCloseHours": self.average_time_to_close_hours,
            "averageTimeToCloseDays": self.average_time_to_close_days,
            "totalClosedHighPriority": self.total_closed_high_priority,
        }


@dataclass(frozen=True)
class LongestToSolve:
    issue_id: Any
    time_to_solve_hours: float
    time_to_solve_days: float
    satisfaction_rating_score: str

    @classmethod
    def sentinel(cls) -> "LongestToSolve":
        """Result used when no high priority issue has been resolved."""
        return cls(issue_id=0, time_to_solve_hours=0, time_to_solve_days=0, satisfaction_rating_score=NO_RATING)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "issueId": self.issue_id,
            "timeToSolveHours": self.time_to_solve_hours,
            "timeToSolveDays": self.time_to_solve_days,
            "satisfactionRatingScore": self.satisfaction_rating_score,
        }


@dataclass(frozen=True)
class AdditionalInsights:
    total_issues: int
    issues_by_type: Mapping[str, int]
    average_satisfaction_by_priority: Mapping[str, str]
    issues_closed_count: int
    issues_open_count: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalIssues": self.total_issues,
            "issuesByType": dict(self.issues_by_type),
            "averageSatisfactionByPriority": dict(self.average_satisfaction_by_priority),
            "issuesClosedCount": self.issues_closed_count,
            "issuesOpenCount": self.issues_open_count,
        }


@dataclass(frozen=True)
class IssueReport:
    status_breakdown: CategoryBreakdown
    priority_breakdown: CategoryBreakdown
    resolution_timeliness: ResolutionTimeliness
    high_priority_analysis: HighPriorityAnalysis
    longest_to_solve_high_priority: LongestToSolve
    additional_insights: AdditionalInsights
    evaluated_at: datetime

    def as_dict(self) -> Dict[str, Any]:
        """Return the JSON body served by ``/api/analyze``."""
        return {
            "statusBreakdown": self.status_breakdown.as_dict(),
            "priorityBreakdown": self.priority_breakdown.as_dict(),
            "resolutionTimeliness": self.resolution_timeliness.as_dict(),
            "highPriorityAnalysis": self.high_priority_analysis.as_dict(),
            "longestToSolveHighPriority": self.longest_to_solve_high_priority.as_dict(),
            "additionalInsights": self.additional_insights.as_dict(),
        }


IssueInput = Union[IssueRecord, Mapping[str, Any]]


class IssueAnalyticsEngine:
    """Aggregate one batch of issues into an :class:`IssueReport`.

    Every pass reads the same records and owns its own counters, so an engine
    instance is cheap to create per request and never shares state with
    another invocation. ``now`` is sampled once and used for every
    currently-overdue comparison.
    """

    def __init__(self, records: Optional[Sequence[IssueInput]], *, now: Optional[datetime] = None) -> None:
        if not records:
            raise EmptyDatasetError()
        self.records: List[IssueRecord] = [
            record if isinstance(record, IssueRecord) else IssueRecord.from_api(record)
            for record in records
        ]
        self.total_issues = len(self.records)
        self.now = _parse_datetime(now) if now is not None else datetime.now(timezone.utc)

    # -- Categorical counts --------------------------------------------------
    def _tally(self, values: Iterable[str], categories: Sequence[str]) -> CategoryBreakdown:
        counts: Counter[str] = Counter(value for value in values if value in categories)
        return CategoryBreakdown(
            counts=tuple((category, counts[category]) for category in categories),
            total=self.total_issues,
        )

    def status_breakdown(self) -> CategoryBreakdown:
        return self._tally((record.status for record in self.records), STATUSES)

    def priority_breakdown(self) -> CategoryBreakdown:
        return self._tally((record.priority for record in self.records), PRIORITIES)

    # -- Timeliness ----------------------------------------------------------
    def resolution_timeliness(self) -> ResolutionTimeliness:
        on_time = 0
        overdue = 0
        currently_overdue = 0
        skipped = 0
        for record in self.records:
            if record.is_resolved:
                if record.updated is None or record.due is None:
                    skipped += 1
                    continue
                if record.updated <= record.due:
                    on_time += 1
                else:
                    overdue += 1
            elif record.is_unresolved:
                if record.due is None:
                    skipped += 1
                    continue
                if self.now > record.due:
                    currently_overdue += 1
        if skipped:
            LOGGER.warning("Skipped %s issues with missing or invalid dates in timeliness checks", skipped)
        return ResolutionTimeliness(
            on_time=on_time,
            overdue=overdue,
            currently_overdue=currently_overdue,
            total_issues=self.total_issues,
        )

    # -- High priority durations -------------------------------------------
    def resolved_high_priority(self) -> List[IssueRecord]:
        return [record for record in self.records if record.priority == HIGH_PRIORITY and record.is_resolved]

    def high_priority_durations(
        self, resolved: Optional[Sequence[IssueRecord]] = None
    ) -> List[Tuple[IssueRecord, int]]:
        """Return ``(record, milliseconds)`` for each resolved high priority issue with valid dates."""
        if resolved is None:
            resolved = self.resolved_high_priority()
        durations: List[Tuple[IssueRecord, int]] = []
        for record in resolved:
            if record.created is None or record.updated is None:
                continue
            durations.append((record, _milliseconds_between(record.created, record.updated)))
        skipped = len(resolved) - len(durations)
        if skipped:
            LOGGER.warning("Excluded %s high priority issues with invalid dates from durations", skipped)
        return durations

    def high_priority_analysis(
        self,
        resolved: Optional[Sequence[IssueRecord]] = None,
        durations: Optional[List[Tuple[IssueRecord, int]]] = None,
    ) -> HighPriorityAnalysis:
        if resolved is None:
            resolved = self.resolved_high_priority()
        if durations is None:
            durations = self.high_priority_durations(resolved)
        if not durations:
            return HighPriorityAnalysis(0, 0, len(resolved))
        average_ms = sum(ms for _, ms in durations) / len(durations)
        average_hours = average_ms / MS_PER_HOUR
        return HighPriorityAnalysis(
            average_time_to_close_hours=round_half_up(average_hours),
            average_time_to_close_days=round_half_up(average_hours / 24),
            total_closed_high_priority=len(resolved),
        )

    def longest_to_solve(self, durations: Optional[List[Tuple[IssueRecord, int]]] = None) -> LongestToSolve:
        if durations is None:
            durations = self.high_priority_durations()
        longest: Optional[Tuple[IssueRecord, int]] = None
        for entry in durations:
            # strict comparison keeps the first issue on ties
            if longest is None or entry[1] > longest[1]:
                longest = entry
        if longest is None:
            return LongestToSolve.sentinel()
        record, elapsed_ms = longest
        return LongestToSolve(
            issue_id=record.id,
            time_to_solve_hours=round_half_up(elapsed_ms / MS_PER_HOUR),
            time_to_solve_days=round_half_up(elapsed_ms / MS_PER_DAY),
            satisfaction_rating_score=record.satisfaction_score or NO_RATING,
        )

    # -- Additional insights -------------------------------------------------
    def issues_by_type(self) -> Dict[str, int]:
        return dict(Counter(record.type for record in self.records))

    def satisfaction_by_priority(self) -> Dict[str, str]:
        """Most common satisfaction score for every priority seen in the batch."""
        scores_by_priority: Dict[str, List[str]] = {}
        for record in self.records:
            scores = scores_by_priority.setdefault(record.priority, [])
            if record.satisfaction_score:
                scores.append(record.satisfaction_score)
        return {
            priority: modal_score(scores)
            for priority, scores in scores_by_priority.items()
            if scores
        }

    def additional_insights(self, status: Optional[CategoryBreakdown] = None) -> AdditionalInsights:
        status = status or self.status_breakdown()
        return AdditionalInsights(
            total_issues=self.total_issues,
            issues_by_type=MappingProxyType(self.issues_by_type()),
            average_satisfaction_by_priority=MappingProxyType(self.satisfaction_by_priority()),
            issues_closed_count=status.count("closed"),
            issues_open_count=status.count("open"),
        )

    def build(self) -> IssueReport:
        LOGGER.info("Analysing %s issues", self.total_issues)
        status = self.status_breakdown()
        resolved = self.resolved_high_priority()
        durations = self.high_priority_durations(resolved)
        report = IssueReport(
            status_breakdown=status,
            priority_breakdown=self.priority_breakdown(),
            resolution_timeliness=self.resolution_timeliness(),
            high_priority_analysis=self.high_priority_analysis(resolved, durations),
            longest_to_solve_high_priority=self.longest_to_solve(durations),
            additional_insights=self.additional_insights(status),
            evaluated_at=self.now,
        )
        LOGGER.debug(
            "Report ready: %s resolved high priority issues, %s currently overdue",
            report.high_priority_analysis.total_closed_high_priority,
            report.resolution_timeliness.currently_overdue,
        )
        return report


def modal_score(scores: Sequence[str]) -> str:
    """Return the most frequent score.

    Scores are compared in first-seen order and a later score replaces the
    current pick unless the pick is strictly more frequent, so on a tie the
    score that first appeared last wins.
    """
    counts: Counter[str] = Counter(scores)
    modal: Optional[str] = None
    for score, count in counts.items():
        if modal is None or not counts[modal] > count:
            modal = score
    if modal is None:
        raise ValueError("modal_score() requires at least one score")
    return modal


def analyze(records: Optional[Sequence[IssueInput]], *, now: Optional[datetime] = None) -> IssueReport:
    """Build the issue report for ``records``.

    Raises :class:`EmptyDatasetError` when ``records`` is missing or empty.
    """
    return IssueAnalyticsEngine(records, now=now).build()

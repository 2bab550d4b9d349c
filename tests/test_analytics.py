from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import make_issue
from desk_insights.analytics import (
    IssueAnalyticsEngine,
    IssueRecord,
    LongestToSolve,
    analyze,
    modal_score,
    normalise_category,
    round_half_up,
)
from desk_insights.errors import EmptyDatasetError

NOW = datetime(2024, 12, 6, tzinfo=timezone.utc)


def _resolved_high(issue_id: int, hours: int, *, score: str | None = None, status: str = "closed"):
    return make_issue(
        issue_id=issue_id,
        status=status,
        priority="high",
        created="2024-12-01T00:00:00Z",
        updated=f"2024-12-01T{hours:02d}:00:00Z",
        due="2024-12-02T00:00:00Z",
        score=score,
    )


@pytest.mark.parametrize("records", [None, []])
def test_empty_input_raises(records) -> None:
    with pytest.raises(EmptyDatasetError):
        analyze(records, now=NOW)


def test_single_open_overdue_issue() -> None:
    issue = make_issue(issue_id=7, status="open", priority="high", due="2020-01-01T00:00:00Z")

    report = analyze([issue], now=NOW).as_dict()

    assert report["statusBreakdown"]["open"] == 1
    assert report["priorityBreakdown"]["high"] == 1
    assert report["resolutionTimeliness"]["currentlyOverdue"] == 1
    assert report["resolutionTimeliness"]["currentlyOverduePercent"] == 100
    assert report["resolutionTimeliness"]["onTimePercent"] == 0
    assert report["resolutionTimeliness"]["overduePercent"] == 0


def test_high_priority_average_and_longest() -> None:
    records = [_resolved_high(1, 2, score="good"), _resolved_high(2, 10, score="Bad", status="Solved")]

    report = analyze(records, now=NOW).as_dict()

    assert report["highPriorityAnalysis"] == {
        "averageTimeToCloseHours": 6.0,
        "averageTimeToCloseDays": 0.25,
        "totalClosedHighPriority": 2,
    }
    assert report["longestToSolveHighPriority"] == {
        "issueId": 2,
        "timeToSolveHours": 10.0,
        "timeToSolveDays": 0.42,
        "satisfactionRatingScore": "Bad",
    }


def test_sample_fixture_report(sample_issues) -> None:
    report = analyze(sample_issues, now=NOW).as_dict()

    assert report["statusBreakdown"] == {
        "open": 1,
        "closed": 2,
        "pending": 1,
        "hold": 0,
        "solved": 0,
        "new": 0,
        "openPercent": 25.0,
        "closedPercent": 50.0,
        "pendingPercent": 25.0,
        "holdPercent": 0.0,
        "solvedPercent": 0.0,
        "newPercent": 0.0,
    }
    assert report["priorityBreakdown"]["highPercent"] == 50.0
    assert report["resolutionTimeliness"] == {
        "onTime": 1,
        "overdue": 1,
        "currentlyOverdue": 2,
        "onTimePercent": 50.0,
        "overduePercent": 50.0,
        "currentlyOverduePercent": 50.0,
    }
    assert report["highPriorityAnalysis"] == {
        "averageTimeToCloseHours": 4.0,
        "averageTimeToCloseDays": 0.17,
        "totalClosedHighPriority": 1,
    }
    assert report["longestToSolveHighPriority"]["issueId"] == 3
    assert report["longestToSolveHighPriority"]["satisfactionRatingScore"] == "bad"

    insights = report["additionalInsights"]
    assert insights["totalIssues"] == 4
    assert insights["issuesByType"] == {"problem": 2, "question": 1, "task": 1}
    assert insights["issuesClosedCount"] == 2
    assert insights["issuesOpenCount"] == 1
    assert insights["averageSatisfactionByPriority"] == {"high": "bad", "normal": "excellent", "low": "good"}


def test_sentinel_when_no_resolved_high_priority(sample_issues) -> None:
    records = [issue for issue in sample_issues if issue["id"] != 3]

    report = analyze(records, now=NOW)

    assert report.longest_to_solve_high_priority == LongestToSolve.sentinel()
    assert report.as_dict()["longestToSolveHighPriority"] == {
        "issueId": 0,
        "timeToSolveHours": 0,
        "timeToSolveDays": 0,
        "satisfactionRatingScore": "N/A",
    }
    assert report.high_priority_analysis.average_time_to_close_hours == 0
    assert report.high_priority_analysis.total_closed_high_priority == 0


def test_longest_to_solve_ties_keep_first() -> None:
    records = [_resolved_high(11, 5), _resolved_high(12, 5, score="great")]

    longest = analyze(records, now=NOW).longest_to_solve_high_priority

    assert longest.issue_id == 11
    assert longest.satisfaction_rating_score == "N/A"


def test_categories_are_case_insensitive() -> None:
    records = [
        make_issue(issue_id=1, status="OPEN", priority="High", issue_type="Problem"),
        make_issue(issue_id=2, status="Closed", priority="LOW", issue_type="PROBLEM"),
    ]

    report = analyze(records, now=NOW).as_dict()

    assert report["statusBreakdown"]["open"] == 1
    assert report["statusBreakdown"]["closed"] == 1
    assert report["priorityBreakdown"]["high"] == 1
    assert report["priorityBreakdown"]["low"] == 1
    assert report["additionalInsights"]["issuesByType"] == {"problem": 2}


def test_unrecognised_status_counts_only_toward_total() -> None:
    records = [
        make_issue(issue_id=1, status="escalated", due="2020-01-01T00:00:00Z"),
        make_issue(issue_id=2, status="open", due="2020-01-01T00:00:00Z"),
        make_issue(issue_id=3, status="closed"),
    ]

    report = analyze(records, now=NOW)
    status = report.as_dict()["statusBreakdown"]

    counted = sum(status[key] for key in ("open", "closed", "pending", "hold", "solved", "new"))
    assert counted == 2
    assert report.additional_insights.total_issues == 3
    assert status["openPercent"] == (1 / 3) * 100
    assert report.resolution_timeliness.currently_overdue == 1
    assert report.resolution_timeliness.on_time + report.resolution_timeliness.overdue == 1


def test_status_counts_equal_total_when_all_recognised(sample_issues) -> None:
    status = analyze(sample_issues, now=NOW).status_breakdown

    assert sum(count for _, count in status.counts) == 4


def test_timeliness_percentages_sum_to_hundred() -> None:
    records = [
        make_issue(issue_id=1, status="closed", updated="2024-12-05T10:00:00Z", due="2024-12-05T10:00:00Z"),
        make_issue(issue_id=2, status="solved", updated="2024-12-05T13:00:00Z", due="2024-12-05T12:00:00Z"),
        make_issue(issue_id=3, status="solved", updated="2024-12-05T09:00:00Z", due="2024-12-05T12:00:00Z"),
    ]

    timeliness = analyze(records, now=NOW).resolution_timeliness

    assert timeliness.on_time == 2
    assert timeliness.overdue == 1
    assert timeliness.on_time_percent + timeliness.overdue_percent == pytest.approx(100)


def test_future_due_date_is_not_currently_overdue() -> None:
    issue = make_issue(issue_id=1, status="hold", due="2999-01-01T00:00:00Z")

    assert analyze([issue], now=NOW).resolution_timeliness.currently_overdue == 0


def test_malformed_timestamps_are_excluded_from_time_metrics() -> None:
    records = [
        make_issue(issue_id=1, status="closed", priority="high", created="garbage"),
        make_issue(issue_id=2, status="solved", updated="", due="2024-12-05T12:00:00Z"),
        make_issue(issue_id=3, status="new", due="??"),
    ]

    report = analyze(records, now=NOW)

    assert report.high_priority_analysis.total_closed_high_priority == 1
    assert report.longest_to_solve_high_priority == LongestToSolve.sentinel()
    assert report.resolution_timeliness.on_time == 1
    assert report.resolution_timeliness.overdue == 0
    assert report.resolution_timeliness.currently_overdue == 0
    assert report.status_breakdown.count("closed") == 1
    assert report.high_priority_analysis.average_time_to_close_hours == 0


def test_out_of_range_timestamp_is_excluded_not_fatal() -> None:
    records = [
        make_issue(issue_id=1, status="closed", priority="high", created="0001-01-01T00:00:00+05:00"),
        make_issue(issue_id=2, status="open", due="0001-01-01T00:00:00+05:00"),
    ]

    report = analyze(records, now=NOW)

    assert IssueRecord.from_api(records[0]).created is None
    assert report.longest_to_solve_high_priority == LongestToSolve.sentinel()
    assert report.resolution_timeliness.currently_overdue == 0
    assert report.additional_insights.total_issues == 2


def test_invalid_dates_still_count_as_resolved_high_priority() -> None:
    records = [
        make_issue(issue_id=1, status="closed", priority="high", created="garbage"),
        _resolved_high(2, 4, score="good"),
    ]

    analysis = analyze(records, now=NOW).high_priority_analysis

    assert analysis.total_closed_high_priority == 2
    assert analysis.average_time_to_close_hours == 4.0


def test_negative_durations_pass_through() -> None:
    issue = make_issue(
        issue_id=9,
        status="closed",
        priority="high",
        created="2024-12-05T12:00:00Z",
        updated="2024-12-05T10:00:00Z",
    )

    report = analyze([issue], now=NOW)

    assert report.high_priority_analysis.average_time_to_close_hours == -2.0
    assert report.longest_to_solve_high_priority.time_to_solve_hours == -2.0


def test_naive_timestamps_are_treated_as_utc() -> None:
    record = IssueRecord.from_api(make_issue(issue_id=1, created="2024-12-05 09:00:00"))

    assert record.created == datetime(2024, 12, 5, 9, tzinfo=timezone.utc)


def test_satisfaction_by_priority_uses_every_priority_seen() -> None:
    records = [
        make_issue(issue_id=1, priority="Urgent", score="good"),
        make_issue(issue_id=2, priority="urgent", score="good"),
        make_issue(issue_id=3, priority="urgent", score="bad"),
        make_issue(issue_id=4, priority="low"),
        make_issue(issue_id=5, priority="normal", score=""),
    ]

    insights = analyze(records, now=NOW).additional_insights

    assert dict(insights.average_satisfaction_by_priority) == {"urgent": "good"}


def test_missing_satisfaction_rating_object() -> None:
    issue = make_issue(issue_id=1)
    issue["satisfaction_rating"] = None

    assert IssueRecord.from_api(issue).satisfaction_score is None


@pytest.mark.parametrize(
    ("scores", "expected"),
    [
        (["good"], "good"),
        (["good", "bad", "good"], "good"),
        (["good", "bad"], "bad"),
        (["a", "b", "c", "b", "c"], "c"),
        (["x", "y", "y", "x", "z"], "y"),
    ],
)
def test_modal_score(scores, expected) -> None:
    assert modal_score(scores) == expected


def test_report_is_repeatable(sample_issues) -> None:
    first = analyze(sample_issues, now=NOW).as_dict()
    second = analyze(sample_issues, now=NOW).as_dict()

    assert first == second


def test_engine_accepts_issue_records(sample_issues) -> None:
    records = [IssueRecord.from_api(issue) for issue in sample_issues]

    engine = IssueAnalyticsEngine(records, now=NOW)

    assert engine.total_issues == 4
    assert engine.build().as_dict() == analyze(sample_issues, now=NOW).as_dict()


def test_report_sections_are_read_only(sample_issues) -> None:
    report = analyze(sample_issues, now=NOW)

    with pytest.raises(AttributeError):
        report.additional_insights.total_issues = 10  # type: ignore[misc]
    with pytest.raises(TypeError):
        report.additional_insights.issues_by_type["problem"] = 10  # type: ignore[index]


def test_round_half_up() -> None:
    assert round_half_up(0.125) == 0.13
    assert round_half_up(-0.125) == -0.12
    assert round_half_up(2 / 3) == 0.67


def test_normalise_category() -> None:
    assert normalise_category(None) == ""
    assert normalise_category("PeNdInG") == "pending"

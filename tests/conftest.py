from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def make_issue(
    *,
    issue_id: int,
    status: str = "open",
    priority: str = "normal",
    issue_type: str = "problem",
    created: str = "2024-12-05T09:00:00.000Z",
    updated: str = "2024-12-05T10:00:00.000Z",
    due: str = "2024-12-05T12:00:00.000Z",
    score: Optional[str] = None,
    organization_id: str = "Acme Corp",
) -> Dict[str, Any]:
    issue: Dict[str, Any] = {
        "id": issue_id,
        "created": created,
        "updated": updated,
        "due": due,
        "status": status,
        "type": issue_type,
        "priority": priority,
        "assignee_id": "Alice",
        "subject": f"Issue {issue_id}",
        "organization_id": organization_id,
        "via": {"channel": "api", "source": {"from": {"name": "John Doe", "email": "john@example.com"}}},
        "ticket_form_id": "general",
    }
    if score is not None:
        issue["satisfaction_rating"] = {"score": score}
    return issue


@pytest.fixture(name="sample_issues")
def fixture_sample_issues() -> List[Dict[str, Any]]:
    return [
        make_issue(
            issue_id=1,
            status="open",
            priority="high",
            issue_type="problem",
            created="2024-12-05T10:16:58.750Z",
            updated="2024-12-05T14:51:58.750Z",
            due="2024-12-05T15:03:58.750Z",
            score="good",
        ),
        make_issue(
            issue_id=2,
            status="closed",
            priority="normal",
            issue_type="question",
            created="2024-12-05T09:00:00.000Z",
            updated="2024-12-05T10:00:00.000Z",
            due="2024-12-05T11:00:00.000Z",
            score="excellent",
            organization_id="Tech Solutions Inc",
        ),
        make_issue(
            issue_id=3,
            status="closed",
            priority="high",
            issue_type="task",
            created="2024-12-05T08:00:00.000Z",
            updated="2024-12-05T12:00:00.000Z",
            due="2024-12-05T09:00:00.000Z",
            score="bad",
            organization_id="Global Systems",
        ),
        make_issue(
            issue_id=4,
            status="pending",
            priority="low",
            issue_type="problem",
            created="2024-12-05T11:00:00.000Z",
            updated="2024-12-05T11:30:00.000Z",
            due="2024-12-05T20:00:00.000Z",
            score="good",
            organization_id="StartupXYZ",
        ),
    ]

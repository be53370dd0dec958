from datetime import datetime, timezone

from app.models.issue import IssueRecord
from app.services import stats


def _issue(n, **kw):
    data = {
        "id": f"i{n}",
        "title": "Pothole",
        "description": "Something is broken here",
        "category": "Pothole",
        "severity": 3,
        "status": "Open",
        "location": {"lat": 0, "lng": 0},
        "userId": "u1",
        "timestamp": datetime(2024, 3, 10, tzinfo=timezone.utc),
    }
    data.update(kw)
    return IssueRecord.model_validate(data)


def test_breakdowns_have_fixed_keys():
    issues = [_issue(1, status="Resolved", severity=5), _issue(2, severity=1)]
    assert stats.status_breakdown(issues) == {"Open": 1, "In Progress": 0, "Resolved": 1}
    assert stats.severity_distribution(issues) == {"1": 1, "2": 0, "3": 0, "4": 0, "5": 1}
    assert sum(stats.severity_distribution(issues).values()) == len(issues)


def test_empty_collections():
    assert stats.average_severity([]) == 0
    overview = stats.overview_stats([])
    assert overview["total"] == 0
    assert overview["categories"] == {}
    assert overview["severityDistribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}


def test_average_severity_rounds_to_one_decimal():
    issues = [_issue(1, severity=1), _issue(2, severity=2), _issue(3, severity=2)]
    assert stats.average_severity(issues) == 1.7


def test_monthly_trend_spans_six_calendar_months():
    now = datetime(2024, 3, 15, tzinfo=timezone.utc)
    issues = [
        _issue(1, timestamp=datetime(2024, 3, 1, tzinfo=timezone.utc)),
        _issue(2, timestamp=datetime(2024, 2, 29, 23, 59, tzinfo=timezone.utc)),
        _issue(3, timestamp=datetime(2023, 10, 1, tzinfo=timezone.utc)),
        _issue(4, timestamp=datetime(2023, 9, 30, tzinfo=timezone.utc)),
    ]
    trend = stats.monthly_trend(issues, now)
    assert [t["month"] for t in trend] == ["Oct 2023", "Nov 2023", "Dec 2023", "Jan 2024", "Feb 2024", "Mar 2024"]
    assert [t["count"] for t in trend] == [1, 0, 0, 0, 1, 1]


def test_report_rows_cover_each_section():
    rows = stats.report_rows([_issue(1)], [{"uid": "u1"}])
    sections = {r["category"] for r in rows}
    assert sections == {"Overview", "Status", "Category", "Severity"}
    assert {"metric": "Total Issues", "value": 1, "category": "Overview"} in rows

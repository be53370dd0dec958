# app/services/stats.py
"""Full-scan aggregations over issue and user snapshots."""
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from app.models.issue import IssueRecord, IssueStatus

SEVERITY_LEVELS = (1, 2, 3, 4, 5)
TREND_MONTHS = 6


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def status_breakdown(issues: Iterable[IssueRecord]) -> dict[str, int]:
    counts = {s.value: 0 for s in IssueStatus}
    for issue in issues:
        counts[issue.status.value] += 1
    return counts


def category_breakdown(issues: Iterable[IssueRecord]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for issue in issues:
        key = issue.category.value
        counts[key] = counts.get(key, 0) + 1
    return counts


def severity_distribution(issues: Iterable[IssueRecord]) -> dict[str, int]:
    counts = {str(level): 0 for level in SEVERITY_LEVELS}
    for issue in issues:
        counts[str(issue.severity)] += 1
    return counts


def average_severity(issues: list[IssueRecord]) -> float:
    if not issues:
        return 0
    return round(sum(i.severity for i in issues) / len(issues), 1)


def count_since(issues: Iterable[IssueRecord], since: datetime) -> int:
    since = _aware(since)
    return sum(1 for i in issues if i.timestamp and _aware(i.timestamp) >= since)


def _month_start(year: int, month: int) -> datetime:
    # month may run below 1 or above 12 when stepping back/forward
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


def monthly_trend(issues: list[IssueRecord], now: datetime, months: int = TREND_MONTHS) -> list[dict]:
    """Issue counts per calendar month, oldest first, ending with now's month.

    Buckets are half-open [first of month, first of next month) in UTC.
    """
    now = _aware(now).astimezone(timezone.utc)
    stamps = [_aware(i.timestamp) for i in issues if i.timestamp]
    trend = []
    for back in range(months - 1, -1, -1):
        start = _month_start(now.year, now.month - back)
        end = _month_start(now.year, now.month - back + 1)
        trend.append({
            "month": start.strftime("%b %Y"),
            "count": sum(1 for ts in stamps if start <= ts < end),
        })
    return trend


def overview_stats(issues: list[IssueRecord]) -> dict:
    statuses = status_breakdown(issues)
    return {
        "total": len(issues),
        "open": statuses[IssueStatus.open.value],
        "inProgress": statuses[IssueStatus.in_progress.value],
        "resolved": statuses[IssueStatus.resolved.value],
        "categories": category_breakdown(issues),
        "severityDistribution": severity_distribution(issues),
    }


def dashboard_stats(issues: list[IssueRecord], users: list, now: Optional[datetime] = None) -> dict:
    now = _aware(now) if now else datetime.now(timezone.utc)
    statuses = status_breakdown(issues)
    return {
        "totalIssues": len(issues),
        "totalUsers": len(users),
        "openIssues": statuses[IssueStatus.open.value],
        "resolvedIssues": statuses[IssueStatus.resolved.value],
        "recentIssues": count_since(issues, now - timedelta(days=30)),
        "weeklyIssues": count_since(issues, now - timedelta(days=7)),
        "averageSeverity": average_severity(issues),
        "categoryBreakdown": category_breakdown(issues),
        "severityBreakdown": severity_distribution(issues),
        "statusBreakdown": statuses,
        "monthlyTrend": monthly_trend(issues, now),
    }


def report_rows(issues: list[IssueRecord], users: list) -> list[dict]:
    """Flatten the headline numbers into metric/value/category rows."""
    rows = [
        {"metric": "Total Issues", "value": len(issues), "category": "Overview"},
        {"metric": "Total Users", "value": len(users), "category": "Overview"},
    ]
    for status, n in status_breakdown(issues).items():
        rows.append({"metric": f"{status} Issues", "value": n, "category": "Status"})
    for category, n in category_breakdown(issues).items():
        rows.append({"metric": f"{category} Issues", "value": n, "category": "Category"})
    for level, n in severity_distribution(issues).items():
        rows.append({"metric": f"Severity {level} Issues", "value": n, "category": "Severity"})
    return rows

# File: app/routers/export.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.security import require_admin
from app.db.session import get_db
from app.models.issue import COLLECTION as ISSUES, IssueRecord, IssueStatus
from app.models.user import COLLECTION as USERS, UserRecord, UserRole
from app.services import queries
from app.services.export import (
    ISSUE_COLUMNS,
    REPORT_COLUMNS,
    USER_COLUMNS,
    csv_attachment,
    export_filename,
    issue_row,
    user_row,
)
from app.services.stats import report_rows

router = APIRouter(prefix="/export", tags=["export"], dependencies=[Depends(require_admin)])


@router.get("/issues/csv")
def export_issues(
    category: Optional[str] = Query(default=None),
    status: Optional[IssueStatus] = Query(default=None),
    severity: Optional[int] = Query(default=None, ge=1, le=5),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    db=Depends(get_db),
):
    query = queries.apply_equality_filters(
        db.collection(ISSUES),
        {"category": category, "status": status, "severity": severity},
    )
    query = queries.apply_range(query, "timestamp", start_date, end_date)
    issues = queries.stream_all(query, IssueRecord.from_snapshot, order_by="timestamp")
    return csv_attachment((issue_row(i) for i in issues), ISSUE_COLUMNS, export_filename("issues"))


@router.get("/users/csv")
def export_users(role: Optional[UserRole] = Query(default=None), db=Depends(get_db)):
    query = queries.apply_equality_filters(db.collection(USERS), {"role": role})
    users = queries.stream_all(query, UserRecord.from_snapshot, order_by="createdAt")
    return csv_attachment((user_row(u) for u in users), USER_COLUMNS, export_filename("users"))


@router.get("/stats/report")
def export_stats_report(db=Depends(get_db)):
    issues = queries.stream_all(db.collection(ISSUES), IssueRecord.from_snapshot)
    users = queries.stream_all(db.collection(USERS))
    return csv_attachment(report_rows(issues, users), REPORT_COLUMNS, export_filename("statistics", kind="report"))

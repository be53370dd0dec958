# app/services/export.py
import csv
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

from starlette.responses import FileResponse

from app.core.config import settings

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Column:
    key: str
    title: str


ISSUE_COLUMNS = (
    Column("id", "ID"),
    Column("title", "Title"),
    Column("description", "Description"),
    Column("category", "Category"),
    Column("severity", "Severity"),
    Column("status", "Status"),
    Column("latitude", "Latitude"),
    Column("longitude", "Longitude"),
    Column("address", "Address"),
    Column("upvotes", "Upvotes"),
    Column("userId", "User ID"),
    Column("timestamp", "Created At"),
    Column("resolvedAt", "Resolved At"),
    Column("resolvedBy", "Resolved By"),
    Column("imageURL", "Image URL"),
)

USER_COLUMNS = (
    Column("uid", "User ID"),
    Column("email", "Email"),
    Column("displayName", "Display Name"),
    Column("role", "Role"),
    Column("createdAt", "Created At"),
    Column("issuesReported", "Issues Reported"),
    Column("issuesUpvoted", "Issues Upvoted"),
)

REPORT_COLUMNS = (
    Column("metric", "Metric"),
    Column("value", "Value"),
    Column("category", "Category"),
)


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def issue_row(issue) -> dict:
    return {
        "id": issue.id,
        "title": issue.title,
        "description": issue.description,
        "category": issue.category,
        "severity": issue.severity,
        "status": issue.status,
        "latitude": issue.location.lat,
        "longitude": issue.location.lng,
        "address": issue.location.address,
        "upvotes": issue.upvotes,
        "userId": issue.user_id,
        "timestamp": issue.timestamp,
        "resolvedAt": issue.resolved_at,
        "resolvedBy": issue.resolved_by,
        "imageURL": issue.image_url,
    }


def user_row(user) -> dict:
    return {
        "uid": user.uid,
        "email": user.email,
        "displayName": user.display_name,
        "role": user.role,
        "createdAt": user.created_at,
        "issuesReported": user.issues_reported,
        "issuesUpvoted": user.issues_upvoted,
    }


def export_filename(entity: str, today: Optional[date] = None, kind: str = "export") -> str:
    today = today or datetime.now(timezone.utc).date()
    return f"{entity}_{kind}_{today.isoformat()}.csv"


def write_csv(fh, rows: Iterable[dict], columns) -> None:
    writer = csv.DictWriter(fh, fieldnames=[c.title for c in columns])
    writer.writeheader()
    for row in rows:
        writer.writerow({c.title: format_cell(row.get(c.key)) for c in columns})


def _remove(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.error("Error deleting temp export %s: %s", path, e)


class TransientFileResponse(FileResponse):
    """A file attachment whose backing file is removed once the send ends,
    whether it completed, failed, or the client went away."""

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            _remove(self.path)


def csv_attachment(rows: Iterable[dict], columns, filename: str) -> TransientFileResponse:
    export_dir = settings.export_dir or None
    if export_dir:
        os.makedirs(export_dir, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix="export_", suffix=".csv", dir=export_dir)
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as fh:
            write_csv(fh, rows, columns)
    except BaseException:
        _remove(path)
        raise
    return TransientFileResponse(path, media_type="text/csv", filename=filename)

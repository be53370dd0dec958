# File: app/routers/issues.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from app.core.ratelimit import limiter
from app.core.security import (
    Identity,
    ensure_owner_or_admin,
    get_current_identity,
    load_user,
    require_admin,
)
from app.db.session import get_db
from app.models.issue import COLLECTION as ISSUES, IssueRecord, IssueStatus, resolution_fields
from app.models.user import COLLECTION as USERS, UserRecord, UserRole
from app.schemas.issue import IssueCreate, IssueListQuery, IssueStatusPatch, IssueUpdate, issue_list_query
from app.services import queries
from app.services.notify_email import (
    MailTransport,
    NotificationError,
    admin_recipients,
    get_mail_transport,
    send_issue_reported,
    send_issue_resolved,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/issues", tags=["issues"])


def _get_issue_or_404(db, issue_id: str):
    ref = db.collection(ISSUES).document(issue_id)
    snap = ref.get()
    if not snap.exists:
        raise HTTPException(status_code=404, detail="Issue not found")
    return ref, snap


def _notify_admins_safe(db, transport: MailTransport, issue: IssueRecord):
    try:
        admins = (
            db.collection(USERS)
            .where(filter=FieldFilter("role", "==", UserRole.admin.value))
            .stream()
        )
        recipients = admin_recipients((s.to_dict() or {}).get("email") for s in admins)
        send_issue_reported(transport, recipients, issue)
    except NotificationError as e:
        log.error("Failed to send new-issue notification for %s: %s", issue.id, e)


def _notify_reporter_resolved_safe(db, transport: MailTransport, issue_id: str):
    try:
        snap = db.collection(ISSUES).document(issue_id).get()
        if not snap.exists:
            return
        issue = IssueRecord.from_snapshot(snap)
        reporter = load_user(db, issue.user_id)
        if reporter and reporter.email:
            send_issue_resolved(transport, reporter.email, issue)
    except NotificationError as e:
        log.error("Failed to send resolution notification for %s: %s", issue_id, e)


@router.get("")
@limiter.limit("60/minute")
def list_issues(
    request: Request,
    params: IssueListQuery = Depends(issue_list_query),
    db=Depends(get_db),
):
    page = queries.paginate(
        db.collection(ISSUES),
        params.filters(),
        order_by=params.sort_by,
        direction=params.sort_order,
        page=params.page,
        limit=params.limit,
        convert=IssueRecord.from_snapshot,
    )
    return {
        "issues": [i.to_api() for i in page.items],
        "pagination": page.pagination(),
    }


@router.post("", status_code=201)
@limiter.limit("10/minute")
def create_issue(
    request: Request,
    body: IssueCreate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
    transport: MailTransport = Depends(get_mail_transport),
):
    if body.user_id != identity.uid:
        ensure_owner_or_admin(body.user_id, identity, db)

    data = {
        "title": body.title.strip(),
        "description": body.description.strip(),
        "category": body.category.value,
        "severity": body.severity,
        "status": IssueStatus.open.value,
        "location": body.location.model_dump(exclude_none=True),
        "userId": body.user_id,
        "upvotes": 0,
        "timestamp": datetime.now(timezone.utc),
        "resolvedAt": None,
        "resolvedBy": None,
    }
    if body.image_url:
        data["imageURL"] = body.image_url

    ref = db.collection(ISSUES).document()
    ref.set(data)

    reporter_ref = db.collection(USERS).document(body.user_id)
    if reporter_ref.get().exists:
        reporter_ref.update({"issuesReported": firestore.Increment(1)})

    issue = IssueRecord.model_validate({**data, "id": ref.id})
    background_tasks.add_task(_notify_admins_safe, db, transport, issue)
    return issue.to_api()


@router.get("/user/{user_id}")
def list_user_issues(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    ensure_owner_or_admin(user_id, identity, db)
    query = (
        db.collection(ISSUES)
        .where(filter=FieldFilter("userId", "==", user_id))
        .order_by("timestamp", direction=queries.DIRECTIONS["desc"])
    )
    return {"issues": [IssueRecord.from_snapshot(s).to_api() for s in query.stream()]}


@router.get("/{issue_id}")
def get_issue(issue_id: str, db=Depends(get_db)):
    _, snap = _get_issue_or_404(db, issue_id)
    return IssueRecord.from_snapshot(snap).to_api()


@router.patch("/{issue_id}")
def update_issue(
    issue_id: str,
    body: IssueUpdate,
    background_tasks: BackgroundTasks,
    admin: UserRecord = Depends(require_admin),
    db=Depends(get_db),
    transport: MailTransport = Depends(get_mail_transport),
):
    ref, snap = _get_issue_or_404(db, issue_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    status = changes.pop("status", None)
    if status is not None:
        changes.update(resolution_fields(IssueStatus(status), admin.uid))
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    ref.update(changes)
    was_resolved = (snap.to_dict() or {}).get("status") == IssueStatus.resolved.value
    if status == IssueStatus.resolved.value and not was_resolved:
        background_tasks.add_task(_notify_reporter_resolved_safe, db, transport, issue_id)
    return IssueRecord.from_snapshot(ref.get()).to_api()


@router.patch("/{issue_id}/status")
def update_status(
    issue_id: str,
    body: IssueStatusPatch,
    background_tasks: BackgroundTasks,
    admin: UserRecord = Depends(require_admin),
    db=Depends(get_db),
    transport: MailTransport = Depends(get_mail_transport),
):
    ref, snap = _get_issue_or_404(db, issue_id)
    # Any of the three statuses may be set directly; there is no transition guard.
    ref.update(resolution_fields(body.status, admin.uid))

    was_resolved = (snap.to_dict() or {}).get("status") == IssueStatus.resolved.value
    if body.status == IssueStatus.resolved and not was_resolved:
        background_tasks.add_task(_notify_reporter_resolved_safe, db, transport, issue_id)
    return {"message": "Issue status updated successfully"}


@router.delete("/{issue_id}")
def delete_issue(
    issue_id: str,
    admin: UserRecord = Depends(require_admin),
    db=Depends(get_db),
):
    ref, _ = _get_issue_or_404(db, issue_id)
    ref.delete()
    log.info("Issue %s deleted by %s", issue_id, admin.uid)
    return {"message": "Issue deleted successfully"}

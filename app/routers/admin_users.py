# File: app/routers/admin_users.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from firebase_admin import auth

from app.core.security import Identity, get_current_identity, require_admin
from app.db.session import get_db, get_firebase_app
from app.models.issue import COLLECTION as ISSUES, IssueRecord, resolution_fields, IssueStatus
from app.models.user import COLLECTION as USERS, UserRecord
from app.schemas.issue import BulkActionIn
from app.schemas.user import RoleUpdate, UserCreate, UserListQuery, user_list_query
from app.services import queries
from app.services.stats import dashboard_stats

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _user_summary(user: UserRecord) -> dict:
    return {
        "uid": user.uid,
        "email": user.email,
        "displayName": user.display_name,
        "role": user.role.value,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "issuesReported": user.issues_reported,
        "issuesUpvoted": user.issues_upvoted,
    }


@router.get("/users", dependencies=[Depends(require_admin)])
def list_users(params: UserListQuery = Depends(user_list_query), db=Depends(get_db)):
    page = queries.paginate(
        db.collection(USERS),
        {},
        order_by="createdAt",
        direction="desc",
        page=params.page,
        limit=params.limit,
        convert=UserRecord.from_snapshot,
    )
    return {"users": [_user_summary(u) for u in page.items], "pagination": page.pagination()}


@router.post("/users", status_code=201, dependencies=[Depends(require_admin)])
def create_user(body: UserCreate, db=Depends(get_db)):
    """Provision a profile for an existing Firebase Auth account."""
    uid = body.uid
    if not uid:
        try:
            uid = auth.get_user_by_email(body.email, app=get_firebase_app()).uid
        except auth.UserNotFoundError:
            raise HTTPException(404, "No Firebase Auth account for this email")

    ref = db.collection(USERS).document(uid)
    if ref.get().exists:
        raise HTTPException(409, "User already exists")

    now = datetime.now(timezone.utc)
    data = {
        "uid": uid,
        "email": body.email,
        "displayName": body.display_name,
        "role": body.role.value,
        "createdAt": now,
        "lastLogin": None,
        "issuesReported": 0,
        "issuesUpvoted": 0,
        "isActive": True,
    }
    ref.set(data)
    return UserRecord.model_validate(data).to_api()


@router.patch("/users/{uid}/role", dependencies=[Depends(require_admin)])
def update_role(uid: str, body: RoleUpdate, db=Depends(get_db)):
    ref = db.collection(USERS).document(uid)
    if not ref.get().exists:
        raise HTTPException(404, "User not found")
    ref.update({"role": body.role.value})
    return {"message": "User role updated successfully"}


@router.delete("/users/{uid}", dependencies=[Depends(require_admin)])
def delete_user(uid: str, db=Depends(get_db)):
    ref = db.collection(USERS).document(uid)
    if not ref.get().exists:
        raise HTTPException(404, "User not found")
    # Only the profile document; the Auth account and the user's issues stay.
    ref.delete()
    return {"message": "User deleted successfully"}


@router.get("/dashboard/stats", dependencies=[Depends(require_admin)])
def dashboard(db=Depends(get_db)):
    issues = queries.stream_all(db.collection(ISSUES), IssueRecord.from_snapshot)
    users = queries.stream_all(db.collection(USERS))
    return dashboard_stats(issues, users, datetime.now(timezone.utc))


@router.post("/issues/bulk-action", dependencies=[Depends(require_admin)])
def bulk_action(
    body: BulkActionIn,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    batch = db.batch()
    results = []
    for issue_id in body.issue_ids:
        ref = db.collection(ISSUES).document(issue_id)
        if not ref.get().exists:
            results.append({"issueId": issue_id, "status": "not_found"})
            continue
        if body.action == "resolve":
            batch.update(ref, resolution_fields(IssueStatus.resolved, identity.uid))
        elif body.action == "reopen":
            batch.update(ref, resolution_fields(IssueStatus.open, identity.uid))
        else:
            batch.delete(ref)
        results.append({"issueId": issue_id, "status": "success"})

    # All updates/deletes commit or fail together.
    if any(r["status"] == "success" for r in results):
        batch.commit()
    log.info("Bulk %s on %d issue(s) by %s", body.action, len(body.issue_ids), identity.uid)
    return {"message": f"Bulk {body.action} completed", "results": results}

# app/routers/auth.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from app.core.security import Identity, get_current_identity, load_user
from app.db.session import get_db
from app.models.user import COLLECTION as USERS, UserRecord, UserRole
from app.schemas.auth import ProfileUpdate, VerifyOut

router = APIRouter(prefix="/auth", tags=["auth"])

@router.get("/profile")
def get_profile(identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    user = load_user(db, identity.uid)
    if not user:
        raise HTTPException(404, "User not found")
    return {
        "uid": user.uid,
        "email": user.email,
        "displayName": user.display_name,
        "role": user.role.value,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "issuesReported": user.issues_reported,
        "issuesUpvoted": user.issues_upvoted,
    }

@router.patch("/profile")
def update_profile(body: ProfileUpdate, identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    ref = db.collection(USERS).document(identity.uid)
    if not ref.get().exists:
        raise HTTPException(404, "User not found")
    ref.update({"displayName": body.display_name})
    return {"message": "Profile updated successfully"}

@router.post("/verify", response_model=VerifyOut)
def verify(identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    ref = db.collection(USERS).document(identity.uid)
    snap = ref.get()
    role = UserRole.citizen
    if snap.exists:
        role = UserRecord.from_snapshot(snap).role
        ref.update({"lastLogin": datetime.now(timezone.utc)})
    return VerifyOut(uid=identity.uid, email=identity.email, role=role, verified=True)

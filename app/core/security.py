# app/core/security.py
import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth
from firebase_admin.exceptions import FirebaseError

from app.db.session import get_db, get_firebase_app
from app.models.user import COLLECTION as USERS, UserRecord

log = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)

@dataclass
class Identity:
    uid: str
    email: Optional[str] = None
    claims: dict = field(default_factory=dict)

class IdentityProvider:
    """Verifies Firebase ID tokens. Revoked tokens are rejected."""

    def __init__(self, app=None):
        self._app = app

    def verify_id_token(self, token: str) -> dict:
        return auth.verify_id_token(token, app=self._app or get_firebase_app(), check_revoked=True)

_provider = IdentityProvider()

def get_identity_provider() -> IdentityProvider:
    return _provider

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

def _decode_token(creds: Optional[HTTPAuthorizationCredentials], provider: IdentityProvider) -> dict:
    if not creds or creds.scheme.lower() != "bearer" or not creds.credentials:
        raise _unauthorized("No token provided")
    try:
        return provider.verify_id_token(creds.credentials)
    # Expired and revoked are subclasses of InvalidIdTokenError, order matters
    except auth.ExpiredIdTokenError:
        raise _unauthorized("Token expired")
    except auth.RevokedIdTokenError:
        raise _unauthorized("Token revoked")
    except (auth.InvalidIdTokenError, auth.UserDisabledError, FirebaseError, ValueError) as e:
        log.warning("Token verification failed: %s", e)
        raise _unauthorized("Invalid token")

def get_current_identity(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
                         provider: IdentityProvider = Depends(get_identity_provider)) -> Identity:
    claims = _decode_token(creds, provider)
    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        raise _unauthorized("Invalid token payload")
    return Identity(uid=uid, email=claims.get("email"), claims=claims)

def load_user(db, uid: str) -> Optional[UserRecord]:
    snap = db.collection(USERS).document(uid).get()
    if not snap.exists:
        return None
    return UserRecord.from_snapshot(snap)

def require_admin(identity: Identity = Depends(get_current_identity), db=Depends(get_db)) -> UserRecord:
    user = load_user(db, identity.uid)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user

def ensure_owner_or_admin(owner_id: Optional[str], identity: Identity, db) -> None:
    """Allow the resource owner, or any caller whose stored role is admin."""
    if owner_id is not None and owner_id == identity.uid:
        return
    user = load_user(db, identity.uid)
    if user and user.is_admin:
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

#!/usr/bin/env python3
# File: scripts/create_admin.py
# Project: citysense-backend
"""Create (or promote) an admin account in Firebase Auth and Firestore."""
from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone

from firebase_admin import auth

from app.db.session import get_db, get_firebase_app
from app.models.user import COLLECTION as USERS, UserRole

log = logging.getLogger("create_admin")

ADMIN_CLAIMS = {"admin": True, "role": UserRole.admin.value}


def create_admin(email: str, password: str, display_name: str) -> str:
    app = get_firebase_app()
    db = get_db()
    now = datetime.now(timezone.utc)
    try:
        record = auth.create_user(
            email=email,
            password=password,
            display_name=display_name,
            email_verified=True,
            app=app,
        )
    except auth.EmailAlreadyExistsError:
        log.info("Email already exists, promoting the existing account to admin")
        record = auth.get_user_by_email(email, app=app)
        db.collection(USERS).document(record.uid).set(
            {"role": UserRole.admin.value, "displayName": display_name, "updatedAt": now},
            merge=True,
        )
    else:
        db.collection(USERS).document(record.uid).set({
            "uid": record.uid,
            "email": email,
            "displayName": display_name,
            "role": UserRole.admin.value,
            "createdAt": now,
            "issuesReported": 0,
            "issuesUpvoted": 0,
            "isActive": True,
            "lastLogin": now,
        })
    auth.set_custom_user_claims(record.uid, ADMIN_CLAIMS, app=app)
    return record.uid


def main() -> int:
    parser = argparse.ArgumentParser(description="Create or promote a CitySense admin user.")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("display_name", metavar="displayName")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    uid = create_admin(args.email, args.password, args.display_name)
    log.info("Admin ready: %s (uid %s)", args.email, uid)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

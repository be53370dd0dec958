#!/usr/bin/env python3
# File: scripts/delete_admin.py
# Project: citysense-backend
from __future__ import annotations

import argparse
import logging

from firebase_admin import auth

from app.db.session import get_db, get_firebase_app
from app.models.user import COLLECTION as USERS

log = logging.getLogger("delete_admin")


def delete_admin(email: str) -> bool:
    """Remove the Firestore profile, then the Auth account. False if absent."""
    app = get_firebase_app()
    try:
        record = auth.get_user_by_email(email, app=app)
    except auth.UserNotFoundError:
        log.info("User not found - may already be deleted")
        return False
    get_db().collection(USERS).document(record.uid).delete()
    auth.delete_user(record.uid, app=app)
    log.info("Deleted %s (uid %s)", email, record.uid)
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete a CitySense admin user.")
    parser.add_argument("email")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    delete_admin(args.email)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

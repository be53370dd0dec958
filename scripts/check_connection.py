#!/usr/bin/env python3
# File: scripts/check_connection.py
# Project: citysense-backend

from datetime import datetime, timezone

from dotenv import load_dotenv
from firebase_admin import auth

load_dotenv(override=True)

from app.db.session import get_db, get_firebase_app  # noqa: E402

HEALTH_CHECK = "health-check"


def main() -> int:
    db = get_db()
    ref = db.collection(HEALTH_CHECK)
    print("health-check docs ->", len(list(ref.limit(1).stream())))

    _, doc = ref.add({
        "timestamp": datetime.now(timezone.utc),
        "status": "connection_test",
        "message": "Database connection successful",
    })
    snap = doc.get()
    print("write/read ->", doc.id, snap.to_dict() if snap.exists else None)
    doc.delete()

    users = auth.list_users(max_results=1, app=get_firebase_app())
    print("auth users (first page) ->", len(users.users))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

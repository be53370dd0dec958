# File: app/db/session.py
# Project: citysense-backend

from functools import lru_cache

import firebase_admin
from firebase_admin import credentials, firestore

from app.core.config import settings

APP_NAME = "citysense"

def _credentials():
    if settings.firebase_project_id and settings.firebase_client_email and settings.firebase_private_key:
        return credentials.Certificate({
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "client_email": settings.firebase_client_email,
            # .env files usually carry the key with escaped newlines
            "private_key": settings.firebase_private_key.replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        })
    return credentials.ApplicationDefault()

@lru_cache
def get_firebase_app() -> firebase_admin.App:
    """Initialise the Firebase app once per process."""
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        return firebase_admin.initialize_app(_credentials(), options, name=APP_NAME)

@lru_cache
def _client():
    return firestore.client(app=get_firebase_app())

def get_db():
    """FastAPI dependency returning the shared Firestore client."""
    return _client()

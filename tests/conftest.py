import copy
import itertools
import os
import pathlib
import sys
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_ENV", "production")

import pytest
from fastapi.testclient import TestClient
from firebase_admin import auth
from google.cloud.firestore_v1.transforms import Increment

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.security import get_identity_provider
from app.db.session import get_db
from app.main import app
from app.services.notify_email import get_mail_transport
from app.services.storage import MediaGateway, get_media_gateway

# ---------------------------------------------------------------------------
# In-memory Firestore
# ---------------------------------------------------------------------------

_ids = itertools.count(1)


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, store, doc_id):
        self._store = store
        self.id = doc_id

    def get(self):
        return FakeSnapshot(self.id, copy.deepcopy(self._store.get(self.id)))

    def set(self, data, merge=False):
        current = self._store.get(self.id) if merge else None
        self._store[self.id] = {**(current or {}), **copy.deepcopy(data)}

    def update(self, changes):
        if self.id not in self._store:
            raise KeyError(self.id)
        doc = self._store[self.id]
        for key, value in changes.items():
            if isinstance(value, Increment):
                doc[key] = (doc.get(key) or 0) + value.value
            else:
                doc[key] = copy.deepcopy(value)

    def delete(self):
        self._store.pop(self.id, None)


def _field(data, path):
    for part in path.split("."):
        if not isinstance(data, dict):
            return None
        data = data.get(part)
    return data


def _sort_key(value):
    return (value is not None, value if value is not None else 0)


_OPS = {
    "==": lambda a, b: a == b,
    ">=": lambda a, b: a is not None and a >= b,
    "<=": lambda a, b: a is not None and a <= b,
}


class FakeQuery:
    def __init__(self, store, filters=(), orders=(), offset=0, limit=None):
        self._store = store
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._offset = offset
        self._limit = limit

    def _copy(self, **kw):
        state = dict(filters=self._filters, orders=self._orders, offset=self._offset, limit=self._limit)
        state.update(kw)
        return FakeQuery(self._store, **state)

    def where(self, filter):
        return self._copy(filters=self._filters + ((filter.field_path, filter.op_string, filter.value),))

    def order_by(self, field_path, direction="ASCENDING"):
        return self._copy(orders=self._orders + ((field_path, direction),))

    def offset(self, n):
        return self._copy(offset=n)

    def limit(self, n):
        return self._copy(limit=n)

    def _matches(self):
        rows = [
            (doc_id, data) for doc_id, data in self._store.items()
            if all(_OPS[op](_field(data, path), value) for path, op, value in self._filters)
        ]
        for path, direction in reversed(self._orders):
            rows.sort(key=lambda r: _sort_key(_field(r[1], path)), reverse=direction == "DESCENDING")
        return rows

    def stream(self):
        rows = self._matches()[self._offset:]
        if self._limit is not None:
            rows = rows[:self._limit]
        return iter([FakeSnapshot(doc_id, copy.deepcopy(data)) for doc_id, data in rows])

    def count(self, alias=None):
        total = len(self._matches())
        return SimpleNamespace(get=lambda: [[SimpleNamespace(alias=alias, value=total)]])


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocument(self._store, doc_id or f"doc{next(_ids)}")


class FakeBatch:
    def __init__(self):
        self.ops = []
        self.committed = False

    def update(self, ref, changes):
        self.ops.append(lambda: ref.update(changes))

    def delete(self, ref):
        self.ops.append(ref.delete)

    def commit(self):
        for op in self.ops:
            op()
        self.committed = True


class FakeFirestore:
    def __init__(self):
        self.data = {}
        self.batches = []

    def collection(self, name):
        return FakeCollection(self.data.setdefault(name, {}))

    def batch(self):
        batch = FakeBatch()
        self.batches.append(batch)
        return batch

    def docs(self, name):
        return self.data.setdefault(name, {})


# ---------------------------------------------------------------------------
# Auth, mail, media
# ---------------------------------------------------------------------------

class FakeIdentityProvider:
    """Tokens are "token-<uid>"; a few reserved tokens simulate failures."""

    def verify_id_token(self, token):
        if token == "expired":
            raise auth.ExpiredIdTokenError("Token expired", cause=None)
        if token == "revoked":
            raise auth.RevokedIdTokenError("Token revoked")
        if not token.startswith("token-"):
            raise auth.InvalidIdTokenError("Malformed token")
        uid = token[len("token-"):]
        return {"uid": uid, "email": f"{uid}@example.com"}


class RecordingTransport:
    def __init__(self):
        self.sent = []

    def send(self, to_email, subject, html_content):
        self.sent.append((to_email, subject, html_content))
        return True


def auth_header(uid):
    return {"Authorization": f"Bearer token-{uid}"}


NOW = datetime.now(timezone.utc)


def make_issue(db, doc_id=None, **overrides):
    data = {
        "title": "Deep pothole",
        "description": "A deep pothole near the bus stop",
        "category": "Pothole",
        "severity": 3,
        "status": "Open",
        "location": {"lat": 12.97, "lng": 77.59, "address": "MG Road"},
        "userId": "citizen1",
        "upvotes": 0,
        "timestamp": NOW - timedelta(hours=1),
        "resolvedAt": None,
        "resolvedBy": None,
    }
    data.update(overrides)
    ref = db.collection("issues").document(doc_id)
    ref.set(data)
    return ref.id


def make_user(db, uid, role="citizen", **overrides):
    data = {
        "uid": uid,
        "email": f"{uid}@example.com",
        "displayName": uid.title(),
        "role": role,
        "createdAt": NOW - timedelta(days=10),
        "lastLogin": None,
        "issuesReported": 0,
        "issuesUpvoted": 0,
        "isActive": True,
    }
    data.update(overrides)
    db.collection("users").document(uid).set(data)
    return uid


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def mailer():
    return RecordingTransport()


@pytest.fixture
def media():
    return MediaGateway("demo-cloud", "key-123", "secret-xyz", "citysense")


@pytest.fixture
def client(db, mailer, media):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_identity_provider] = FakeIdentityProvider
    app.dependency_overrides[get_mail_transport] = lambda: mailer
    app.dependency_overrides[get_media_gateway] = lambda: media
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    return make_user(db, "admin1", role="admin")


@pytest.fixture
def citizen(db):
    return make_user(db, "citizen1")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions

from app.core.config import settings
from app.core.errors import register_exception_handlers


def _app(exc):
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    def boom():
        raise exc

    return TestClient(app, raise_server_exceptions=False)


def test_unexpected_error_hidden_in_production(monkeypatch):
    monkeypatch.setattr(settings, "app_env", "production")
    res = _app(RuntimeError("db password is hunter2")).get("/boom")
    assert res.status_code == 500
    assert res.json() == {"error": "Internal Server Error"}


def test_unexpected_error_detailed_in_development(monkeypatch):
    monkeypatch.setattr(settings, "app_env", "development")
    res = _app(RuntimeError("kaput")).get("/boom")
    assert res.status_code == 500
    body = res.json()
    assert body["error"] == "kaput"
    assert "RuntimeError" in body["stack"]


@pytest.mark.parametrize(
    "exc, status, message",
    [
        (firebase_exceptions.PermissionDeniedError("denied"), 403, "Permission denied"),
        (firebase_exceptions.NotFoundError("gone"), 404, "Resource not found"),
        (firebase_exceptions.ResourceExhaustedError("quota"), 429, "Resource exhausted"),
        (google_exceptions.FailedPrecondition("index missing"), 400, "Failed precondition"),
        (google_exceptions.Unauthenticated("who"), 401, "Invalid token"),
    ],
)
def test_provider_errors_are_mapped(monkeypatch, exc, status, message):
    monkeypatch.setattr(settings, "app_env", "production")
    res = _app(exc).get("/boom")
    assert res.status_code == status
    assert res.json() == {"error": message}


def test_unmapped_provider_error_is_internal(monkeypatch):
    monkeypatch.setattr(settings, "app_env", "production")
    res = _app(firebase_exceptions.UnknownError("weird")).get("/boom")
    assert res.status_code == 500
    assert res.json() == {"error": "Internal Server Error"}


def test_health(client):
    assert client.get("/health").json() == {"ok": True}

# File: app/core/errors.py
# Project: citysense-backend

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from firebase_admin import auth, exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

log = logging.getLogger(__name__)

class MediaError(Exception):
    """A media host call failed; the message is safe to show to the client."""

# Firebase Admin SDK error codes -> (status, client message)
FIREBASE_CODES = {
    firebase_exceptions.PERMISSION_DENIED: (403, "Permission denied"),
    firebase_exceptions.NOT_FOUND: (404, "Resource not found"),
    firebase_exceptions.FAILED_PRECONDITION: (400, "Failed precondition"),
    firebase_exceptions.RESOURCE_EXHAUSTED: (429, "Resource exhausted"),
    firebase_exceptions.UNAUTHENTICATED: (401, "Invalid token"),
}

# Firestore client (google-cloud) errors
GOOGLE_ERRORS = (
    (google_exceptions.PermissionDenied, 403, "Permission denied"),
    (google_exceptions.NotFound, 404, "Resource not found"),
    (google_exceptions.FailedPrecondition, 400, "Failed precondition"),
    (google_exceptions.ResourceExhausted, 429, "Resource exhausted"),
    (google_exceptions.Unauthenticated, 401, "Invalid token"),
)

def format_validation_errors(errors) -> list[str]:
    details = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        details.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return details

def _error_body(message: str, exc: Exception | None = None, **extra) -> dict:
    body = {"error": message, **extra}
    if exc is not None and settings.is_development:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body

def classify_provider_error(exc: Exception) -> tuple[int, str] | None:
    """Map a Firebase/Firestore error onto the API taxonomy, or None for 500."""
    if isinstance(exc, auth.ExpiredIdTokenError):
        return 401, "Token expired"
    if isinstance(exc, auth.RevokedIdTokenError):
        return 401, "Token revoked"
    if isinstance(exc, firebase_exceptions.FirebaseError):
        return FIREBASE_CODES.get(exc.code)
    for cls, status_code, message in GOOGLE_ERRORS:
        if isinstance(exc, cls):
            return status_code, message
    return None

def internal_error_response(exc: Exception) -> JSONResponse:
    log.error("Unhandled error: %s", exc, exc_info=exc)
    message = "Internal Server Error"
    if settings.is_development and str(exc):
        message = str(exc)
    return JSONResponse(status_code=500, content=_error_body(message, exc))

async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    in_query = bool(errors) and all((e.get("loc") or ("",))[0] == "query" for e in errors)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid query parameters" if in_query else "Validation failed", "details": format_validation_errors(errors)},
    )

async def handle_http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )

async def handle_provider_error(request: Request, exc: Exception):
    mapped = classify_provider_error(exc)
    if mapped is None:
        return internal_error_response(exc)
    status_code, message = mapped
    log.warning("Provider error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=_error_body(message))

async def handle_media_error(request: Request, exc: MediaError):
    log.error("Media host error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

async def handle_unexpected_error(request: Request, exc: Exception):
    return internal_error_response(exc)

def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(firebase_exceptions.FirebaseError, handle_provider_error)
    app.add_exception_handler(google_exceptions.GoogleAPICallError, handle_provider_error)
    app.add_exception_handler(MediaError, handle_media_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

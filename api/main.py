"""
api/main.py -- FastAPI application entry point for Authflow.

Run with:  python main.py
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- credentialed CORS for the browser frontend
  2. log_requests   -- method, path, status and latency for every request

Lifespan builds the shared resources once at startup (account store, mailer,
services) and hangs them on app.state; route handlers read them from there.
Shutdown disposes of the store's connection pool.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.user import router as user_router
from auth.credentials import CredentialService
from auth.store import AccountStore
from auth.verification import VerificationService
from core.config import get_settings
from core.errors import AuthServiceError
from notify.mailer import Mailer

VERSION = "1.0.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authflow.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the account store, mailer and services; tear down on shutdown.

    A database that cannot be reached at startup is the one fatal failure:
    it is logged at CRITICAL and the process exits with status 1. Everything
    else is surfaced per request.
    """
    logger.info("Authflow API starting up")
    db_display = make_url(_settings.database_url).render_as_string(hide_password=True)
    try:
        account_store = AccountStore(_settings.database_url)
    except SQLAlchemyError:
        logger.critical("Database connection failed (%s)", db_display, exc_info=True)
        raise SystemExit(1)
    logger.info("Database connected (%s)", db_display)

    mailer = Mailer(_settings)
    logger.info(
        "Mailer initialized (server=%s:%d, delivery=%s)",
        _settings.smtp_host,
        _settings.smtp_port,
        "on" if _settings.send_emails else "suppressed",
    )
    # Non-fatal: codes can still be issued, sends will fail with 502
    if _settings.send_emails and await mailer.check_connection():
        logger.info("SMTP server is ready")

    app.state.account_store = account_store
    app.state.mailer = mailer
    app.state.credential_service = CredentialService(account_store)
    app.state.verification_service = VerificationService(account_store, mailer)

    yield

    account_store.close()
    logger.info("Authflow API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Authflow API",
    description="Email/password accounts with session cookies and OTP email verification and password reset.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

# allow_credentials is required for the browser to send the session cookie
# cross-origin; it also rules out a "*" origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(user_router, prefix="/api", tags=["User"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler returns the same {success: false, message, code} envelope so
# the frontend can show `message` without inspecting status codes.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, code=code).model_dump(),
    )


@app.exception_handler(AuthServiceError)
async def auth_service_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    """Render a service-layer failure with its own status and code."""
    return _error(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrongly typed fields. Missing fields never get here -- see api/models.py."""
    logger.debug("Request validation failed on %s: %s", request.url.path, exc.errors())
    return _error(400, "validation_error", "Invalid request body")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured error for HTTP exceptions (401 from the session dependency, unknown routes).

    When detail is already a {code, message} dict, use it directly rather
    than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return _error(exc.status_code, exc.detail.get("code", f"http_{exc.status_code}"), exc.detail.get("message", ""))
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The traceback goes to the log only; the client receives a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is reachable regardless of router state.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version, and database reachability."""
    database_ok = request.app.state.account_store.ping()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=VERSION,
        components={"app": "ok", "database": "ok" if database_ok else "error"},
    )

"""FastAPI application for the WhistleSpace feedback portal.

Provides REST API endpoints wrapping the WhistleSpace package for:
- Account signup and sessions
- Feedback submission with moderation and progressive enforcement
- In-app notifications
- Admin review, unban and the audit trail
"""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from whistlespace.errors import (
    AccountBannedError,
    ConflictError,
    NotFoundError,
    ValidationError,
    WhistleSpaceError,
)
from whistlespace.logging_config import configure_logging
from web.backend.app.routers import admin, auth, feedback, moderation, notifications

configure_logging()

app = FastAPI(
    title="WhistleSpace API",
    description=(
        "REST API for WhistleSpace anonymous feedback. "
        "Provides endpoints for feedback submission, moderation, "
        "enforcement, notifications and admin review."
    ),
    version="0.1.0",
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Domain errors -> HTTP status
# ---------------------------------------------------------------------------

_STATUS_FOR_ERROR: list[tuple[type[WhistleSpaceError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AccountBannedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
]


@app.exception_handler(WhistleSpaceError)
async def whistlespace_error_handler(request: Request, exc: WhistleSpaceError):
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, error_code in _STATUS_FOR_ERROR:
        if isinstance(exc, error_type):
            code = error_code
            break
    body: dict = {"detail": str(exc)}
    if isinstance(exc, AccountBannedError) and exc.ban_until is not None:
        body["ban_until"] = exc.ban_until.isoformat()
    return JSONResponse(status_code=code, content=body)


# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(auth.router)
app.include_router(feedback.router)
app.include_router(moderation.router)
app.include_router(notifications.router)
app.include_router(admin.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "WhistleSpace API",
        "version": "0.1.0",
        "description": "Anonymous feedback with moderation and enforcement",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}

"""
Security middleware for setting RLS context and enforcing security policies.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.
    """

    def __init__(self, app, exclude_paths: list[str] | None = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if request.url.path in self.exclude_paths:
            return response

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


def _supports_rls(db: Session) -> bool:
    return db.get_bind().dialect.name == "postgresql"


def set_rls_context(db: Session, account_id: int) -> None:
    """
    Set the RLS context for a database session.

    Postgres policies read `app.current_account_id` to restrict every tenant
    table to the caller's account. Other dialects (SQLite in tests) skip this;
    repositories always filter by account_id as well.
    """
    if not _supports_rls(db):
        return
    try:
        db.execute(
            text("SELECT set_config('app.current_account_id', :account_id, false)"),
            {"account_id": str(account_id)},
        )
        logger.debug(f"RLS context set for account_id={account_id}")
    except Exception as e:
        logger.error(f"Failed to set RLS context for account_id={account_id}: {e}")
        raise

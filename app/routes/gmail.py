"""
Gmail Integration Routes
Connect a mailbox whose unread mail is synced into the unified inbox
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET
from ..database import get_db
from ..messaging.gmail_worker import sync_gmail_to_inbox
from ..models_gmail import GmailConnection
from ..permissions import AccountContext
from ..services.gmail_service import GmailAPIError, build_authorization_url, exchange_code
from ..shared.crypto import encrypt_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/gmail", tags=["gmail"])


class GmailCallbackRequest(BaseModel):
    code: str
    state: Optional[str] = None


class GmailStatusResponse(BaseModel):
    connected: bool
    email: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    last_sync_error: Optional[str] = None


def _connection(db: Session, account_id: int) -> Optional[GmailConnection]:
    return db.query(GmailConnection).filter(GmailConnection.account_id == account_id).first()


def _require_google_config() -> None:
    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Gmail integration not configured")


@router.get("/oauth/url")
async def get_oauth_url(ctx: AccountContext = Depends(require_admin)):
    _require_google_config()
    state = secrets.token_urlsafe(32)
    return {"url": build_authorization_url(state), "state": state}


@router.post("/oauth/callback", response_model=GmailStatusResponse)
async def oauth_callback(
    data: GmailCallbackRequest,
    ctx: AccountContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    _require_google_config()
    try:
        tokens = await exchange_code(data.code)
    except GmailAPIError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if not tokens.get("email"):
        raise HTTPException(status_code=400, detail="Google did not return the mailbox address")

    connection = _connection(db, ctx.account_id)
    if not connection:
        connection = GmailConnection(account_id=ctx.account_id)
        db.add(connection)

    connection.email = tokens["email"]
    connection.access_token = encrypt_token(tokens["access_token"])
    if tokens.get("refresh_token"):
        connection.refresh_token = encrypt_token(tokens["refresh_token"])
    connection.token_expires_at = datetime.utcnow() + timedelta(seconds=tokens.get("expires_in", 3600))
    connection.is_active = True
    connection.last_sync_error = None
    db.commit()
    db.refresh(connection)

    logger.info(f"✅ Gmail {connection.email} connected for account {ctx.account_id}")
    return GmailStatusResponse(connected=True, email=connection.email)


@router.get("/status", response_model=GmailStatusResponse)
async def get_status(ctx: AccountContext = Depends(require_admin), db: Session = Depends(get_db)):
    connection = _connection(db, ctx.account_id)
    if not connection or not connection.is_active:
        return GmailStatusResponse(connected=False)
    return GmailStatusResponse(
        connected=True,
        email=connection.email,
        last_synced_at=connection.last_synced_at,
        last_sync_error=connection.last_sync_error,
    )


@router.post("/sync")
async def sync_now(ctx: AccountContext = Depends(require_admin), db: Session = Depends(get_db)):
    connection = _connection(db, ctx.account_id)
    if not connection or not connection.is_active:
        raise HTTPException(status_code=404, detail="Gmail not connected")
    return await sync_gmail_to_inbox(db, account_id=ctx.account_id)


@router.delete("/disconnect")
async def disconnect(ctx: AccountContext = Depends(require_admin), db: Session = Depends(get_db)):
    connection = _connection(db, ctx.account_id)
    if not connection:
        raise HTTPException(status_code=404, detail="Gmail not connected")
    db.delete(connection)
    db.commit()
    logger.info(f"Gmail disconnected for account {ctx.account_id}")
    return {"success": True}


__all__ = ["router"]

"""
Square OAuth Integration
Connects a merchant account for payment webhooks and customer import
"""

import logging
import secrets
from datetime import datetime
from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..config import SQUARE_APPLICATION_ID, SQUARE_APPLICATION_SECRET, SQUARE_REDIRECT_URI
from ..database import get_db
from ..models_square import SquareIntegration
from ..permissions import AccountContext
from ..services.square_service import (
    SQUARE_OAUTH_URL,
    SquareAPIError,
    fetch_square_customers,
    get_valid_access_token,
    import_customers,
    parse_expires_at,
    request_tokens,
    square_headers,
)
from ..shared.crypto import decrypt_token, encrypt_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/square", tags=["square"])

SQUARE_SCOPES = "MERCHANT_PROFILE_READ PAYMENTS_READ ORDERS_READ INVOICES_READ CUSTOMERS_READ"


class SquareStatusResponse(BaseModel):
    connected: bool
    merchant_id: Optional[str] = None
    last_import_at: Optional[datetime] = None


def _integration(db: Session, account_id: int) -> Optional[SquareIntegration]:
    return db.query(SquareIntegration).filter(SquareIntegration.account_id == account_id).first()


@router.post("/oauth/initiate")
async def initiate_oauth(ctx: AccountContext = Depends(require_admin)):
    """Authorization URL plus a CSRF state token for the frontend to keep"""
    if not SQUARE_APPLICATION_ID:
        raise HTTPException(status_code=500, detail="Square not configured")

    state = secrets.token_urlsafe(32)
    oauth_url = (
        f"{SQUARE_OAUTH_URL}/oauth2/authorize"
        f"?client_id={SQUARE_APPLICATION_ID}"
        f"&response_type=code"
        f"&scope={SQUARE_SCOPES.replace(' ', '+')}"
        f"&state={state}"
        f"&redirect_uri={quote(SQUARE_REDIRECT_URI, safe='')}"
    )
    logger.info(f"Square OAuth initiated for account {ctx.account_id}")
    return {"oauth_url": oauth_url, "state": state}


@router.get("/callback-handler")
async def oauth_callback_handler(
    code: str,
    state: Optional[str] = None,
    ctx: AccountContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Exchange the authorization code and store encrypted tokens"""
    if not SQUARE_APPLICATION_ID or not SQUARE_APPLICATION_SECRET:
        raise HTTPException(status_code=500, detail="Square not configured")

    try:
        token_data = await request_tokens(
            {"code": code, "grant_type": "authorization_code", "redirect_uri": SQUARE_REDIRECT_URI}
        )
    except SquareAPIError as e:
        raise HTTPException(status_code=400, detail="Failed to exchange authorization code") from e

    access_token = token_data.get("access_token")
    merchant_id = token_data.get("merchant_id")
    if not access_token or not merchant_id:
        raise HTTPException(status_code=400, detail="Invalid token response from Square")

    integration = _integration(db, ctx.account_id)
    if not integration:
        integration = SquareIntegration(account_id=ctx.account_id)
        db.add(integration)

    integration.merchant_id = merchant_id
    integration.access_token = encrypt_token(access_token)
    integration.refresh_token = encrypt_token(token_data.get("refresh_token"))
    integration.token_expires_at = parse_expires_at(token_data.get("expires_at"))
    integration.is_active = True
    db.commit()

    logger.info(f"✅ Square connected for account {ctx.account_id} (merchant {merchant_id})")
    return {"success": True, "merchant_id": merchant_id}


@router.get("/status", response_model=SquareStatusResponse)
async def get_status(ctx: AccountContext = Depends(require_admin), db: Session = Depends(get_db)):
    integration = _integration(db, ctx.account_id)
    if integration and integration.is_active:
        return SquareStatusResponse(
            connected=True, merchant_id=integration.merchant_id, last_import_at=integration.last_import_at
        )
    return SquareStatusResponse(connected=False)


@router.delete("/disconnect")
async def disconnect(ctx: AccountContext = Depends(require_admin), db: Session = Depends(get_db)):
    integration = _integration(db, ctx.account_id)
    if not integration or not integration.is_active:
        raise HTTPException(status_code=404, detail="Square not connected")

    # Revoking is best effort; the integration is deactivated either way
    try:
        access_token = decrypt_token(integration.access_token)
        async with httpx.AsyncClient(timeout=15.0) as client:
            await client.post(
                f"{SQUARE_OAUTH_URL}/oauth2/revoke",
                json={"client_id": SQUARE_APPLICATION_ID, "access_token": access_token},
                headers={**square_headers(), "Authorization": f"Client {SQUARE_APPLICATION_SECRET}"},
            )
    except Exception as e:
        logger.warning(f"⚠️ Square token revoke failed for account {ctx.account_id}: {e}")

    integration.is_active = False
    db.commit()
    logger.info(f"Square disconnected for account {ctx.account_id}")
    return {"success": True}


@router.post("/import-customers")
async def import_square_customers(ctx: AccountContext = Depends(require_admin), db: Session = Depends(get_db)):
    integration = _integration(db, ctx.account_id)
    if not integration or not integration.is_active:
        raise HTTPException(
            status_code=401, detail="Not connected to Square. Please connect your Square account first."
        )

    access_token = await get_valid_access_token(integration, db)
    if not access_token:
        raise HTTPException(status_code=401, detail="Square authorization expired. Please reconnect.")

    try:
        customers = await fetch_square_customers(access_token)
    except SquareAPIError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    result = import_customers(db, ctx.account_id, customers)
    integration.last_import_at = datetime.utcnow()
    db.commit()

    return {
        "success": True,
        "message": f"Imported {result['imported']} of {result['total']} customers",
        **result,
    }


__all__ = ["router"]

"""
Twilio SMS Integration Routes
Credential management for outbound SMS and inbound SMS/WhatsApp routing
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..models_twilio import TwilioIntegration, TwilioSMSLog
from ..permissions import AccountContext
from ..services.twilio_service import verify_credentials
from ..shared.crypto import encrypt_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/twilio", tags=["twilio"])


# Pydantic Models
class TwilioStatusResponse(BaseModel):
    connected: bool
    sms_enabled: Optional[bool] = None
    phone_number: Optional[str] = None
    is_verified: Optional[bool] = None
    send_visit_reminder: Optional[bool] = None
    send_job_completion: Optional[bool] = None
    send_invoice: Optional[bool] = None
    send_inbox_reply: Optional[bool] = None


class TwilioCredentials(BaseModel):
    account_sid: str
    auth_token: str
    messaging_service_sid: Optional[str] = None
    phone_number: Optional[str] = None

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, v):
        if v and not v.startswith("+"):
            raise ValueError("phone_number must be in E.164 format (e.g., +16035551234)")
        return v


class TwilioSettings(BaseModel):
    sms_enabled: bool
    send_visit_reminder: bool
    send_job_completion: bool
    send_invoice: bool
    send_inbox_reply: bool


def _integration(db: Session, account_id: int) -> Optional[TwilioIntegration]:
    return db.query(TwilioIntegration).filter(TwilioIntegration.account_id == account_id).first()


# Routes
@router.get("/status", response_model=TwilioStatusResponse)
async def get_twilio_status(ctx: AccountContext = Depends(require_admin), db: Session = Depends(get_db)):
    integration = _integration(db, ctx.account_id)
    if not integration:
        return TwilioStatusResponse(connected=False)

    # Mask phone number for display
    phone_display = f"***-***-{integration.phone_number[-4:]}" if integration.phone_number else None

    return TwilioStatusResponse(
        connected=True,
        sms_enabled=integration.sms_enabled,
        phone_number=phone_display,
        is_verified=integration.is_verified,
        send_visit_reminder=integration.send_visit_reminder,
        send_job_completion=integration.send_job_completion,
        send_invoice=integration.send_invoice,
        send_inbox_reply=integration.send_inbox_reply,
    )


@router.post("/connect")
async def connect_twilio(
    credentials: TwilioCredentials,
    ctx: AccountContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Verify credentials against Twilio, then store them encrypted"""
    if not credentials.messaging_service_sid and not credentials.phone_number:
        raise HTTPException(
            status_code=400,
            detail="Either Messaging Service SID or Phone Number must be provided",
        )

    is_valid, error_message = await verify_credentials(credentials.account_sid, credentials.auth_token)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error_message or "Invalid credentials")

    integration = _integration(db, ctx.account_id)
    if not integration:
        integration = TwilioIntegration(account_id=ctx.account_id, sms_enabled=True)
        db.add(integration)

    integration.account_sid = encrypt_token(credentials.account_sid)
    integration.auth_token = encrypt_token(credentials.auth_token)
    integration.messaging_service_sid = encrypt_token(credentials.messaging_service_sid)
    integration.phone_number = credentials.phone_number
    integration.is_verified = True
    integration.updated_at = datetime.utcnow()
    db.commit()

    logger.info(f"📱 Twilio connected for account {ctx.account_id}")
    return {"message": "Twilio connected successfully", "verified": True}


@router.delete("/disconnect")
async def disconnect_twilio(ctx: AccountContext = Depends(require_admin), db: Session = Depends(get_db)):
    integration = _integration(db, ctx.account_id)
    if not integration:
        raise HTTPException(status_code=404, detail="Twilio integration not found")

    db.query(TwilioSMSLog).filter(TwilioSMSLog.integration_id == integration.id).delete()
    db.delete(integration)
    db.commit()

    logger.info(f"📴 Twilio disconnected for account {ctx.account_id}")
    return {"message": "Twilio disconnected successfully"}


@router.put("/settings")
async def update_twilio_settings(
    settings: TwilioSettings,
    ctx: AccountContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    integration = _integration(db, ctx.account_id)
    if not integration:
        raise HTTPException(status_code=404, detail="Twilio integration not found")

    for key, value in settings.model_dump().items():
        setattr(integration, key, value)
    db.commit()
    return {"message": "Settings updated successfully"}


@router.get("/logs")
async def get_sms_logs(
    limit: int = 50,
    ctx: AccountContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    logs = (
        db.query(TwilioSMSLog)
        .filter(TwilioSMSLog.account_id == ctx.account_id)
        .order_by(TwilioSMSLog.created_at.desc())
        .limit(min(limit, 200))
        .all()
    )
    return {
        "logs": [
            {
                "id": log.id,
                "to_phone": log.to_phone,
                "message_type": log.message_type,
                "status": log.status,
                "error_message": log.error_message,
                "created_at": log.created_at.isoformat() if log.created_at else None,
            }
            for log in logs
        ]
    }

"""
Email Pipeline Intake
Internal endpoints called by the mail processing pipeline, authenticated
with `Authorization: Bearer <WEBHOOK_SECRET>`.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..cache import invalidate_dashboard
from ..config import WEBHOOK_SECRET
from ..database import get_db
from ..messaging.categorization import categorize_email
from ..messaging.normalize import from_gmail
from ..messaging.save import save_normalized_message
from ..models import Account, Lead
from ..models_messaging import Alert, EmailMessage
from ..shared.validators import split_full_name
from ..webhook_security import require_bearer_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/email", tags=["email intake"])

EMAIL_CATEGORIES = ("spending", "billing", "leads", "other", "junk")


async def require_pipeline_secret(request: Request) -> None:
    require_bearer_secret(request, WEBHOOK_SECRET)


def resolve_account(db: Session, account_public_id: Optional[str]) -> Account:
    if not account_public_id:
        raise HTTPException(status_code=400, detail="accountId is required")
    account = db.query(Account).filter(Account.public_id == account_public_id).first()
    if not account:
        raise HTTPException(status_code=400, detail="No account configured for this mailbox")
    return account


@router.post("/intake")
async def email_intake(
    request: Request,
    _: None = Depends(require_pipeline_secret),
    db: Session = Depends(get_db),
):
    """Parsed Gmail message -> unified inbox"""
    payload = await request.json()
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")

    account = resolve_account(db, payload.get("accountId"))
    saved = await save_normalized_message(db, account.id, from_gmail(payload))
    return {"ok": True, "conversationId": saved["conversation_id"], "messageId": saved["message_id"]}


class EmailSummaryPayload(BaseModel):
    accountId: str
    gmailId: Optional[str] = None
    gmailThreadId: Optional[str] = None
    sender: str = Field(..., alias="from")
    subject: str = ""
    receivedAt: Optional[datetime] = None
    snippet: str = ""
    summary: Optional[str] = None
    category: Optional[str] = None
    priority: str = "medium"
    confidence: Optional[float] = None
    actionRequired: bool = False
    extractedData: Optional[dict[str, Any]] = None


def auto_create_lead(db: Session, account_id: int, email: EmailMessage, payload: EmailSummaryPayload) -> Lead:
    lead_data = (payload.extractedData or {}).get("leads") or {}
    first_name, last_name = split_full_name(lead_data.get("contact_name"))

    if payload.priority == "urgent":
        priority = "urgent"
    elif payload.priority == "high":
        priority = "high"
    else:
        priority = "medium"

    lead = Lead(
        account_id=account_id,
        first_name=first_name,
        last_name=last_name,
        email=lead_data.get("contact_email") or payload.sender,
        phone=lead_data.get("contact_phone"),
        company_name=lead_data.get("company_name"),
        source="email",
        status="new",
        priority=priority,
        service_type=lead_data.get("service_type"),
        estimated_value=lead_data.get("estimated_value"),
        notes=(
            f"Auto-created from email: {payload.subject}\n\n"
            f"AI Summary: {payload.summary or payload.snippet}"
        ),
    )
    db.add(lead)
    db.flush()

    email.extracted_data = {**(payload.extractedData or {}), "auto_created_lead_id": lead.id}
    db.add(
        Alert(
            account_id=account_id,
            alert_type="new_lead",
            title=f"New Lead: {first_name} {last_name}",
            message=f"Email inquiry: {payload.subject}. Service: {lead_data.get('service_type') or 'Unknown'}",
            entity_type="lead",
            entity_id=lead.id,
        )
    )
    return lead


@router.post("/webhook")
async def email_summary_webhook(
    payload: EmailSummaryPayload,
    _: None = Depends(require_pipeline_secret),
    db: Session = Depends(get_db),
):
    """Summarized email -> EmailMessage, plus a lead when the pipeline found one"""
    account = resolve_account(db, payload.accountId)

    category = payload.category if payload.category in EMAIL_CATEGORIES else None
    confidence = payload.confidence
    extracted = payload.extractedData
    if category is None:
        verdict = categorize_email(payload.subject, payload.snippet)
        category, confidence = verdict["category"], verdict["confidence"]
        extracted = extracted or verdict["extracted_data"]
        payload.extractedData = extracted

    email = EmailMessage(
        account_id=account.id,
        gmail_message_id=payload.gmailId,
        sender=payload.sender,
        subject=payload.subject,
        summary=payload.summary or payload.snippet,
        category=category,
        priority=payload.priority,
        confidence=confidence,
        extracted_data=extracted,
        received_at=payload.receivedAt or datetime.utcnow(),
    )
    db.add(email)
    db.flush()

    lead = None
    if category == "leads" and (extracted or {}).get("leads"):
        lead = auto_create_lead(db, account.id, email, payload)

    db.commit()
    if lead:
        invalidate_dashboard(account.id)
        logger.info(f"✅ Auto-created lead {lead.id} from email {email.id}")

    logger.info(f"📧 Email summary stored: {email.id} ({category}) for account {account.id}")
    return {"success": True, "emailId": email.id, "category": category, "leadId": lead.id if lead else None}


__all__ = ["router"]

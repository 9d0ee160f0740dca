"""
Inbound Webhooks
Twilio SMS/WhatsApp, public web-form intake, Stripe and Square payments
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..cache import invalidate_dashboard
from ..config import (
    SQUARE_WEBHOOK_SIGNATURE_KEY,
    SQUARE_WEBHOOK_URL,
    TWILIO_VALIDATE_SIGNATURE,
    TWILIO_WEBHOOK_URL,
)
from ..database import get_db
from ..domain.invoices.service import record_payment
from ..messaging.normalize import from_twilio, from_web_form
from ..messaging.save import save_normalized_message
from ..models import Account, Lead
from ..models_invoice import Invoice
from ..models_square import SquareIntegration
from ..models_twilio import TwilioIntegration
from ..rate_limiter import create_rate_limiter
from ..services.stripe_service import StripeNotConfigured, StripeSignatureError, parse_webhook_event
from ..shared.crypto import decrypt_token
from ..shared.validators import validate_email, validate_us_phone
from ..webhook_security import verify_square_signature, verify_twilio_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

web_form_limit = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="web_form")

EMPTY_TWIML = "<Response></Response>"


def twiml(status_code: int = 200) -> Response:
    return Response(content=EMPTY_TWIML, status_code=status_code, media_type="text/xml")


# ============================================================================
# Twilio
# ============================================================================


def find_twilio_integration(db: Session, to_number: str) -> Optional[TwilioIntegration]:
    number = to_number.replace("whatsapp:", "")
    if not number:
        return None
    return db.query(TwilioIntegration).filter(TwilioIntegration.phone_number == number).first()


@router.post("/twilio")
async def twilio_webhook(request: Request, db: Session = Depends(get_db)):
    """SMS and WhatsApp messages; Twilio always expects TwiML back"""
    try:
        form = dict(await request.form())
        integration = find_twilio_integration(db, str(form.get("To") or ""))
        if not integration:
            logger.warning(f"⚠️ Twilio message to unrouted number {form.get('To')} - ignoring")
            return twiml()

        if TWILIO_VALIDATE_SIGNATURE:
            url = TWILIO_WEBHOOK_URL or str(request.url)
            signature = request.headers.get("X-Twilio-Signature", "")
            if not verify_twilio_signature(decrypt_token(integration.auth_token), url, form, signature):
                logger.warning(f"🚫 Invalid Twilio signature for account {integration.account_id}")
                return twiml(403)

        await save_normalized_message(db, integration.account_id, from_twilio(form))
        return twiml()
    except Exception as e:
        logger.error(f"❌ Twilio webhook error: {e}")
        return twiml(500)


# ============================================================================
# Web form
# ============================================================================


class WebFormSubmission(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    message: str = Field(..., min_length=1, max_length=5000)
    service_type: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_us_phone(v)

    @model_validator(mode="after")
    def needs_contact(self):
        if not self.email and not self.phone:
            raise ValueError("email or phone is required")
        return self


@router.post("/web-form/{account_public_id}", status_code=201)
async def web_form_webhook(
    account_public_id: str,
    data: WebFormSubmission,
    _: None = Depends(web_form_limit),
    db: Session = Depends(get_db),
):
    """Website contact form: lands in the inbox and opens a lead"""
    account = db.query(Account).filter(Account.public_id == account_public_id).first()
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")

    saved = await save_normalized_message(db, account.id, from_web_form(data.model_dump()))

    first_name, _sep, last_name = data.name.strip().partition(" ")
    lead = Lead(
        account_id=account.id,
        first_name=first_name,
        last_name=last_name.strip() or None,
        email=data.email,
        phone=data.phone,
        address=data.address,
        source="web",
        status="new",
        service_type=data.service_type,
        notes=data.message,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)
    invalidate_dashboard(account.id)

    logger.info(f"🌐 Web form lead {lead.id} created for account {account.id}")
    return {"success": True, "leadId": lead.id, "conversationId": saved["conversation_id"]}


# ============================================================================
# Stripe
# ============================================================================


def handle_checkout_completed(db: Session, session: dict) -> Optional[int]:
    metadata = session.get("metadata") or {}
    invoice_id = metadata.get("invoice_id")
    if not invoice_id:
        logger.warning(f"⚠️ Checkout session {session.get('id')} has no invoice metadata")
        return None

    invoice = db.query(Invoice).filter(Invoice.id == int(invoice_id)).first()
    if not invoice:
        logger.warning(f"⚠️ Invoice {invoice_id} from checkout session not found")
        return None

    amount = (session.get("amount_total") or 0) / 100
    reference = session.get("payment_intent") or session.get("id")
    payment = record_payment(
        db,
        invoice,
        amount=amount,
        method="stripe",
        reference=reference,
        notes=f"Stripe checkout {session.get('id')}",
    )
    return payment.id if payment else None


@router.post("/stripe")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    try:
        event = parse_webhook_event(payload, request.headers.get("Stripe-Signature", ""))
    except StripeNotConfigured as e:
        logger.error(f"❌ {e}")
        raise HTTPException(status_code=500, detail="Stripe webhook not configured") from e
    except StripeSignatureError as e:
        logger.warning(f"🚫 Invalid Stripe webhook signature: {e}")
        raise HTTPException(status_code=400, detail="Invalid signature") from e
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON") from e

    event_type = event.get("type")
    logger.info(f"📥 Received Stripe webhook: {event_type}")

    payment_id = None
    if event_type == "checkout.session.completed":
        session = (event.get("data") or {}).get("object") or {}
        if session.get("payment_status", "paid") == "paid":
            payment_id = handle_checkout_completed(db, session)
    else:
        logger.info(f"ℹ️ Unhandled Stripe event type: {event_type}")

    return {"received": True, "event_type": event_type, "payment_id": payment_id}


# ============================================================================
# Square
# ============================================================================


def find_square_invoice(db: Session, account_id: int, payment: dict) -> Optional[Invoice]:
    keys = [k for k in (payment.get("invoice_id"), payment.get("order_id")) if k]
    criteria = [Invoice.square_invoice_id.in_(keys)] if keys else []
    if payment.get("reference_id"):
        criteria.append(Invoice.invoice_number == payment["reference_id"])
    if not criteria:
        return None
    return db.query(Invoice).filter(Invoice.account_id == account_id, or_(*criteria)).first()


def handle_square_payment(db: Session, merchant_id: Optional[str], payment: dict) -> Optional[int]:
    if (payment.get("status") or "").upper() != "COMPLETED":
        logger.info(f"ℹ️ Square payment {payment.get('id')} status {payment.get('status')} - skipping")
        return None

    integration = (
        db.query(SquareIntegration)
        .filter(SquareIntegration.merchant_id == merchant_id, SquareIntegration.is_active == True)  # noqa: E712
        .first()
    )
    if not integration:
        logger.warning(f"⚠️ No active Square integration for merchant {merchant_id}")
        return None

    invoice = find_square_invoice(db, integration.account_id, payment)
    if not invoice:
        logger.info(f"ℹ️ Square payment {payment.get('id')} does not match an invoice")
        return None

    amount = ((payment.get("amount_money") or {}).get("amount") or 0) / 100
    recorded = record_payment(
        db, invoice, amount=amount, method="square", reference=payment.get("id"), notes="Square payment"
    )
    return recorded.id if recorded else None


@router.post("/square")
async def square_webhook(request: Request, db: Session = Depends(get_db)):
    body = await request.body()

    if SQUARE_WEBHOOK_SIGNATURE_KEY:
        signature = request.headers.get("x-square-hmacsha256-signature", "")
        notification_url = SQUARE_WEBHOOK_URL or str(request.url)
        if not verify_square_signature(SQUARE_WEBHOOK_SIGNATURE_KEY, body, signature, notification_url):
            logger.error("❌ Invalid Square webhook signature")
            raise HTTPException(status_code=401, detail="Invalid signature")
    else:
        logger.warning("⚠️ SQUARE_WEBHOOK_SIGNATURE_KEY not configured, skipping verification")

    try:
        payload = json.loads(body.decode("utf-8"))
    except json.JSONDecodeError:
        logger.error("❌ Invalid JSON payload")
        raise HTTPException(status_code=400, detail="Invalid JSON") from None

    event_type = payload.get("type")
    logger.info(f"📥 Received Square webhook: {event_type}")

    payment_id = None
    if event_type in ("payment.created", "payment.updated"):
        payment = ((payload.get("data") or {}).get("object") or {}).get("payment") or {}
        payment_id = handle_square_payment(db, payload.get("merchant_id"), payment)
    else:
        logger.info(f"ℹ️ Unhandled Square event type: {event_type}")

    return {"status": "success", "event_type": event_type, "payment_id": payment_id}


__all__ = ["router"]

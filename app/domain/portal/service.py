"""Customer portal service - a client's own jobs, invoices and estimates"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailSendError, send_contact_request_email, send_emergency_alert
from ...models import Client, ContactRequest, Job
from ...models_invoice import Estimate, Invoice
from ...permissions import AccountContext
from ...services import stripe_service
from .schemas import ContactRequestCreate, EmergencyRequestCreate

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = ("sent", "partial", "overdue")

URGENCY_PRIORITY = {"high": "high", "urgent": "urgent", "critical": "urgent"}


def emergency_priority(urgency: str) -> str:
    return URGENCY_PRIORITY.get((urgency or "").lower(), "urgent")


class PortalService:
    def __init__(self, db: Session):
        self.db = db

    def _client(self, ctx: AccountContext) -> Client:
        client = (
            self.db.query(Client)
            .filter(Client.id == ctx.client_id, Client.account_id == ctx.account_id)
            .first()
        )
        if not client:
            raise HTTPException(status_code=404, detail="Client record not found")
        return client

    def list_jobs(self, ctx: AccountContext) -> list[Job]:
        return (
            self.db.query(Job)
            .filter(Job.account_id == ctx.account_id, Job.client_id == ctx.client_id)
            .filter(Job.status != "draft")
            .order_by(Job.service_date.desc(), Job.created_at.desc())
            .all()
        )

    def list_invoices(self, ctx: AccountContext) -> list[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(Invoice.account_id == ctx.account_id, Invoice.client_id == ctx.client_id)
            .filter(Invoice.status != "draft")
            .order_by(Invoice.created_at.desc())
            .all()
        )

    def list_estimates(self, ctx: AccountContext) -> list[Estimate]:
        return (
            self.db.query(Estimate)
            .filter(Estimate.account_id == ctx.account_id, Estimate.client_id == ctx.client_id)
            .filter(Estimate.status != "draft")
            .order_by(Estimate.created_at.desc())
            .all()
        )

    def create_payment_session(self, invoice_id: int, ctx: AccountContext) -> dict:
        if not stripe_service.is_configured():
            logger.error("❌ Stripe not configured: missing STRIPE_SECRET_KEY")
            raise HTTPException(status_code=500, detail="Payments are not configured")

        invoice = (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id, Invoice.account_id == ctx.account_id)
            .first()
        )
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        if invoice.client_id != ctx.client_id:
            logger.warning(f"⚠️ Customer {ctx.user_id} tried to pay invoice {invoice_id} of another client")
            raise HTTPException(status_code=403, detail="Access denied")
        if invoice.status not in PAYABLE_STATUSES or invoice.balance_due <= 0:
            raise HTTPException(status_code=400, detail="Invoice cannot be paid")

        try:
            session = stripe_service.create_invoice_checkout_session(invoice, ctx.user_id)
        except Exception as e:
            logger.error(f"❌ Error creating payment session for invoice {invoice.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create payment session") from e

        invoice.stripe_checkout_session_id = session["id"]
        self.db.commit()
        return {"url": session["url"]}

    async def submit_contact_request(self, data: ContactRequestCreate, ctx: AccountContext) -> dict:
        client = self._client(ctx)
        request = ContactRequest(
            account_id=ctx.account_id,
            client_id=client.id,
            user_id=ctx.user_id,
            category=data.category,
            subject=data.subject,
            message=data.message,
            priority="normal",
            status="open",
        )
        self.db.add(request)
        self.db.commit()

        try:
            await send_contact_request_email(
                customer_name=client.name,
                customer_email=ctx.email or client.email or "",
                category=data.category,
                subject=data.subject,
                message=data.message,
            )
        except EmailSendError as e:
            logger.error(f"❌ Failed to send contact email: {e}")
            raise HTTPException(status_code=500, detail="Failed to send message. Please try again.") from e

        return {"success": True, "message": "Your message has been sent successfully"}

    async def submit_emergency_request(self, data: EmergencyRequestCreate, ctx: AccountContext) -> dict:
        client = self._client(ctx)
        priority = emergency_priority(data.urgency)

        request = ContactRequest(
            account_id=ctx.account_id,
            client_id=client.id,
            user_id=ctx.user_id,
            category="emergency",
            subject=f"EMERGENCY: {data.location}",
            message=(
                f"Urgency: {data.urgency.upper()}\n"
                f"Location: {data.location}\n"
                f"Contact Phone: {data.contactPhone}\n"
                f"Description: {data.description}"
            ),
            location=data.location,
            contact_phone=data.contactPhone,
            priority=priority,
            status="open",
        )
        self.db.add(request)
        self.db.commit()
        logger.warning(f"🚨 Emergency request {request.id} from client {client.id} ({priority})")

        try:
            await send_emergency_alert(
                client_name=client.name,
                location=data.location,
                description=data.description,
                contact_phone=data.contactPhone,
                priority=priority,
            )
        except EmailSendError as e:
            logger.error(f"❌ Failed to send emergency email: {e}")
            raise HTTPException(
                status_code=500, detail="Failed to send emergency request. Please call us directly."
            ) from e

        return {
            "success": True,
            "message": "Emergency request submitted successfully. Our team will contact you shortly.",
        }

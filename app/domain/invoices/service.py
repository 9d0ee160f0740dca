"""Invoice service - billing, payment recording and balance tracking"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...cache import invalidate_dashboard
from ...config import FRONTEND_URL
from ...email_service import EmailSendError, send_invoice_email
from ...models import Account, Client, Job, JobNote
from ...models_invoice import Invoice, InvoicePayment
from ...permissions import AccountContext
from ...shared.numbering import generate_document_number, round_money
from ...shared.pagination import PageParams, paginate, pagination_meta
from ..jobs.automation import calculate_totals, normalize_line_items
from .repository import InvoiceRepository
from .schemas import InvoiceCreate, InvoiceUpdate, PaymentCreate

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_TERMS_DAYS = 30


def _sync_job_total_paid(db: Session, job_id: Optional[int]) -> None:
    if not job_id:
        return
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        return
    paid = (
        db.query(func.coalesce(func.sum(Invoice.amount_paid), 0))
        .filter(Invoice.job_id == job_id, Invoice.status != "cancelled")
        .scalar()
    )
    job.total_paid = round_money(float(paid or 0))


def recompute_invoice_status(db: Session, invoice: Invoice) -> None:
    """Derive amount_paid and status from the recorded payments (caller commits)"""
    db.flush()
    paid = (
        db.query(func.coalesce(func.sum(InvoicePayment.amount), 0))
        .filter(InvoicePayment.invoice_id == invoice.id)
        .scalar()
    )
    invoice.amount_paid = round_money(float(paid or 0))

    if invoice.status != "cancelled":
        if invoice.amount_paid > 0 and invoice.amount_paid >= (invoice.total or 0):
            invoice.status = "paid"
            invoice.paid_at = invoice.paid_at or datetime.utcnow()
        elif invoice.amount_paid > 0:
            invoice.status = "partial"
            invoice.paid_at = None
        elif invoice.status in ("paid", "partial"):
            invoice.status = "sent"
            invoice.paid_at = None

    _sync_job_total_paid(db, invoice.job_id)


def record_payment(
    db: Session,
    invoice: Invoice,
    amount: float,
    method: str = "other",
    reference: Optional[str] = None,
    notes: Optional[str] = None,
    paid_at: Optional[datetime] = None,
) -> Optional[InvoicePayment]:
    """Add a payment and update balances.

    Returns None without changes when the account already has a payment
    with the same method and reference.
    """
    if reference and InvoiceRepository.get_payment_by_reference(db, invoice.account_id, method, reference):
        logger.info(f"ℹ️ Payment {reference} already recorded - skipping")
        return None

    payment = InvoicePayment(
        invoice_id=invoice.id,
        account_id=invoice.account_id,
        amount=round_money(amount),
        method=method,
        reference=reference,
        notes=notes,
        paid_at=paid_at or datetime.utcnow(),
    )
    db.add(payment)
    recompute_invoice_status(db, invoice)
    db.commit()
    db.refresh(payment)
    db.refresh(invoice)
    invalidate_dashboard(invoice.account_id)
    logger.info(
        f"💰 Payment of ${payment.amount:.2f} ({method}) recorded on invoice {invoice.invoice_number} "
        f"- status {invoice.status}"
    )
    return payment


def create_invoice_from_job(db: Session, job: Job, user_id: Optional[int] = None) -> Invoice:
    """Bill a job's line items and move the job to invoiced"""
    if InvoiceRepository.get_open_invoice_for_job(db, job.id):
        raise HTTPException(status_code=409, detail="Job has already been invoiced")

    invoice = Invoice(
        account_id=job.account_id,
        client_id=job.client_id,
        job_id=job.id,
        invoice_number=generate_document_number("INV"),
        title=job.title,
        line_items=job.line_items or [],
        subtotal=job.subtotal or 0,
        tax_rate=job.tax_rate or 0,
        tax_amount=job.tax_amount or 0,
        total=job.total or 0,
        amount_paid=0,
        status="draft",
        due_date=datetime.utcnow() + timedelta(days=DEFAULT_PAYMENT_TERMS_DAYS),
    )
    db.add(invoice)
    db.flush()

    job.status = "invoiced"
    job.ready_for_invoice = False
    db.add(
        JobNote(
            job_id=job.id,
            account_id=job.account_id,
            user_id=user_id,
            content=f"Invoice {invoice.invoice_number} created",
            note_type="system",
        )
    )
    db.commit()
    db.refresh(invoice)
    logger.info(f"🧾 Invoice {invoice.invoice_number} created from job {job.job_number}")
    return invoice


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository()

    def list_invoices(
        self,
        ctx: AccountContext,
        params: PageParams,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
    ) -> dict:
        query = self.repo.build_query(self.db, ctx.account_id, status, client_id, params.sort_order)
        invoices, total = paginate(query, params)
        return {"invoices": invoices, "pagination": pagination_meta(params, total)}

    def get_invoice(self, invoice_id: int, ctx: AccountContext) -> Invoice:
        invoice = self.repo.get_invoice(self.db, invoice_id, ctx.account_id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return invoice

    def create_invoice(self, data: InvoiceCreate, ctx: AccountContext) -> Invoice:
        client = (
            self.db.query(Client)
            .filter(Client.id == data.client_id, Client.account_id == ctx.account_id)
            .first()
        )
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        if data.job_id:
            job = self.db.query(Job).filter(Job.id == data.job_id, Job.account_id == ctx.account_id).first()
            if not job:
                raise HTTPException(status_code=404, detail="Job not found")
            if job.client_id != client.id:
                raise HTTPException(status_code=400, detail="Job belongs to a different client")

        tax_rate = data.tax_rate
        if tax_rate is None:
            account = self.db.query(Account).filter(Account.id == ctx.account_id).first()
            tax_rate = (account.default_tax_rate if account else 0) or 0

        items = normalize_line_items(item.model_dump() for item in data.line_items)
        invoice = Invoice(
            account_id=ctx.account_id,
            client_id=client.id,
            job_id=data.job_id,
            invoice_number=generate_document_number("INV"),
            title=data.title,
            notes=data.notes,
            line_items=items,
            amount_paid=0,
            status="draft",
            due_date=data.due_date or datetime.utcnow() + timedelta(days=DEFAULT_PAYMENT_TERMS_DAYS),
            **calculate_totals(items, tax_rate),
        )
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        invalidate_dashboard(ctx.account_id)
        logger.info(f"🧾 Invoice {invoice.invoice_number} created for client {client.id}")
        return invoice

    def update_invoice(self, invoice_id: int, data: InvoiceUpdate, ctx: AccountContext) -> Invoice:
        invoice = self.get_invoice(invoice_id, ctx)
        if invoice.status in ("paid", "cancelled"):
            raise HTTPException(status_code=409, detail=f"Cannot edit a {invoice.status} invoice")

        updates = data.model_dump(exclude_unset=True)
        if updates.get("status") == "cancelled" and invoice.payments:
            raise HTTPException(status_code=409, detail="Cannot cancel an invoice with recorded payments")

        if "line_items" in updates or "tax_rate" in updates:
            if invoice.payments:
                raise HTTPException(status_code=409, detail="Cannot reprice an invoice with recorded payments")
            raw_items = updates.pop("line_items", None)
            items = normalize_line_items(raw_items) if raw_items is not None else (invoice.line_items or [])
            tax_rate = updates.pop("tax_rate", None)
            if tax_rate is None:
                tax_rate = invoice.tax_rate or 0
            updates["line_items"] = items
            updates.update(calculate_totals(items, tax_rate))

        invoice = self.repo.update_invoice(self.db, invoice, **updates)
        if updates.get("status") == "cancelled":
            _sync_job_total_paid(self.db, invoice.job_id)
            self.db.commit()
        invalidate_dashboard(ctx.account_id)
        return invoice

    def delete_invoice(self, invoice_id: int, ctx: AccountContext) -> dict:
        invoice = self.get_invoice(invoice_id, ctx)
        if invoice.status not in ("draft", "cancelled") or invoice.payments:
            raise HTTPException(
                status_code=409, detail="Only draft or cancelled invoices without payments can be deleted"
            )
        self.repo.delete_invoice(self.db, invoice)
        invalidate_dashboard(ctx.account_id)
        return {"message": "Invoice deleted"}

    async def send_invoice(self, invoice_id: int, ctx: AccountContext) -> Invoice:
        invoice = self.get_invoice(invoice_id, ctx)
        if invoice.status in ("paid", "cancelled"):
            raise HTTPException(status_code=409, detail=f"Cannot send a {invoice.status} invoice")

        client = invoice.client
        if not client or not client.email:
            raise HTTPException(status_code=400, detail="Client has no email address")

        account = self.db.query(Account).filter(Account.id == ctx.account_id).first()
        try:
            await send_invoice_email(
                to=client.email,
                client_name=client.name,
                business_name=account.name if account else "FieldDesk",
                invoice_number=invoice.invoice_number,
                amount=invoice.balance_due,
                due_date=invoice.due_date.strftime("%B %d, %Y") if invoice.due_date else None,
                portal_url=f"{FRONTEND_URL}/portal/invoices/{invoice.id}",
            )
        except EmailSendError as e:
            logger.error(f"❌ Failed to send invoice {invoice.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to send invoice email") from e

        if invoice.status == "draft":
            invoice.status = "sent"
        invoice.sent_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(invoice)
        invalidate_dashboard(ctx.account_id)
        logger.info(f"📧 Invoice {invoice.invoice_number} sent to {client.email}")
        return invoice

    def add_payment(self, invoice_id: int, data: PaymentCreate, ctx: AccountContext) -> Invoice:
        invoice = self.get_invoice(invoice_id, ctx)
        if invoice.status == "cancelled":
            raise HTTPException(status_code=400, detail="Cannot record payment on a cancelled invoice")
        payment = record_payment(
            self.db,
            invoice,
            amount=data.amount,
            method=data.method,
            reference=data.reference,
            notes=data.notes,
            paid_at=data.paid_at,
        )
        if payment is None:
            raise HTTPException(status_code=409, detail="A payment with this reference already exists")
        return invoice

    def delete_payment(self, invoice_id: int, payment_id: int, ctx: AccountContext) -> Invoice:
        invoice = self.get_invoice(invoice_id, ctx)
        payment = self.repo.get_payment(self.db, payment_id, invoice.id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")

        self.db.delete(payment)
        recompute_invoice_status(self.db, invoice)
        self.db.commit()
        self.db.refresh(invoice)
        invalidate_dashboard(ctx.account_id)
        logger.info(f"🗑️ Payment {payment_id} removed from invoice {invoice.invoice_number} - status {invoice.status}")
        return invoice

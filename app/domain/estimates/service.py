"""Estimate service - quoting, sending and client approval"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...cache import invalidate_dashboard
from ...config import FRONTEND_URL
from ...email_service import EmailSendError, send_estimate_email
from ...models import Account, Client, Job
from ...models_invoice import Estimate
from ...permissions import AccountContext
from ...shared.numbering import generate_document_number
from ...shared.pagination import PageParams, paginate, pagination_meta
from ..jobs.automation import calculate_totals, normalize_line_items
from .repository import EstimateRepository
from .schemas import EstimateApproveRequest, EstimateCreate, EstimateUpdate, PublicEstimateResponse

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 30


def get_request_ip(request: Request) -> str:
    """First x-forwarded-for hop, then x-real-ip"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or "unknown"


def is_expired(estimate: Estimate, now: Optional[datetime] = None) -> bool:
    if estimate.status == "expired":
        return True
    return bool(estimate.valid_until and (now or datetime.utcnow()) > estimate.valid_until)


def estimate_link(estimate: Estimate) -> str:
    return f"{FRONTEND_URL}/estimates/{estimate.public_id}"


class EstimateService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = EstimateRepository()

    def _client(self, client_id: int, account_id: int) -> Optional[Client]:
        return (
            self.db.query(Client)
            .filter(Client.id == client_id, Client.account_id == account_id)
            .first()
        )

    def list_estimates(
        self,
        ctx: AccountContext,
        params: PageParams,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
    ) -> dict:
        query = self.repo.build_query(self.db, ctx.account_id, status, client_id, params.sort_order)
        estimates, total = paginate(query, params)
        return {"estimates": estimates, "pagination": pagination_meta(params, total)}

    def get_estimate(self, estimate_id: int, ctx: AccountContext) -> Estimate:
        estimate = self.repo.get_estimate(self.db, estimate_id, ctx.account_id)
        if not estimate:
            raise HTTPException(status_code=404, detail="Estimate not found")
        return estimate

    def create_estimate(self, data: EstimateCreate, ctx: AccountContext) -> Estimate:
        if not self._client(data.client_id, ctx.account_id):
            raise HTTPException(status_code=404, detail="Client not found")

        tax_rate = data.tax_rate
        if tax_rate is None:
            account = self.db.query(Account).filter(Account.id == ctx.account_id).first()
            tax_rate = (account.default_tax_rate if account else 0) or 0

        items = normalize_line_items(item.model_dump() for item in data.line_items)
        estimate = self.repo.create_estimate(
            self.db,
            ctx.account_id,
            client_id=data.client_id,
            estimate_number=generate_document_number("EST"),
            title=data.title,
            description=data.description,
            notes=data.notes,
            line_items=items,
            valid_until=data.valid_until or datetime.utcnow() + timedelta(days=DEFAULT_VALIDITY_DAYS),
            status="draft",
            **calculate_totals(items, tax_rate),
        )
        logger.info(f"✅ Estimate {estimate.estimate_number} created for client {data.client_id}")
        return estimate

    def update_estimate(self, estimate_id: int, data: EstimateUpdate, ctx: AccountContext) -> Estimate:
        estimate = self.get_estimate(estimate_id, ctx)
        if estimate.status == "approved":
            raise HTTPException(status_code=409, detail="Approved estimates cannot be edited")

        updates = data.model_dump(exclude_unset=True)
        if "line_items" in updates or "tax_rate" in updates:
            raw_items = updates.pop("line_items", None)
            items = (
                normalize_line_items(raw_items) if raw_items is not None else (estimate.line_items or [])
            )
            tax_rate = updates.pop("tax_rate", None)
            if tax_rate is None:
                tax_rate = estimate.tax_rate or 0
            updates["line_items"] = items
            updates.update(calculate_totals(items, tax_rate))
        return self.repo.update_estimate(self.db, estimate, **updates)

    def delete_estimate(self, estimate_id: int, ctx: AccountContext) -> dict:
        estimate = self.get_estimate(estimate_id, ctx)
        if estimate.status == "approved":
            raise HTTPException(status_code=409, detail="Approved estimates cannot be deleted")
        self.repo.delete_estimate(self.db, estimate)
        return {"message": "Estimate deleted"}

    async def send_estimate(self, estimate_id: int, ctx: AccountContext) -> Estimate:
        estimate = self.get_estimate(estimate_id, ctx)
        if estimate.status in ("approved", "declined"):
            raise HTTPException(status_code=409, detail=f"Cannot send a {estimate.status} estimate")

        client = estimate.client
        if not client or not client.email:
            raise HTTPException(status_code=400, detail="Client has no email address")

        account = self.db.query(Account).filter(Account.id == ctx.account_id).first()
        try:
            await send_estimate_email(
                to=client.email,
                client_name=client.name,
                business_name=account.name if account else "FieldDesk",
                estimate_number=estimate.estimate_number,
                title=estimate.title,
                total=estimate.total or 0,
                approve_url=estimate_link(estimate),
            )
        except EmailSendError as e:
            logger.error(f"❌ Failed to send estimate {estimate.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to send estimate email") from e

        estimate.status = "sent"
        estimate.sent_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(estimate)
        logger.info(f"📧 Estimate {estimate.estimate_number} sent to {client.email}")
        return estimate

    # ------------------------------------------------------------------
    # Public approval flow
    # ------------------------------------------------------------------

    def _public_estimate(self, public_id: str) -> Estimate:
        estimate = self.repo.get_by_public_id(self.db, public_id)
        if not estimate:
            raise HTTPException(status_code=404, detail="Estimate not found")
        return estimate

    def get_public_estimate(self, public_id: str) -> PublicEstimateResponse:
        estimate = self._public_estimate(public_id)
        account = self.db.query(Account).filter(Account.id == estimate.account_id).first()
        return PublicEstimateResponse(
            public_id=estimate.public_id,
            estimate_number=estimate.estimate_number,
            title=estimate.title,
            description=estimate.description,
            line_items=estimate.line_items,
            subtotal=estimate.subtotal or 0,
            tax_amount=estimate.tax_amount or 0,
            total=estimate.total or 0,
            status=estimate.status,
            valid_until=estimate.valid_until,
            is_expired=is_expired(estimate),
            business_name=account.name if account else None,
            client_name=estimate.client.name if estimate.client else None,
        )

    def approve_estimate(
        self, public_id: str, data: EstimateApproveRequest, ip_address: str
    ) -> tuple[Estimate, Job]:
        """Record the client's approval and open a job from the estimate"""
        estimate = self._public_estimate(public_id)

        if estimate.status == "approved":
            raise HTTPException(status_code=400, detail="Estimate has already been approved")
        if estimate.status != "sent":
            raise HTTPException(status_code=400, detail="Estimate is not awaiting approval")
        now = datetime.utcnow()
        if is_expired(estimate, now):
            raise HTTPException(status_code=400, detail="This estimate has expired")

        estimate.status = "approved"
        estimate.approved_at = now
        estimate.approval_info = {
            "approvedAt": now.isoformat(),
            "approvedBy": data.clientName,
            "signature": data.clientSignature,
            "ipAddress": ip_address,
        }

        job = Job(
            account_id=estimate.account_id,
            client_id=estimate.client_id,
            estimate_id=estimate.id,
            job_number=generate_document_number("JOB"),
            title=estimate.title,
            description=estimate.description,
            status="quote",
            line_items=estimate.line_items,
            subtotal=estimate.subtotal,
            tax_rate=estimate.tax_rate,
            tax_amount=estimate.tax_amount,
            total=estimate.total,
        )
        self.db.add(job)
        self.db.flush()
        estimate.job_id = job.id
        self.db.commit()
        self.db.refresh(estimate)
        self.db.refresh(job)

        invalidate_dashboard(estimate.account_id)
        logger.info(
            f"✅ Estimate {estimate.estimate_number} approved by {data.clientName} - job {job.job_number} created"
        )
        return estimate, job

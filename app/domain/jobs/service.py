"""Job service - lifecycle, pricing totals, notes and invoicing of jobs"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_dashboard
from ...models import Account, Job, JobNote
from ...permissions import TECH, AccountContext
from ...shared.numbering import generate_document_number
from ...shared.pagination import PageParams, paginate, pagination_meta
from .automation import (
    ALLOWED_TRANSITIONS,
    DELETABLE_STATUSES,
    calculate_totals,
    get_suggestions,
    is_valid_transition,
    normalize_line_items,
    payment_status,
)
from .repository import JobRepository
from .schemas import JobCreate, JobResponse, JobStatusUpdate, JobUpdate, LineItemsReplace

logger = logging.getLogger(__name__)


def to_response(job: Job) -> JobResponse:
    response = JobResponse.model_validate(job)
    response.payment_status = payment_status(job.total or 0, job.total_paid or 0)
    return response


class JobService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = JobRepository()

    def _account(self, account_id: int) -> Optional[Account]:
        return self.db.query(Account).filter(Account.id == account_id).first()

    def _check_assignee(self, user_id: Optional[int], ctx: AccountContext) -> None:
        if user_id and not self.repo.user_in_account(self.db, user_id, ctx.account_id):
            raise HTTPException(status_code=400, detail="Assigned technician not found in this account")

    def list_jobs(
        self,
        ctx: AccountContext,
        params: PageParams,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        assigned_to: Optional[int] = None,
    ) -> dict:
        query = self.repo.build_query(
            self.db, ctx.account_id, status, client_id, assigned_to, params.sort_order
        )
        jobs, total = paginate(query, params)
        return {"jobs": [to_response(j) for j in jobs], "pagination": pagination_meta(params, total)}

    def get_job(self, job_id: int, ctx: AccountContext) -> Job:
        job = self.repo.get_job(self.db, job_id, ctx.account_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    def create_job(self, data: JobCreate, ctx: AccountContext) -> Job:
        if not self.repo.client_in_account(self.db, data.client_id, ctx.account_id):
            raise HTTPException(status_code=404, detail="Client not found")
        self._check_assignee(data.assigned_to, ctx)

        payload = data.model_dump(exclude={"line_items", "tax_rate"})
        tax_rate = data.tax_rate
        if tax_rate is None:
            account = self._account(ctx.account_id)
            tax_rate = (account.default_tax_rate if account else 0) or 0

        items = normalize_line_items(item.model_dump() for item in data.line_items)
        job = self.repo.create_job(
            self.db,
            ctx.account_id,
            job_number=generate_document_number("JOB"),
            line_items=items,
            **calculate_totals(items, tax_rate),
            **payload,
        )
        invalidate_dashboard(ctx.account_id)
        logger.info(f"✅ Job {job.job_number} created for account {ctx.account_id}")
        return job

    def update_job(self, job_id: int, data: JobUpdate, ctx: AccountContext) -> Job:
        job = self.get_job(job_id, ctx)
        updates = data.model_dump(exclude_unset=True)
        if "title" in updates and not updates["title"]:
            raise HTTPException(status_code=400, detail="Job title cannot be empty")
        if "assigned_to" in updates:
            self._check_assignee(updates["assigned_to"], ctx)
        if "tax_rate" in updates:
            updates.update(calculate_totals(job.line_items or [], updates["tax_rate"] or 0))
        return self.repo.update_job(self.db, job, **updates)

    def delete_job(self, job_id: int, ctx: AccountContext) -> dict:
        job = self.get_job(job_id, ctx)
        if job.status not in DELETABLE_STATUSES:
            raise HTTPException(
                status_code=409,
                detail=f"Only {', '.join(DELETABLE_STATUSES)} jobs can be deleted",
            )
        self.repo.delete_job(self.db, job)
        invalidate_dashboard(ctx.account_id)
        return {"message": "Job deleted"}

    def update_status(self, job_id: int, data: JobStatusUpdate, ctx: AccountContext) -> Job:
        job = self.get_job(job_id, ctx)

        if ctx.role == TECH and job.assigned_to != ctx.user_id:
            raise HTTPException(status_code=403, detail="You can only update jobs assigned to you")

        old_status = job.status
        if not is_valid_transition(old_status, data.status):
            allowed = ", ".join(ALLOWED_TRANSITIONS.get(old_status, ())) or "none"
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status transition from {old_status} to {data.status}. Allowed: {allowed}",
            )

        job.status = data.status
        if data.status == "completed":
            job.completed_at = datetime.utcnow()
            job.ready_for_invoice = True

        note = f"Status changed from {old_status} to {data.status}"
        if data.reason:
            note = f"{note}: {data.reason}"
        self.repo.add_note(self.db, job, note, ctx.user_id, note_type="status_change", commit=False)
        self.db.commit()
        self.db.refresh(job)
        invalidate_dashboard(ctx.account_id)
        logger.info(f"🔄 Job {job.id} {old_status} -> {data.status} by user {ctx.user_id}")

        if data.status == "completed":
            account = self._account(ctx.account_id)
            if account and account.auto_invoice_on_completion:
                from ..invoices.service import create_invoice_from_job

                create_invoice_from_job(self.db, job, ctx.user_id)
                self.db.refresh(job)
        return job

    def replace_line_items(self, job_id: int, data: LineItemsReplace, ctx: AccountContext) -> Job:
        job = self.get_job(job_id, ctx)
        if job.status in ("invoiced", "cancelled"):
            raise HTTPException(status_code=409, detail=f"Cannot change pricing on a {job.status} job")

        tax_rate = data.tax_rate if data.tax_rate is not None else (job.tax_rate or 0)
        items = normalize_line_items(item.model_dump() for item in data.line_items)
        return self.repo.update_job(
            self.db, job, line_items=items, **calculate_totals(items, tax_rate)
        )

    def list_notes(self, job_id: int, ctx: AccountContext) -> list[JobNote]:
        return list(self.get_job(job_id, ctx).notes)

    def add_note(self, job_id: int, content: str, ctx: AccountContext) -> JobNote:
        job = self.get_job(job_id, ctx)
        return self.repo.add_note(self.db, job, content.strip(), ctx.user_id)

    def get_suggestions(self, job_id: int, ctx: AccountContext) -> dict:
        job = self.get_job(job_id, ctx)
        return {
            "job_id": job.id,
            "status": job.status,
            "payment_status": payment_status(job.total or 0, job.total_paid or 0),
            "suggestions": get_suggestions(job),
        }

    def create_invoice(self, job_id: int, ctx: AccountContext):
        from ..invoices.service import create_invoice_from_job

        job = self.get_job(job_id, ctx)
        if job.status != "completed":
            raise HTTPException(status_code=400, detail="Only completed jobs can be invoiced")
        invoice = create_invoice_from_job(self.db, job, ctx.user_id)
        invalidate_dashboard(ctx.account_id)
        return invoice

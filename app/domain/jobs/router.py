"""Job router - FastAPI endpoints for jobs"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin, require_tech
from ...database import get_db
from ...permissions import AccountContext
from ...shared.pagination import PageParams, page_params
from ..invoices.schemas import InvoiceResponse
from .schemas import (
    JobCreate,
    JobListResponse,
    JobNoteCreate,
    JobNoteResponse,
    JobResponse,
    JobStatusUpdate,
    JobUpdate,
    LineItemsReplace,
)
from .service import JobService, to_response

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def get_job_service(db: Session = Depends(get_db)) -> JobService:
    return JobService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=JobListResponse)
async def list_jobs(
    status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None),
    assigned_to: Optional[int] = Query(None),
    params: PageParams = Depends(page_params),
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return service.list_jobs(ctx, params, status, client_id, assigned_to)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return to_response(service.get_job(job_id, ctx))


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(
    data: JobCreate,
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return to_response(service.create_job(data, ctx))


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: int,
    data: JobUpdate,
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return to_response(service.update_job(job_id, data, ctx))


@router.delete("/{job_id}")
async def delete_job(
    job_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return service.delete_job(job_id, ctx)


# ============================================================================
# WORKFLOW
# ============================================================================


@router.patch("/{job_id}/status", response_model=JobResponse)
async def update_job_status(
    job_id: int,
    data: JobStatusUpdate,
    ctx: AccountContext = Depends(require_tech),
    service: JobService = Depends(get_job_service),
):
    """Move a job through its lifecycle. Technicians may only move their own jobs."""
    return to_response(service.update_status(job_id, data, ctx))


@router.put("/{job_id}/line-items", response_model=JobResponse)
async def replace_line_items(
    job_id: int,
    data: LineItemsReplace,
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return to_response(service.replace_line_items(job_id, data, ctx))


@router.get("/{job_id}/suggestions")
async def get_job_suggestions(
    job_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return service.get_suggestions(job_id, ctx)


@router.post("/{job_id}/invoice", response_model=InvoiceResponse, status_code=201)
async def create_job_invoice(
    job_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return service.create_invoice(job_id, ctx)


# ============================================================================
# NOTES
# ============================================================================


@router.get("/{job_id}/notes", response_model=list[JobNoteResponse])
async def list_job_notes(
    job_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return service.list_notes(job_id, ctx)


@router.post("/{job_id}/notes", response_model=JobNoteResponse, status_code=201)
async def add_job_note(
    job_id: int,
    data: JobNoteCreate,
    ctx: AccountContext = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    return service.add_note(job_id, data.content, ctx)


__all__ = ["router"]

"""Technician portal router"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_tech
from ...database import get_db
from ...permissions import AccountContext
from ..jobs.schemas import JobNoteCreate, JobNoteResponse
from ..visits.schemas import VisitResponse, VisitWithJobResponse
from .schemas import (
    ChecklistItemCreate,
    ChecklistItemResponse,
    ChecklistItemToggle,
    TechJobDetail,
    TechVisitUpdate,
)
from .service import TechService

router = APIRouter(prefix="/tech", tags=["Technician Portal"])


def get_tech_service(db: Session = Depends(get_db)) -> TechService:
    return TechService(db)


@router.get("/schedule", response_model=list[VisitWithJobResponse])
async def my_schedule(
    days: int = Query(14, ge=1, le=90),
    ctx: AccountContext = Depends(require_tech),
    service: TechService = Depends(get_tech_service),
):
    """Upcoming visits assigned to the caller, soonest first"""
    return service.get_schedule(ctx, days)


@router.get("/today", response_model=list[VisitWithJobResponse])
async def my_day(
    ctx: AccountContext = Depends(require_tech),
    service: TechService = Depends(get_tech_service),
):
    return service.get_today(ctx)


@router.patch("/visits/{visit_id}", response_model=VisitResponse)
async def update_my_visit(
    visit_id: int,
    data: TechVisitUpdate,
    ctx: AccountContext = Depends(require_tech),
    service: TechService = Depends(get_tech_service),
):
    return service.update_visit(visit_id, data, ctx)


@router.get("/jobs/{job_id}", response_model=TechJobDetail)
async def get_my_job(
    job_id: int,
    ctx: AccountContext = Depends(require_tech),
    service: TechService = Depends(get_tech_service),
):
    return service.get_job(job_id, ctx)


@router.post("/jobs/{job_id}/notes", response_model=JobNoteResponse, status_code=201)
async def add_job_note(
    job_id: int,
    data: JobNoteCreate,
    ctx: AccountContext = Depends(require_tech),
    service: TechService = Depends(get_tech_service),
):
    return service.add_note(job_id, data.content, ctx)


@router.get("/jobs/{job_id}/checklist", response_model=list[ChecklistItemResponse])
async def get_checklist(
    job_id: int,
    ctx: AccountContext = Depends(require_tech),
    service: TechService = Depends(get_tech_service),
):
    return service.get_checklist(job_id, ctx)


@router.post("/jobs/{job_id}/checklist", response_model=ChecklistItemResponse, status_code=201)
async def add_checklist_item(
    job_id: int,
    data: ChecklistItemCreate,
    ctx: AccountContext = Depends(require_tech),
    service: TechService = Depends(get_tech_service),
):
    return service.add_checklist_item(job_id, data.item_text, ctx)


@router.patch("/checklist/{item_id}", response_model=ChecklistItemResponse)
async def toggle_checklist_item(
    item_id: int,
    data: Optional[ChecklistItemToggle] = None,
    ctx: AccountContext = Depends(require_tech),
    service: TechService = Depends(get_tech_service),
):
    """Flip completion, or set it explicitly with `is_completed`"""
    return service.toggle_checklist_item(item_id, data.is_completed if data else None, ctx)


__all__ = ["router"]

"""Visit router - admin scheduling of technician visits"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...permissions import AccountContext
from .schemas import VisitCreate, VisitResponse, VisitUpdate, VisitWithJobResponse
from .service import VisitService

router = APIRouter(prefix="/visits", tags=["Visits"])


def get_visit_service(db: Session = Depends(get_db)) -> VisitService:
    return VisitService(db)


@router.get("", response_model=list[VisitWithJobResponse])
async def list_visits(
    start: Optional[datetime] = Query(None, description="Visits starting at or after"),
    end: Optional[datetime] = Query(None, description="Visits starting before"),
    tech_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    ctx: AccountContext = Depends(require_admin),
    service: VisitService = Depends(get_visit_service),
):
    return service.list_visits(ctx, start, end, tech_id, status)


@router.post("", response_model=VisitResponse, status_code=201)
async def create_visit(
    data: VisitCreate,
    ctx: AccountContext = Depends(require_admin),
    service: VisitService = Depends(get_visit_service),
):
    return service.create_visit(data, ctx)


@router.patch("/{visit_id}", response_model=VisitResponse)
async def update_visit(
    visit_id: int,
    data: VisitUpdate,
    ctx: AccountContext = Depends(require_admin),
    service: VisitService = Depends(get_visit_service),
):
    return service.update_visit(visit_id, data, ctx)


@router.delete("/{visit_id}")
async def delete_visit(
    visit_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: VisitService = Depends(get_visit_service),
):
    return service.delete_visit(visit_id, ctx)


__all__ = ["router"]

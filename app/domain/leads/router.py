"""Lead router"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...permissions import AccountContext
from ...shared.pagination import PageParams, page_params
from .schemas import LeadConvertResponse, LeadCreate, LeadListResponse, LeadResponse, LeadUpdate
from .service import LeadService, to_response

router = APIRouter(prefix="/leads", tags=["Leads"])

require_leads = require_permission("manage_leads")


def get_lead_service(db: Session = Depends(get_db)) -> LeadService:
    return LeadService(db)


@router.get("", response_model=LeadListResponse)
async def list_leads(
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    source: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    sort: Literal["created_at", "urgency"] = Query("created_at"),
    params: PageParams = Depends(page_params),
    ctx: AccountContext = Depends(require_leads),
    service: LeadService = Depends(get_lead_service),
):
    """List leads; `sort=urgency` orders by follow-up urgency score"""
    return service.list_leads(ctx, params, status, priority, source, search, sort)


@router.get("/analytics")
async def lead_analytics(
    ctx: AccountContext = Depends(require_leads),
    service: LeadService = Depends(get_lead_service),
):
    return service.get_analytics(ctx)


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: int,
    ctx: AccountContext = Depends(require_leads),
    service: LeadService = Depends(get_lead_service),
):
    return to_response(service.get_lead(lead_id, ctx))


@router.post("", response_model=LeadResponse, status_code=201)
async def create_lead(
    data: LeadCreate,
    ctx: AccountContext = Depends(require_leads),
    service: LeadService = Depends(get_lead_service),
):
    return to_response(service.create_lead(data, ctx))


@router.patch("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: int,
    data: LeadUpdate,
    ctx: AccountContext = Depends(require_leads),
    service: LeadService = Depends(get_lead_service),
):
    return to_response(service.update_lead(lead_id, data, ctx))


@router.delete("/{lead_id}")
async def delete_lead(
    lead_id: int,
    ctx: AccountContext = Depends(require_leads),
    service: LeadService = Depends(get_lead_service),
):
    return service.delete_lead(lead_id, ctx)


@router.post("/{lead_id}/convert", response_model=LeadConvertResponse)
async def convert_lead(
    lead_id: int,
    ctx: AccountContext = Depends(require_leads),
    service: LeadService = Depends(get_lead_service),
):
    lead, client = service.convert_lead(lead_id, ctx)
    return LeadConvertResponse(lead=to_response(lead), client_id=client.id)


__all__ = ["router"]

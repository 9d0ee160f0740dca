"""Estimate router - admin estimate management and the public approval link"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...permissions import AccountContext
from ...rate_limiter import create_rate_limiter
from ...shared.pagination import PageParams, page_params
from .schemas import (
    EstimateApproveRequest,
    EstimateCreate,
    EstimateListResponse,
    EstimateResponse,
    EstimateUpdate,
    PublicEstimateResponse,
)
from .service import EstimateService, get_request_ip

router = APIRouter(prefix="/estimates", tags=["Estimates"])
public_router = APIRouter(prefix="/public/estimates", tags=["Public Estimates"])

approval_limit = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="estimate_approval")


def get_estimate_service(db: Session = Depends(get_db)) -> EstimateService:
    return EstimateService(db)


# ============================================================================
# ADMIN
# ============================================================================


@router.get("", response_model=EstimateListResponse)
async def list_estimates(
    status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None),
    params: PageParams = Depends(page_params),
    ctx: AccountContext = Depends(require_admin),
    service: EstimateService = Depends(get_estimate_service),
):
    return service.list_estimates(ctx, params, status, client_id)


@router.get("/{estimate_id}", response_model=EstimateResponse)
async def get_estimate(
    estimate_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: EstimateService = Depends(get_estimate_service),
):
    return service.get_estimate(estimate_id, ctx)


@router.post("", response_model=EstimateResponse, status_code=201)
async def create_estimate(
    data: EstimateCreate,
    ctx: AccountContext = Depends(require_admin),
    service: EstimateService = Depends(get_estimate_service),
):
    return service.create_estimate(data, ctx)


@router.patch("/{estimate_id}", response_model=EstimateResponse)
async def update_estimate(
    estimate_id: int,
    data: EstimateUpdate,
    ctx: AccountContext = Depends(require_admin),
    service: EstimateService = Depends(get_estimate_service),
):
    return service.update_estimate(estimate_id, data, ctx)


@router.delete("/{estimate_id}")
async def delete_estimate(
    estimate_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: EstimateService = Depends(get_estimate_service),
):
    return service.delete_estimate(estimate_id, ctx)


@router.post("/{estimate_id}/send", response_model=EstimateResponse)
async def send_estimate(
    estimate_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: EstimateService = Depends(get_estimate_service),
):
    """Email the approval link to the client and mark the estimate sent"""
    return await service.send_estimate(estimate_id, ctx)


# ============================================================================
# PUBLIC (no auth - the UUID in the link is the credential)
# ============================================================================


@public_router.get("/{public_id}", response_model=PublicEstimateResponse)
async def get_public_estimate(public_id: str, service: EstimateService = Depends(get_estimate_service)):
    return service.get_public_estimate(public_id)


@public_router.post("/{public_id}/approve")
async def approve_estimate(
    public_id: str,
    data: EstimateApproveRequest,
    request: Request,
    _: None = Depends(approval_limit),
    service: EstimateService = Depends(get_estimate_service),
):
    estimate, job = service.approve_estimate(public_id, data, get_request_ip(request))
    return {
        "success": True,
        "message": "Estimate approved",
        "estimateId": estimate.public_id,
        "status": estimate.status,
        "jobId": job.id,
        "jobNumber": job.job_number,
    }


__all__ = ["router", "public_router"]

"""Dashboard router"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...permissions import AccountContext
from .service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def get_dashboard_service(db: Session = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


@router.get("/stats")
async def dashboard_stats(
    ctx: AccountContext = Depends(require_admin),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Headline counts and money totals, cached per account for 60 seconds"""
    return service.get_stats(ctx)


@router.get("/today")
async def dashboard_today(
    ctx: AccountContext = Depends(require_admin),
    service: DashboardService = Depends(get_dashboard_service),
):
    return service.get_today(ctx)


__all__ = ["router"]

"""Customer portal router"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_customer
from ...database import get_db
from ...permissions import AccountContext
from ...rate_limiter import create_rate_limiter
from .schemas import ContactRequestCreate, EmergencyRequestCreate, PortalEstimate, PortalInvoice, PortalJob
from .service import PortalService

router = APIRouter(prefix="/portal", tags=["Customer Portal"])

contact_limit = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="portal_contact")
emergency_limit = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="portal_emergency")


def get_portal_service(db: Session = Depends(get_db)) -> PortalService:
    return PortalService(db)


@router.get("/jobs", response_model=list[PortalJob])
async def list_my_jobs(
    ctx: AccountContext = Depends(require_customer),
    service: PortalService = Depends(get_portal_service),
):
    return service.list_jobs(ctx)


@router.get("/invoices", response_model=list[PortalInvoice])
async def list_my_invoices(
    ctx: AccountContext = Depends(require_customer),
    service: PortalService = Depends(get_portal_service),
):
    return service.list_invoices(ctx)


@router.get("/estimates", response_model=list[PortalEstimate])
async def list_my_estimates(
    ctx: AccountContext = Depends(require_customer),
    service: PortalService = Depends(get_portal_service),
):
    return service.list_estimates(ctx)


@router.post("/invoices/{invoice_id}/pay")
async def pay_invoice(
    invoice_id: int,
    ctx: AccountContext = Depends(require_customer),
    service: PortalService = Depends(get_portal_service),
):
    """Start a Stripe Checkout session for the invoice balance"""
    return service.create_payment_session(invoice_id, ctx)


@router.post("/contact")
async def contact_us(
    data: ContactRequestCreate,
    _: None = Depends(contact_limit),
    ctx: AccountContext = Depends(require_customer),
    service: PortalService = Depends(get_portal_service),
):
    return await service.submit_contact_request(data, ctx)


@router.post("/emergency")
async def emergency_request(
    data: EmergencyRequestCreate,
    _: None = Depends(emergency_limit),
    ctx: AccountContext = Depends(require_customer),
    service: PortalService = Depends(get_portal_service),
):
    return await service.submit_emergency_request(data, ctx)


__all__ = ["router"]

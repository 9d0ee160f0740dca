"""Invoice router - FastAPI endpoints for invoices and payments"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...permissions import AccountContext
from ...shared.pagination import PageParams, page_params
from .schemas import InvoiceCreate, InvoiceListResponse, InvoiceResponse, InvoiceUpdate, PaymentCreate
from .service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    return InvoiceService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None),
    params: PageParams = Depends(page_params),
    ctx: AccountContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.list_invoices(ctx, params, status, client_id)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.get_invoice(invoice_id, ctx)


@router.post("", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    data: InvoiceCreate,
    ctx: AccountContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.create_invoice(data, ctx)


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdate,
    ctx: AccountContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.update_invoice(invoice_id, data, ctx)


@router.delete("/{invoice_id}")
async def delete_invoice(
    invoice_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.delete_invoice(invoice_id, ctx)


@router.post("/{invoice_id}/send", response_model=InvoiceResponse)
async def send_invoice(
    invoice_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return await service.send_invoice(invoice_id, ctx)


# ============================================================================
# PAYMENTS
# ============================================================================


@router.post("/{invoice_id}/payments", response_model=InvoiceResponse, status_code=201)
async def add_payment(
    invoice_id: int,
    data: PaymentCreate,
    ctx: AccountContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.add_payment(invoice_id, data, ctx)


@router.delete("/{invoice_id}/payments/{payment_id}", response_model=InvoiceResponse)
async def delete_payment(
    invoice_id: int,
    payment_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.delete_payment(invoice_id, payment_id, ctx)


__all__ = ["router"]

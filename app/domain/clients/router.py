"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin, require_permission
from ...database import get_db
from ...permissions import AccountContext
from ...shared.pagination import PageParams, page_params
from .schemas import (
    ActivityItem,
    BatchDeleteRequest,
    ClientCreate,
    ClientListResponse,
    ClientResponse,
    ClientUpdate,
)
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=ClientListResponse)
async def list_clients(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    params: PageParams = Depends(page_params),
    ctx: AccountContext = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return service.list_clients(ctx, params, status, search)


@router.get("/export")
async def export_clients_csv(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    ctx: AccountContext = Depends(require_permission("export_data")),
    service: ClientService = Depends(get_client_service),
):
    """Export clients as CSV with optional filters"""
    return service.export_clients_csv(ctx, status, search)


@router.post("/batch-delete")
async def batch_delete_clients(
    data: BatchDeleteRequest,
    ctx: AccountContext = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    """Delete several clients; those with jobs or invoices are skipped"""
    return service.batch_delete_clients(data.client_ids, ctx)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return service.get_client(client_id, ctx)


@router.get("/{client_id}/activity", response_model=list[ActivityItem])
async def get_client_activity(
    client_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return service.get_activity(client_id, ctx)


@router.post("", response_model=ClientResponse, status_code=201)
async def create_client(
    data: ClientCreate,
    ctx: AccountContext = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return service.create_client(data, ctx)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    data: ClientUpdate,
    ctx: AccountContext = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return service.update_client(client_id, data, ctx)


@router.delete("/{client_id}")
async def delete_client(
    client_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return service.delete_client(client_id, ctx)


__all__ = ["router"]

"""Price book endpoints"""

import logging
from typing import Literal, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..auth import require_admin
from ..permissions import AccountContext
from .engine import (
    ServiceItemNotFound,
    calculate_estimate,
    get_all_service_categories,
    get_all_service_items,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricebook", tags=["Price Book"])


class PricebookLineItem(BaseModel):
    id: Union[int, str]
    quantity: Optional[float] = Field(None, gt=0)
    materialCost: Optional[float] = Field(None, ge=0)
    tier: Optional[Literal["basic", "standard", "premium"]] = None


class PricebookCalculateRequest(BaseModel):
    lineItems: list[PricebookLineItem] = Field(..., min_length=1)


@router.get("/items")
async def list_service_items(
    category: Optional[str] = Query(None, description="Filter by category key"),
    ctx: AccountContext = Depends(require_admin),
):
    items = get_all_service_items()
    if category:
        items = [item for item in items if item["category_key"] == category]
    return {"items": items}


@router.get("/categories")
async def list_service_categories(ctx: AccountContext = Depends(require_admin)):
    return {"categories": get_all_service_categories()}


@router.post("/calculate")
async def calculate(data: PricebookCalculateRequest, ctx: AccountContext = Depends(require_admin)):
    try:
        return calculate_estimate([item.model_dump() for item in data.lineItems])
    except ServiceItemNotFound as e:
        raise HTTPException(status_code=400, detail=str(e))

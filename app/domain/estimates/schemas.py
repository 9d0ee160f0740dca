"""Estimate domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..jobs.schemas import LineItem, LineItemInput

EstimateStatus = Literal["draft", "sent", "approved", "declined", "expired"]


class EstimateCreate(BaseModel):
    client_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    line_items: list[LineItemInput] = Field(..., min_length=1)
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None


class EstimateUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    line_items: Optional[list[LineItemInput]] = None
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    valid_until: Optional[datetime] = None
    status: Optional[Literal["draft", "declined", "expired"]] = None
    notes: Optional[str] = None


class EstimateResponse(BaseModel):
    id: int
    public_id: str
    client_id: int
    estimate_number: str
    title: str
    description: Optional[str] = None
    line_items: Optional[list[LineItem]] = None
    subtotal: float = 0
    tax_rate: float = 0
    tax_amount: float = 0
    total: float = 0
    status: str
    valid_until: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approval_info: Optional[dict] = None
    job_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EstimateListResponse(BaseModel):
    estimates: list[EstimateResponse]
    pagination: dict


class PublicEstimateResponse(BaseModel):
    """What the client sees behind the approval link"""

    public_id: str
    estimate_number: str
    title: str
    description: Optional[str] = None
    line_items: Optional[list[LineItem]] = None
    subtotal: float = 0
    tax_amount: float = 0
    total: float = 0
    status: str
    valid_until: Optional[datetime] = None
    is_expired: bool = False
    business_name: Optional[str] = None
    client_name: Optional[str] = None


class EstimateApproveRequest(BaseModel):
    clientName: str = Field(..., max_length=200)
    clientSignature: str = Field(..., max_length=100_000)

    @field_validator("clientName", "clientSignature")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("is required")
        return v.strip()

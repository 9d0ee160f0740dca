"""Customer portal schemas - only fields a customer may see"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..jobs.schemas import LineItem


class PortalJob(BaseModel):
    id: int
    job_number: str
    title: str
    description: Optional[str] = None
    status: str
    service_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    total: float = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PortalInvoice(BaseModel):
    id: int
    invoice_number: str
    title: str
    line_items: Optional[list[LineItem]] = None
    subtotal: float = 0
    tax_amount: float = 0
    total: float = 0
    amount_paid: float = 0
    balance_due: float = 0
    status: str
    due_date: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PortalEstimate(BaseModel):
    id: int
    public_id: str
    estimate_number: str
    title: str
    description: Optional[str] = None
    line_items: Optional[list[LineItem]] = None
    total: float = 0
    status: str
    valid_until: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def _required(v: Optional[str]) -> str:
    if v is None or not v.strip():
        raise ValueError("is required")
    return v.strip()


class ContactRequestCreate(BaseModel):
    category: Literal["general", "billing", "scheduling", "service", "other"]
    subject: str = Field(..., max_length=255)
    message: str = Field(..., max_length=5000)

    @field_validator("subject", "message")
    @classmethod
    def not_blank(cls, v):
        return _required(v)


class EmergencyRequestCreate(BaseModel):
    location: str = Field(..., max_length=500)
    description: str = Field(..., max_length=5000)
    contactPhone: str = Field(..., max_length=30)
    urgency: str = "urgent"

    @field_validator("location", "description", "contactPhone")
    @classmethod
    def not_blank(cls, v):
        return _required(v)

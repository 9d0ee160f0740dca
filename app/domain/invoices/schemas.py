"""Invoice domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..jobs.schemas import LineItem, LineItemInput

InvoiceStatus = Literal["draft", "sent", "partial", "paid", "overdue", "cancelled"]
PaymentMethod = Literal["cash", "check", "card", "bank_transfer", "stripe", "square", "other"]


class InvoiceCreate(BaseModel):
    client_id: int
    job_id: Optional[int] = None
    title: str = Field(..., min_length=1, max_length=255)
    line_items: list[LineItemInput] = Field(..., min_length=1)
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class InvoiceUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    line_items: Optional[list[LineItemInput]] = None
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    status: Optional[Literal["cancelled"]] = None


class PaymentCreate(BaseModel):
    amount: float = Field(..., gt=0)
    method: PaymentMethod = "other"
    reference: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None


class PaymentResponse(BaseModel):
    id: int
    invoice_id: int
    amount: float
    method: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: int
    public_id: Optional[str] = None
    client_id: int
    job_id: Optional[int] = None
    invoice_number: str
    title: str
    notes: Optional[str] = None
    line_items: Optional[list[LineItem]] = None
    subtotal: float = 0
    tax_rate: float = 0
    tax_amount: float = 0
    total: float = 0
    amount_paid: float = 0
    balance_due: float = 0
    currency: str = "USD"
    status: str
    due_date: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    payments: list[PaymentResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceResponse]
    pagination: dict

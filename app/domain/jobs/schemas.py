"""Job domain schemas"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

JobStatus = Literal["draft", "quote", "scheduled", "in_progress", "completed", "invoiced", "cancelled"]
JobPriority = Literal["low", "medium", "high", "urgent"]


class LineItemInput(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    quantity: float = Field(1, gt=0)
    unit_price: float = Field(..., ge=0)


class LineItem(LineItemInput):
    total: float


def _validate_time(v):
    if v is None:
        return v
    try:
        datetime.strptime(v, "%H:%M")
    except ValueError as e:
        raise ValueError("scheduled_time must be HH:MM") from e
    return v


class JobCreate(BaseModel):
    client_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: Literal["draft", "quote", "scheduled"] = "draft"
    priority: JobPriority = "medium"
    address: Optional[str] = Field(None, max_length=500)
    service_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    assigned_to: Optional[int] = None
    line_items: list[LineItemInput] = []
    tax_rate: Optional[float] = Field(None, ge=0, le=1)

    @field_validator("scheduled_time")
    @classmethod
    def check_scheduled_time(cls, v):
        return _validate_time(v)


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[JobPriority] = None
    address: Optional[str] = Field(None, max_length=500)
    service_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    assigned_to: Optional[int] = None
    tax_rate: Optional[float] = Field(None, ge=0, le=1)

    @field_validator("scheduled_time")
    @classmethod
    def check_scheduled_time(cls, v):
        return _validate_time(v)


class JobStatusUpdate(BaseModel):
    status: JobStatus
    reason: Optional[str] = Field(None, max_length=500)


class LineItemsReplace(BaseModel):
    line_items: list[LineItemInput]
    tax_rate: Optional[float] = Field(None, ge=0, le=1)


class JobNoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class JobNoteResponse(BaseModel):
    id: int
    content: str
    note_type: str
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobResponse(BaseModel):
    id: int
    public_id: Optional[str] = None
    job_number: str
    client_id: int
    estimate_id: Optional[int] = None
    assigned_to: Optional[int] = None
    title: str
    description: Optional[str] = None
    status: str
    priority: Optional[str] = None
    address: Optional[str] = None
    service_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    line_items: Optional[list[LineItem]] = None
    subtotal: float = 0
    tax_rate: float = 0
    tax_amount: float = 0
    total: float = 0
    total_paid: float = 0
    payment_status: Optional[str] = None
    ready_for_invoice: bool = False
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    pagination: dict

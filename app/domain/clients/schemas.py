"""Client domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_us_phone

CLIENT_STATUSES = {"active", "inactive", "archived"}


class ClientBase(BaseModel):
    company_name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        if v:
            return validate_email(v)
        return v


class ClientCreate(ClientBase):
    """Schema for creating a new client"""

    name: str = Field(..., min_length=1, max_length=200)
    source: Optional[str] = "manual"


class ClientUpdate(ClientBase):
    """Schema for updating an existing client"""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in CLIENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(sorted(CLIENT_STATUSES))}")
        return v


class ClientResponse(BaseModel):
    id: int
    public_id: Optional[str] = None
    name: str
    company_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    status: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    square_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientListResponse(BaseModel):
    clients: list[ClientResponse]
    pagination: dict


class BatchDeleteRequest(BaseModel):
    client_ids: list[int] = Field(..., min_length=1)


class ActivityItem(BaseModel):
    type: str  # job, estimate, invoice
    id: int
    number: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[float] = None
    date: Optional[datetime] = None

"""Lead domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_us_phone

LEAD_STATUSES = (
    "new",
    "contacted",
    "qualified",
    "proposal_sent",
    "negotiating",
    "converted",
    "lost",
    "unqualified",
)
LEAD_PRIORITIES = ("low", "medium", "high", "urgent")
LEAD_SOURCES = ("web", "phone", "email", "referral", "walk_in", "sms", "whatsapp", "other")

LeadStatus = Literal[
    "new", "contacted", "qualified", "proposal_sent", "negotiating", "converted", "lost", "unqualified"
]
LeadPriority = Literal["low", "medium", "high", "urgent"]
LeadSource = Literal["web", "phone", "email", "referral", "walk_in", "sms", "whatsapp", "other"]


class LeadBase(BaseModel):
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    service_type: Optional[str] = None
    estimated_value: Optional[float] = Field(None, ge=0)
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


class LeadCreate(LeadBase):
    first_name: str = Field(..., min_length=1, max_length=100)
    source: LeadSource = "web"
    status: LeadStatus = "new"
    priority: LeadPriority = "medium"


class LeadUpdate(LeadBase):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    source: Optional[LeadSource] = None
    status: Optional[LeadStatus] = None
    priority: Optional[LeadPriority] = None


class LeadResponse(BaseModel):
    id: int
    public_id: Optional[str] = None
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    address: Optional[str] = None
    source: Optional[str] = None
    status: str
    priority: Optional[str] = None
    service_type: Optional[str] = None
    estimated_value: Optional[float] = None
    notes: Optional[str] = None
    converted_client_id: Optional[int] = None
    converted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    urgency_score: Optional[int] = None

    class Config:
        from_attributes = True


class LeadListResponse(BaseModel):
    leads: list[LeadResponse]
    pagination: dict


class LeadConvertResponse(BaseModel):
    lead: LeadResponse
    client_id: int

"""Account and team schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_email, validate_us_phone


class AccountResponse(BaseModel):
    id: int
    public_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None
    default_tax_rate: float = 0
    auto_invoice_on_completion: bool = False

    class Config:
        from_attributes = True


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = Field(None, max_length=64)
    default_tax_rate: Optional[float] = Field(None, ge=0, le=1)
    auto_invoice_on_completion: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_us_phone(v)


class TeamMemberResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: str
    permissions: Optional[list[str]] = None
    client_id: Optional[int] = None
    is_active: bool = True
    invite_pending: bool = False
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamInvite(BaseModel):
    email: str
    full_name: Optional[str] = Field(None, max_length=255)
    role: Literal["ADMIN", "TECH", "CUSTOMER"]
    client_id: Optional[int] = None
    permissions: Optional[list[str]] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        email = validate_email(v)
        if not email:
            raise ValueError("email is required")
        return email

    @model_validator(mode="after")
    def customer_needs_client(self):
        if self.role == "CUSTOMER" and not self.client_id:
            raise ValueError("client_id is required for CUSTOMER users")
        return self


class TeamMemberUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=255)
    role: Optional[Literal["OWNER", "ADMIN", "TECH", "CUSTOMER"]] = None
    permissions: Optional[list[str]] = None
    client_id: Optional[int] = None
    is_active: Optional[bool] = None

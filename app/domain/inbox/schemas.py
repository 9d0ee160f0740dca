"""Inbox schemas"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class InboxCustomer(BaseModel):
    id: int
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class ConversationSummary(BaseModel):
    id: int
    public_id: str
    title: str
    status: str
    lead_score: Optional[str] = None
    primary_channel: str
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    customer: Optional[InboxCustomer] = None

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    id: int
    channel: str
    direction: str
    subject: Optional[str] = None
    message_text: Optional[str] = None
    attachments: Optional[list[dict[str, Any]]] = None
    ai_summary: Optional[str] = None
    ai_category: Optional[str] = None
    ai_urgency: Optional[str] = None
    ai_next_action: Optional[str] = None
    ai_extracted: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConversationDetail(ConversationSummary):
    messages: list[MessageResponse] = []


class ConversationListResponse(BaseModel):
    conversations: list[ConversationSummary]
    pagination: dict


class ConversationUpdate(BaseModel):
    status: Literal["open", "closed"]


class ReplyCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)
    subject: Optional[str] = Field(None, max_length=500)
    channel: Optional[Literal["sms", "whatsapp", "email"]] = None

    @field_validator("message")
    @classmethod
    def check_message(cls, v):
        if not v.strip():
            raise ValueError("message cannot be blank")
        return v.strip()

"""Technician portal schemas"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..jobs.schemas import JobNoteResponse, LineItem


class TechVisitUpdate(BaseModel):
    status: Optional[Literal["in_progress", "completed"]] = None
    notes: Optional[str] = Field(None, max_length=5000)


class TechJobDetail(BaseModel):
    id: int
    job_number: str
    title: str
    description: Optional[str] = None
    status: str
    priority: Optional[str] = None
    address: Optional[str] = None
    service_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    line_items: Optional[list[LineItem]] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    notes: list[JobNoteResponse] = []


class ChecklistItemCreate(BaseModel):
    item_text: str = Field(..., max_length=500)

    @field_validator("item_text")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("item_text is required")
        return v.strip()


class ChecklistItemToggle(BaseModel):
    is_completed: Optional[bool] = None


class ChecklistItemResponse(BaseModel):
    id: int
    job_id: int
    item_text: str
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    sort_order: int = 0

    class Config:
        from_attributes = True

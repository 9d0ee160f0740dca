"""Visit domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

VisitStatus = Literal["scheduled", "in_progress", "completed", "cancelled"]


class VisitCreate(BaseModel):
    job_id: int
    tech_id: Optional[int] = None
    start_at: datetime
    end_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=5000)

    @model_validator(mode="after")
    def check_window(self):
        if self.end_at and self.end_at <= self.start_at:
            raise ValueError("start_at must be before end_at")
        return self


class VisitUpdate(BaseModel):
    tech_id: Optional[int] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    status: Optional[VisitStatus] = None
    notes: Optional[str] = Field(None, max_length=5000)


class VisitResponse(BaseModel):
    id: int
    public_id: Optional[str] = None
    job_id: int
    tech_id: Optional[int] = None
    start_at: datetime
    end_at: Optional[datetime] = None
    status: str
    notes: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VisitWithJobResponse(VisitResponse):
    """Visit plus the job fields a technician needs on site"""

    job_number: Optional[str] = None
    job_title: Optional[str] = None
    job_status: Optional[str] = None
    address: Optional[str] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None

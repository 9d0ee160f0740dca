"""
Visit Model for Job Scheduling
Represents a technician time slot on a job
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .database import Base
from .models import generate_public_id


class Visit(Base):
    """
    A scheduled visit for a job.
    Status workflow: scheduled → in_progress → completed (or cancelled)
    """

    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    tech_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=True)
    status = Column(String(20), default="scheduled", nullable=False)
    notes = Column(Text, nullable=True)

    # Set by the technician portal
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    job = relationship("Job", back_populates="visits")
    technician = relationship("User", foreign_keys=[tech_id])

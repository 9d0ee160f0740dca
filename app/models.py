import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class Account(Base):
    """A field-service business (tenant). Every business row hangs off an account."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    timezone = Column(String(64), default="America/New_York")
    default_tax_rate = Column(Float, default=0.0)  # e.g. 0.0825 for 8.25%
    auto_invoice_on_completion = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    users = relationship("User", back_populates="account", foreign_keys="User.account_id")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    auth_uid = Column(String(255), unique=True, index=True, nullable=True)  # null until invite accepted
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="OWNER")  # OWNER, ADMIN, TECH, CUSTOMER
    permissions = Column(JSON, nullable=True)  # Extra permissions on top of role defaults
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)  # CUSTOMER users only
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("Account", back_populates="users", foreign_keys=[account_id])
    client = relationship("Client", foreign_keys=[client_id])


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    company_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True)
    status = Column(String(20), default="active")  # active, inactive, archived
    source = Column(String(50), nullable=True)  # manual, lead, square, portal
    notes = Column(Text, nullable=True)
    square_customer_id = Column(String(255), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    jobs = relationship("Job", back_populates="client")


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    company_name = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    source = Column(String(50), default="web")  # web, phone, email, referral, walk_in, sms
    status = Column(String(30), default="new")
    priority = Column(String(20), default="medium")  # low, medium, high, urgent
    service_type = Column(String(100), nullable=True)
    estimated_value = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    converted_client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    converted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    estimate_id = Column(Integer, ForeignKey("estimates.id"), nullable=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    job_number = Column(String(50), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="draft", nullable=False)
    priority = Column(String(20), default="medium")
    address = Column(String(500), nullable=True)
    service_date = Column(Date, nullable=True)
    scheduled_time = Column(String(10), nullable=True)  # HH:MM
    # Pricing - line items stored as [{description, quantity, unit_price, total}]
    line_items = Column(JSON, nullable=True)
    subtotal = Column(Float, default=0.0)
    tax_rate = Column(Float, default=0.0)
    tax_amount = Column(Float, default=0.0)
    total = Column(Float, default=0.0)
    total_paid = Column(Float, default=0.0)
    ready_for_invoice = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client", back_populates="jobs")
    technician = relationship("User", foreign_keys=[assigned_to])
    notes = relationship(
        "JobNote", back_populates="job", cascade="all, delete-orphan", order_by="JobNote.created_at"
    )
    checklist_items = relationship(
        "JobChecklistItem",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="JobChecklistItem.sort_order",
    )
    visits = relationship("Visit", back_populates="job", cascade="all, delete-orphan")


class JobNote(Base):
    __tablename__ = "job_notes"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    content = Column(Text, nullable=False)
    note_type = Column(String(30), default="note")  # note, status_change, system
    created_at = Column(DateTime, default=datetime.utcnow)

    job = relationship("Job", back_populates="notes")
    author = relationship("User")


class JobChecklistItem(Base):
    __tablename__ = "job_checklist_items"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    item_text = Column(String(500), nullable=False)
    is_completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
    completed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    job = relationship("Job", back_populates="checklist_items")


class ContactRequest(Base):
    """Customer portal contact and emergency requests"""

    __tablename__ = "contact_requests"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    category = Column(String(30), default="general")  # general, billing, scheduling, emergency
    subject = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    location = Column(String(500), nullable=True)
    contact_phone = Column(String(20), nullable=True)
    priority = Column(String(20), default="normal")
    status = Column(String(20), default="open")
    created_at = Column(DateTime, default=datetime.utcnow)

"""
Estimate, Invoice and Payment Models for Client Billing
"""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .database import Base
from .models import generate_public_id


class Estimate(Base):
    """Quote sent to a client; approving it creates a job"""

    __tablename__ = "estimates"

    id = Column(Integer, primary_key=True, index=True)
    # Public UUID used in the client-facing approval link
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    estimate_number = Column(String(50), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    line_items = Column(JSON, nullable=True)
    subtotal = Column(Float, default=0.0)
    tax_rate = Column(Float, default=0.0)
    tax_amount = Column(Float, default=0.0)
    total = Column(Float, default=0.0)

    status = Column(String(20), default="draft")  # draft, sent, approved, declined, expired
    valid_until = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approval_info = Column(JSON, nullable=True)  # approvedAt, approvedBy, signature, ipAddress
    job_id = Column(Integer, nullable=True)  # Job created on approval
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client")


class Invoice(Base):
    """Invoice model for client billing"""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=True, index=True)

    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)

    line_items = Column(JSON, nullable=True)
    subtotal = Column(Float, default=0.0)
    tax_rate = Column(Float, default=0.0)
    tax_amount = Column(Float, default=0.0)
    total = Column(Float, nullable=False, default=0.0)
    amount_paid = Column(Float, default=0.0)
    currency = Column(String(10), default="USD")

    status = Column(String(20), default="draft")  # draft, sent, partial, paid, overdue, cancelled
    due_date = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    # Payment processors
    stripe_checkout_session_id = Column(String(255), nullable=True, index=True)
    square_invoice_id = Column(String(255), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client")
    payments = relationship(
        "InvoicePayment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoicePayment.paid_at",
    )

    @property
    def balance_due(self) -> float:
        return round(max((self.total or 0) - (self.amount_paid or 0), 0), 2)


class InvoicePayment(Base):
    """A payment recorded against an invoice (manual, Stripe or Square)"""

    __tablename__ = "invoice_payments"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    amount = Column(Float, nullable=False)
    method = Column(String(20), default="other")  # cash, check, card, stripe, square, other
    reference = Column(String(255), nullable=True, index=True)  # processor payment id
    notes = Column(Text, nullable=True)
    paid_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)

    invoice = relationship("Invoice", back_populates="payments")

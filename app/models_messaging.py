"""
Unified Inbox Models
Customers, conversations and messages from every intake channel
(email, SMS, WhatsApp, web forms) plus summarized emails and alerts
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base
from .models import generate_public_id


class Customer(Base):
    """A contact identity seen in the inbox (matched by phone, then email)"""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(32), nullable=True, index=True)
    address = Column(String(500), nullable=True)
    source = Column(String(20), nullable=True)  # channel the customer first wrote in on
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    primary_channel = Column(String(20), nullable=False)
    status = Column(String(20), default="open", nullable=False)  # open, closed
    lead_score = Column(String(1), nullable=True)  # A, B, C
    last_message_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        UniqueConstraint("account_id", "channel", "external_id", name="uq_message_external"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    channel = Column(String(20), nullable=False)  # email, sms, whatsapp, web_form
    direction = Column(String(10), nullable=False)  # inbound, outbound
    external_id = Column(String(255), nullable=True)
    subject = Column(String(500), nullable=True)
    message_text = Column(Text, nullable=True)
    attachments = Column(JSON, nullable=True)
    raw_payload = Column(JSON, nullable=True)

    # AI triage
    ai_summary = Column(Text, nullable=True)
    ai_category = Column(String(40), nullable=True)
    ai_urgency = Column(String(10), nullable=True)
    ai_next_action = Column(Text, nullable=True)
    ai_extracted = Column(JSON, nullable=True)
    ai_processed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    conversation = relationship("Conversation", back_populates="messages")


class EmailMessage(Base):
    """Summarized email delivered by the email processing pipeline"""

    __tablename__ = "email_messages"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    gmail_message_id = Column(String(255), nullable=True, index=True)
    sender = Column(String(255), nullable=True)
    subject = Column(String(500), nullable=True)
    summary = Column(Text, nullable=True)
    category = Column(String(20), default="other")  # spending, billing, leads, other, junk
    priority = Column(String(20), default="medium")
    confidence = Column(Float, nullable=True)
    extracted_data = Column(JSON, nullable=True)
    received_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    alert_type = Column(String(40), nullable=False)  # new_lead, emergency, payment_received
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    entity_type = Column(String(40), nullable=True)
    entity_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

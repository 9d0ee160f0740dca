"""
Persist a NormalizedMessage into the unified inbox

Customer upsert -> conversation reuse -> message insert -> AI triage.
"""

import logging
from datetime import datetime
from typing import Optional

from arq import create_pool
from sqlalchemy.orm import Session

from ..config import OPENAI_API_KEY
from ..models_messaging import Conversation, Customer, Message
from .normalize import Identity, NormalizedMessage

logger = logging.getLogger(__name__)


def find_or_create_customer(db: Session, account_id: int, identity: Identity, channel: str) -> Customer:
    customer = None
    if identity.phone:
        customer = (
            db.query(Customer)
            .filter(Customer.account_id == account_id, Customer.phone == identity.phone)
            .first()
        )
    if not customer and identity.email:
        customer = (
            db.query(Customer)
            .filter(Customer.account_id == account_id, Customer.email == identity.email.lower())
            .first()
        )

    if customer:
        customer.full_name = identity.name or customer.full_name
        customer.email = (identity.email.lower() if identity.email else None) or customer.email
        customer.phone = identity.phone or customer.phone
        db.flush()
        return customer

    customer = Customer(
        account_id=account_id,
        full_name=identity.name,
        email=identity.email.lower() if identity.email else None,
        phone=identity.phone,
        source=channel,
    )
    db.add(customer)
    db.flush()
    logger.info(f"👤 New inbox customer {customer.id} from {channel}")
    return customer


def find_or_create_conversation(db: Session, customer: Customer, channel: str) -> Conversation:
    conversation = (
        db.query(Conversation)
        .filter(Conversation.customer_id == customer.id, Conversation.status == "open")
        .order_by(Conversation.last_message_at.desc(), Conversation.id.desc())
        .first()
    )
    if conversation:
        return conversation

    conversation = Conversation(
        account_id=customer.account_id,
        customer_id=customer.id,
        title=customer.full_name or "New conversation",
        primary_channel=channel,
        status="open",
    )
    db.add(conversation)
    db.flush()
    return conversation


def find_duplicate(db: Session, account_id: int, msg: NormalizedMessage) -> Optional[Message]:
    if not msg.external_id:
        return None
    return (
        db.query(Message)
        .filter(
            Message.account_id == account_id,
            Message.channel == msg.channel,
            Message.external_id == msg.external_id,
        )
        .first()
    )


async def enqueue_ai_processing(message_id: int) -> None:
    """Queue AI triage on the worker. Never raises."""
    if not OPENAI_API_KEY:
        logger.debug(f"OpenAI not configured, skipping AI triage for message {message_id}")
        return

    from ..worker import get_redis_settings

    try:
        pool = await create_pool(get_redis_settings())
        try:
            await pool.enqueue_job("process_message_ai_task", message_id)
        finally:
            await pool.close()
        logger.info(f"🤖 AI triage queued for message {message_id}")
    except Exception as e:
        logger.error(f"❌ Failed to queue AI triage for message {message_id}: {e}")


def store_normalized_message(db: Session, account_id: int, msg: NormalizedMessage) -> dict:
    """Write customer, conversation and message rows. Returns ids plus a `duplicate` flag."""
    duplicate = find_duplicate(db, account_id, msg)
    if duplicate:
        logger.info(f"♻️ Duplicate {msg.channel} message {msg.external_id} ignored")
        return {
            "customer_id": duplicate.customer_id,
            "conversation_id": duplicate.conversation_id,
            "message_id": duplicate.id,
            "duplicate": True,
        }

    received_at = msg.received_at or datetime.utcnow()
    identity = msg.sender if msg.direction == "inbound" else msg.recipient

    try:
        customer = find_or_create_customer(db, account_id, identity, msg.channel)
        conversation = find_or_create_conversation(db, customer, msg.channel)

        message = Message(
            account_id=account_id,
            conversation_id=conversation.id,
            customer_id=customer.id,
            channel=msg.channel,
            direction=msg.direction,
            external_id=msg.external_id,
            subject=msg.subject,
            message_text=msg.text,
            attachments=msg.attachments_json(),
            raw_payload=msg.raw_payload,
            created_at=received_at,
        )
        db.add(message)

        conversation.last_message_at = received_at
        conversation.updated_at = datetime.utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"💬 Saved {msg.direction} {msg.channel} message {message.id} "
        f"to conversation {conversation.id} (account {account_id})"
    )
    return {
        "customer_id": customer.id,
        "conversation_id": conversation.id,
        "message_id": message.id,
        "duplicate": False,
    }


async def save_normalized_message(db: Session, account_id: int, msg: NormalizedMessage) -> dict:
    result = store_normalized_message(db, account_id, msg)
    if not result["duplicate"] and msg.direction == "inbound":
        await enqueue_ai_processing(result["message_id"])
    return result

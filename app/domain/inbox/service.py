"""Inbox service - unified conversation list, detail and replies"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailSendError, send_reply_email
from ...models import Account
from ...models_messaging import Conversation, Message
from ...permissions import AccountContext
from ...services.twilio_service import send_sms
from .repository import InboxRepository
from .schemas import ConversationUpdate, ReplyCreate

logger = logging.getLogger(__name__)

PHONE_CHANNELS = ("sms", "whatsapp")


class InboxService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = InboxRepository()

    def list_conversations(
        self, ctx: AccountContext, status: str = "open", hide_spam: bool = True, page: int = 1, page_size: int = 20
    ) -> dict:
        query = self.repo.build_query(self.db, ctx.account_id, status, hide_spam)
        total = query.order_by(None).count()
        conversations = query.offset((page - 1) * page_size).limit(page_size).all()
        return {
            "conversations": conversations,
            "pagination": {
                "page": page,
                "pageSize": page_size,
                "total": total,
                "hasMore": total > page * page_size,
            },
        }

    def get_conversation(self, conversation_id: int, ctx: AccountContext) -> Conversation:
        conversation = self.repo.get_conversation(self.db, conversation_id, ctx.account_id)
        if not conversation:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conversation

    def update_conversation(self, conversation_id: int, data: ConversationUpdate, ctx: AccountContext) -> Conversation:
        conversation = self.get_conversation(conversation_id, ctx)
        conversation.status = data.status
        conversation.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(conversation)
        logger.info(f"💬 Conversation {conversation.id} marked {data.status}")
        return conversation

    def _reply_channel(self, conversation: Conversation, requested):
        if requested:
            return requested
        if conversation.primary_channel in PHONE_CHANNELS:
            return conversation.primary_channel
        if conversation.primary_channel == "web_form" and not conversation.customer.email:
            return "sms"
        return "email"

    async def reply(self, conversation_id: int, data: ReplyCreate, ctx: AccountContext) -> Message:
        conversation = self.get_conversation(conversation_id, ctx)
        customer = conversation.customer
        channel = self._reply_channel(conversation, data.channel)
        external_id = None
        subject = None

        if channel in PHONE_CHANNELS:
            if not customer.phone:
                raise HTTPException(status_code=400, detail="Customer has no phone number")
            success, error, external_id = await send_sms(
                self.db,
                ctx.account_id,
                customer.phone,
                data.message,
                message_type="inbox_reply",
                entity_type="Conversation",
                entity_id=conversation.id,
                whatsapp=channel == "whatsapp",
            )
            if not success:
                raise HTTPException(status_code=502, detail=f"Failed to send SMS: {error}")
        else:
            if not customer.email:
                raise HTTPException(status_code=400, detail="Customer has no email address")
            account = self.db.query(Account).filter(Account.id == ctx.account_id).first()
            subject = data.subject or self._reply_subject(conversation)
            try:
                result = await send_reply_email(customer.email, subject, data.message, account.name)
            except EmailSendError as e:
                logger.error(f"❌ Inbox reply email failed for conversation {conversation.id}: {e}")
                raise HTTPException(status_code=502, detail="Failed to send email") from e
            external_id = result.get("id") if isinstance(result, dict) else None

        now = datetime.utcnow()
        message = Message(
            account_id=ctx.account_id,
            conversation_id=conversation.id,
            customer_id=customer.id,
            channel=channel,
            direction="outbound",
            external_id=external_id,
            subject=subject,
            message_text=data.message,
            attachments=[],
            raw_payload={"sent_by": ctx.user_id},
            created_at=now,
        )
        self.db.add(message)
        conversation.last_message_at = now
        conversation.updated_at = now
        self.db.commit()
        self.db.refresh(message)
        logger.info(f"📤 Reply sent on conversation {conversation.id} via {channel}")
        return message

    def _reply_subject(self, conversation: Conversation) -> str:
        last_subject = next(
            (m.subject for m in reversed(conversation.messages) if m.subject and m.direction == "inbound"),
            None,
        )
        if last_subject:
            return last_subject if last_subject.lower().startswith("re:") else f"Re: {last_subject}"
        return f"Re: {conversation.title}"

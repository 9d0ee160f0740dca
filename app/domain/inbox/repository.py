"""Inbox repository - conversation queries"""

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Query, Session, joinedload

from ...models_messaging import Conversation, Message

SPAM_CATEGORY = "spam_or_ads"


def latest_category_subquery():
    return (
        select(Message.ai_category)
        .where(Message.conversation_id == Conversation.id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(1)
        .correlate(Conversation)
        .scalar_subquery()
    )


class InboxRepository:
    @staticmethod
    def build_query(db: Session, account_id: int, status: str = "open", hide_spam: bool = True) -> Query:
        query = (
            db.query(Conversation)
            .options(joinedload(Conversation.customer))
            .filter(Conversation.account_id == account_id)
        )
        if status != "all":
            query = query.filter(Conversation.status == status)
        if hide_spam:
            latest = latest_category_subquery()
            query = query.filter(or_(latest.is_(None), latest != SPAM_CATEGORY))
        return query.order_by(
            Conversation.last_message_at.desc().nullslast(),
            Conversation.created_at.desc(),
        )

    @staticmethod
    def get_conversation(db: Session, conversation_id: int, account_id: int) -> Optional[Conversation]:
        return (
            db.query(Conversation)
            .options(joinedload(Conversation.customer))
            .filter(Conversation.id == conversation_id, Conversation.account_id == account_id)
            .first()
        )

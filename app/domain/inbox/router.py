"""Unified inbox router"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...permissions import AccountContext
from .schemas import (
    ConversationDetail,
    ConversationListResponse,
    ConversationSummary,
    ConversationUpdate,
    MessageResponse,
    ReplyCreate,
)
from .service import InboxService

router = APIRouter(prefix="/inbox", tags=["Inbox"])


def get_inbox_service(db: Session = Depends(get_db)) -> InboxService:
    return InboxService(db)


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(
    status: Literal["open", "closed", "all"] = Query("open"),
    hideSpam: bool = Query(True),
    page: int = Query(1, ge=1),
    pageSize: int = Query(20, ge=1, le=50),
    ctx: AccountContext = Depends(require_admin),
    service: InboxService = Depends(get_inbox_service),
):
    """Conversations newest first; hideSpam drops threads whose latest message is spam_or_ads"""
    return service.list_conversations(ctx, status, hideSpam, page, pageSize)


@router.get("/conversations/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(
    conversation_id: int,
    ctx: AccountContext = Depends(require_admin),
    service: InboxService = Depends(get_inbox_service),
):
    return service.get_conversation(conversation_id, ctx)


@router.patch("/conversations/{conversation_id}", response_model=ConversationSummary)
async def update_conversation(
    conversation_id: int,
    data: ConversationUpdate,
    ctx: AccountContext = Depends(require_admin),
    service: InboxService = Depends(get_inbox_service),
):
    return service.update_conversation(conversation_id, data, ctx)


@router.post("/conversations/{conversation_id}/reply", response_model=MessageResponse, status_code=201)
async def reply_to_conversation(
    conversation_id: int,
    data: ReplyCreate,
    ctx: AccountContext = Depends(require_admin),
    service: InboxService = Depends(get_inbox_service),
):
    return await service.reply(conversation_id, data, ctx)


__all__ = ["router"]

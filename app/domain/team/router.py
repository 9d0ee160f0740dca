"""Account and team router"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_account_context, require_permission
from ...database import get_db
from ...permissions import AccountContext
from .schemas import AccountResponse, AccountUpdate, TeamInvite, TeamMemberResponse, TeamMemberUpdate
from .service import TeamService

router = APIRouter(tags=["Account & Team"])

require_team = require_permission("manage_team")


def get_team_service(db: Session = Depends(get_db)) -> TeamService:
    return TeamService(db)


@router.get("/account")
async def get_account(
    ctx: AccountContext = Depends(get_account_context),
    service: TeamService = Depends(get_team_service),
):
    """Current account plus the caller's role and effective permissions"""
    account = service.get_account(ctx)
    return {"account": AccountResponse.model_validate(account), "context": asdict(ctx)}


@router.patch("/account", response_model=AccountResponse)
async def update_account(
    data: AccountUpdate,
    ctx: AccountContext = Depends(require_permission("manage_account")),
    service: TeamService = Depends(get_team_service),
):
    return service.update_account(data, ctx)


@router.get("/team", response_model=list[TeamMemberResponse])
async def list_team(
    role: Optional[str] = Query(None),
    ctx: AccountContext = Depends(require_team),
    service: TeamService = Depends(get_team_service),
):
    return service.list_members(ctx, role)


@router.post("/team", response_model=TeamMemberResponse, status_code=201)
async def invite_member(
    data: TeamInvite,
    ctx: AccountContext = Depends(require_team),
    service: TeamService = Depends(get_team_service),
):
    return service.invite_member(data, ctx)


@router.patch("/team/{user_id}", response_model=TeamMemberResponse)
async def update_member(
    user_id: int,
    data: TeamMemberUpdate,
    ctx: AccountContext = Depends(require_team),
    service: TeamService = Depends(get_team_service),
):
    return service.update_member(user_id, data, ctx)


__all__ = ["router"]

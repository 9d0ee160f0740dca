"""Team service - account settings and member management"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Account, Client, User
from ...permissions import ALL_PERMISSIONS, CUSTOMER, OWNER, AccountContext
from .schemas import AccountUpdate, TeamInvite, TeamMemberResponse, TeamMemberUpdate

logger = logging.getLogger(__name__)


def to_member(user: User) -> TeamMemberResponse:
    member = TeamMemberResponse.model_validate(user)
    member.invite_pending = user.auth_uid is None
    return member


class TeamService:
    def __init__(self, db: Session):
        self.db = db

    def get_account(self, ctx: AccountContext) -> Account:
        account = self.db.query(Account).filter(Account.id == ctx.account_id).first()
        if not account:
            raise HTTPException(status_code=404, detail="Account not found")
        return account

    def update_account(self, data: AccountUpdate, ctx: AccountContext) -> Account:
        account = self.get_account(ctx)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(account, key, value)
        self.db.commit()
        self.db.refresh(account)
        return account

    def list_members(self, ctx: AccountContext, role: Optional[str] = None) -> list[TeamMemberResponse]:
        query = self.db.query(User).filter(User.account_id == ctx.account_id)
        if role:
            query = query.filter(User.role == role)
        return [to_member(u) for u in query.order_by(User.created_at.asc(), User.id.asc()).all()]

    def _member(self, user_id: int, ctx: AccountContext) -> User:
        user = self.db.query(User).filter(User.id == user_id, User.account_id == ctx.account_id).first()
        if not user:
            raise HTTPException(status_code=404, detail="Team member not found")
        return user

    def _check_client(self, client_id: int, ctx: AccountContext) -> None:
        exists = (
            self.db.query(Client.id)
            .filter(Client.id == client_id, Client.account_id == ctx.account_id)
            .first()
        )
        if not exists:
            raise HTTPException(status_code=404, detail="Client not found")

    @staticmethod
    def _clean_permissions(permissions: Optional[list[str]]) -> Optional[list[str]]:
        if permissions is None:
            return None
        unknown = [p for p in permissions if p not in ALL_PERMISSIONS]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown permissions: {', '.join(unknown)}")
        return sorted(set(permissions))

    def invite_member(self, data: TeamInvite, ctx: AccountContext) -> TeamMemberResponse:
        if self.db.query(User).filter(User.email == data.email).first():
            raise HTTPException(status_code=409, detail="A user with this email already exists")
        if data.client_id:
            self._check_client(data.client_id, ctx)

        user = User(
            account_id=ctx.account_id,
            email=data.email,
            full_name=data.full_name,
            role=data.role,
            client_id=data.client_id if data.role == CUSTOMER else None,
            permissions=self._clean_permissions(data.permissions),
            is_active=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"✉️ Invited {data.email} as {data.role} to account {ctx.account_id}")
        return to_member(user)

    def _active_owner_count(self, account_id: int) -> int:
        return (
            self.db.query(User)
            .filter(User.account_id == account_id, User.role == OWNER, User.is_active == True)  # noqa: E712
            .count()
        )

    def update_member(self, user_id: int, data: TeamMemberUpdate, ctx: AccountContext) -> TeamMemberResponse:
        user = self._member(user_id, ctx)
        updates = data.model_dump(exclude_unset=True)

        if "role" in updates and updates["role"] != user.role:
            if ctx.role != OWNER:
                raise HTTPException(status_code=403, detail="Only owners can change roles")
            if user.role == OWNER and self._active_owner_count(ctx.account_id) <= 1:
                raise HTTPException(status_code=400, detail="Cannot demote the last owner")
            if updates["role"] == CUSTOMER and not (updates.get("client_id") or user.client_id):
                raise HTTPException(status_code=400, detail="client_id is required for CUSTOMER users")

        if updates.get("is_active") is False:
            if user.id == ctx.user_id:
                raise HTTPException(status_code=400, detail="You cannot deactivate yourself")
            if user.role == OWNER and self._active_owner_count(ctx.account_id) <= 1:
                raise HTTPException(status_code=400, detail="Cannot deactivate the last owner")

        if "permissions" in updates:
            if ctx.role != OWNER:
                raise HTTPException(status_code=403, detail="Only owners can change permissions")
            updates["permissions"] = self._clean_permissions(updates["permissions"])
        if updates.get("client_id"):
            self._check_client(updates["client_id"], ctx)

        for key, value in updates.items():
            setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"👥 Team member {user.id} updated by {ctx.user_id}: {sorted(updates)}")
        return to_member(user)

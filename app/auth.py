import logging
from datetime import datetime

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import AUTH_JWT_ALGORITHM, AUTH_JWT_AUDIENCE, AUTH_JWT_SECRET
from .database import get_db
from .models import Account, User
from .permissions import ADMIN, CUSTOMER, OWNER, TECH, AccountContext, resolve_permissions
from .security_middleware import set_rls_context

logger = logging.getLogger(__name__)

security = HTTPBearer()


def verify_auth_token(token: str) -> dict:
    """
    Verify an access token issued by the hosted auth provider.
    Tokens are HS256 JWTs signed with the project's JWT secret.
    """
    if not AUTH_JWT_SECRET:
        logger.error("❌ AUTH_JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    options = {"verify_aud": bool(AUTH_JWT_AUDIENCE)}
    try:
        payload = jose_jwt.decode(
            token,
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE,
            options=options,
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid authentication token") from e

    if not payload.get("sub"):
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return payload


def _display_name(payload: dict) -> str:
    metadata = payload.get("user_metadata") or {}
    return metadata.get("full_name") or metadata.get("name") or payload.get("name") or ""


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the auth provider token, provisioning on first login"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    payload = verify_auth_token(token)
    auth_uid = payload["sub"]
    email = (payload.get("email") or "").lower()
    name = _display_name(payload)

    user = db.query(User).filter(User.auth_uid == auth_uid).first()

    if not user and email:
        # Invited team members and portal customers exist before their first login
        existing_user = db.query(User).filter(User.email == email).first()
        if existing_user:
            if existing_user.auth_uid and existing_user.auth_uid != auth_uid:
                logger.info(f"🔄 Re-linking {email} to a new auth identity")
            existing_user.auth_uid = auth_uid
            if name and not existing_user.full_name:
                existing_user.full_name = name
            user = existing_user

    if not user:
        if not email:
            raise HTTPException(status_code=401, detail="Invalid token claims")
        logger.info(f"🆕 Creating new account for {email}")
        account = Account(name=name or email.split("@")[0], email=email)
        db.add(account)
        db.flush()
        user = User(auth_uid=auth_uid, email=email, full_name=name, account_id=account.id, role=OWNER)
        db.add(user)

    if not user.is_active:
        raise HTTPException(status_code=403, detail="User account is disabled")

    user.last_login_at = datetime.utcnow()
    try:
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to persist user {email}: {e}")
        raise HTTPException(status_code=409, detail="This email is already registered.") from e

    set_rls_context(db, user.account_id)
    return user


async def get_account_context(user: User = Depends(get_current_user)) -> AccountContext:
    return AccountContext(
        account_id=user.account_id,
        user_id=user.id,
        role=user.role,
        permissions=resolve_permissions(user.role, user.permissions),
        client_id=user.client_id,
        email=user.email,
    )


async def require_admin(ctx: AccountContext = Depends(get_account_context)) -> AccountContext:
    """OWNER or ADMIN only"""
    if ctx.role not in (OWNER, ADMIN):
        logger.warning(f"⚠️ User {ctx.user_id} ({ctx.role}) denied admin access")
        raise HTTPException(status_code=403, detail="Admin access required")
    return ctx


async def require_tech(ctx: AccountContext = Depends(get_account_context)) -> AccountContext:
    """OWNER, ADMIN or TECH"""
    if ctx.role not in (OWNER, ADMIN, TECH):
        raise HTTPException(status_code=403, detail="Technician access required")
    return ctx


async def require_customer(ctx: AccountContext = Depends(get_account_context)) -> AccountContext:
    """Portal customers must be linked to a client record"""
    if ctx.role != CUSTOMER:
        raise HTTPException(status_code=403, detail="Customer portal access only")
    if not ctx.client_id:
        raise HTTPException(status_code=403, detail="Customer account is not linked to a client")
    return ctx


def require_permission(permission: str):
    """Build a dependency that checks a single permission"""

    async def checker(ctx: AccountContext = Depends(get_account_context)) -> AccountContext:
        if not ctx.has_permission(permission):
            raise HTTPException(status_code=403, detail=f"Missing permission: {permission}")
        return ctx

    return checker

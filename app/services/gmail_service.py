"""
Gmail Service
OAuth token handling and the Gmail REST calls used by the inbox sync worker
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI
from ..models_gmail import GmailConnection
from ..shared.crypto import decrypt_token, encrypt_token

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GMAIL_API = "https://gmail.googleapis.com/gmail/v1/users/me"
GMAIL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/userinfo.email",
]


class GmailAPIError(Exception):
    pass


def build_authorization_url(state: str) -> str:
    params = {
        "client_id": GOOGLE_CLIENT_ID,
        "redirect_uri": GOOGLE_REDIRECT_URI,
        "response_type": "code",
        "scope": " ".join(GMAIL_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def exchange_code(code: str) -> dict:
    """Trade an authorization code for tokens and the mailbox address"""
    async with httpx.AsyncClient() as client:
        response = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": GOOGLE_CLIENT_ID,
                "client_secret": GOOGLE_CLIENT_SECRET,
                "redirect_uri": GOOGLE_REDIRECT_URI,
                "grant_type": "authorization_code",
            },
            timeout=15.0,
        )
        if response.status_code != 200:
            logger.error(f"❌ Gmail token exchange failed: {response.text}")
            raise GmailAPIError("Failed to exchange authorization code")
        tokens = response.json()

        profile = await client.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
            timeout=15.0,
        )
        if profile.status_code != 200:
            raise GmailAPIError("Failed to load Google profile")

    tokens["email"] = profile.json().get("email")
    return tokens


async def get_valid_access_token(connection: GmailConnection, db: Session) -> Optional[str]:
    """
    Get a valid access token, refreshing when it expires within 5 minutes.
    Returns None if refresh fails.
    """
    try:
        expires_at = connection.token_expires_at
        if expires_at and expires_at <= datetime.utcnow() + timedelta(minutes=5):
            if not connection.refresh_token:
                logger.error(f"❌ Gmail token expired and no refresh token for {connection.email}")
                return None

            logger.info(f"🔄 Gmail token expired for {connection.email}, refreshing...")
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": GOOGLE_CLIENT_ID,
                        "client_secret": GOOGLE_CLIENT_SECRET,
                        "refresh_token": decrypt_token(connection.refresh_token),
                        "grant_type": "refresh_token",
                    },
                    timeout=15.0,
                )

            if response.status_code != 200:
                logger.error(f"❌ Gmail token refresh failed: {response.text}")
                return None

            tokens = response.json()
            new_access_token = tokens.get("access_token")
            if not new_access_token:
                logger.error("❌ No access token in refresh response")
                return None

            connection.access_token = encrypt_token(new_access_token)
            connection.token_expires_at = datetime.utcnow() + timedelta(seconds=tokens.get("expires_in", 3600))
            db.commit()
            logger.info(f"✅ Gmail token refreshed for {connection.email}")
            return new_access_token

        return decrypt_token(connection.access_token)
    except Exception as e:
        logger.error(f"❌ Error getting Gmail access token: {str(e)}")
        return None


async def list_unread_messages(client: httpx.AsyncClient, access_token: str, query: str, max_results: int) -> list[dict]:
    response = await client.get(
        f"{GMAIL_API}/messages",
        params={"q": query, "maxResults": max_results},
        headers={"Authorization": f"Bearer {access_token}"},
    )
    if response.status_code != 200:
        raise GmailAPIError(f"Gmail API list failed: {response.status_code} - {response.text}")
    return response.json().get("messages") or []


async def get_message(client: httpx.AsyncClient, access_token: str, message_id: str) -> Optional[dict]:
    response = await client.get(
        f"{GMAIL_API}/messages/{message_id}",
        headers={"Authorization": f"Bearer {access_token}"},
    )
    if response.status_code != 200:
        logger.error(f"❌ Failed to fetch Gmail message {message_id}: {response.status_code}")
        return None
    return response.json()


async def mark_as_read(client: httpx.AsyncClient, access_token: str, message_id: str) -> None:
    response = await client.post(
        f"{GMAIL_API}/messages/{message_id}/modify",
        json={"removeLabelIds": ["UNREAD"]},
        headers={"Authorization": f"Bearer {access_token}"},
    )
    if response.status_code != 200:
        # Not fatal, the message is already in the inbox
        logger.warning(f"⚠️ Failed to mark Gmail message {message_id} as read: {response.status_code}")

"""
Gmail sync worker

Pulls unread mail from every active Gmail connection into the unified inbox.
Runs on the arq cron schedule and on demand from POST /gmail/sync.
"""

import base64
import logging
import re
import time
from datetime import datetime
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ..models_gmail import GmailConnection
from ..services import gmail_service
from .normalize import from_gmail
from .save import save_normalized_message

logger = logging.getLogger(__name__)

MAX_EMAILS_PER_ACCOUNT = 50
HOURS_TO_SYNC = 24

FROM_HEADER_RE = re.compile(r"^(.*?)\s*<(.+?)>$")
TAG_RE = re.compile(r"<[^>]*>")
WHITESPACE_RE = re.compile(r"\s+")


def build_query(now: Optional[float] = None) -> str:
    cutoff = int((now if now is not None else time.time()) - HOURS_TO_SYNC * 3600)
    return f"is:unread after:{cutoff} -in:chat"


def decode_base64url(data: str) -> str:
    try:
        padded = data + "=" * (-len(data) % 4)
        return base64.urlsafe_b64decode(padded.encode()).decode("utf-8", errors="replace")
    except (ValueError, TypeError) as e:
        logger.error(f"❌ Failed to decode base64url body: {e}")
        return ""


def parse_from_header(value: str) -> tuple[Optional[str], str]:
    """'"Jane Doe" <jane@example.com>' -> ('Jane Doe', 'jane@example.com')"""
    match = FROM_HEADER_RE.match(value.strip())
    if not match:
        return None, value.strip()
    name = match.group(1).strip().strip("\"'").strip()
    return name or None, match.group(2).strip()


def extract_body(message: dict) -> str:
    payload = message.get("payload") or {}

    data = (payload.get("body") or {}).get("data")
    if data:
        return decode_base64url(data)

    parts = payload.get("parts") or []
    for part in parts:
        data = (part.get("body") or {}).get("data")
        if part.get("mimeType") == "text/plain" and data:
            return decode_base64url(data)
    for part in parts:
        data = (part.get("body") or {}).get("data")
        if part.get("mimeType") == "text/html" and data:
            text = TAG_RE.sub(" ", decode_base64url(data))
            return WHITESPACE_RE.sub(" ", text).strip()

    return message.get("snippet") or ""


def extract_attachments(message: dict) -> list[dict]:
    attachments = []
    for part in (message.get("payload") or {}).get("parts") or []:
        attachment_id = (part.get("body") or {}).get("attachmentId")
        if part.get("filename") and attachment_id:
            attachments.append(
                {
                    "downloadUrl": f"gmail-attachment://{message['id']}/{attachment_id}",
                    "mimeType": part.get("mimeType") or "application/octet-stream",
                    "filename": part["filename"],
                }
            )
    return attachments


def parse_gmail_message(message: dict) -> dict:
    """Gmail API message resource -> intake payload accepted by from_gmail()"""
    headers = {h["name"].lower(): h["value"] for h in (message.get("payload") or {}).get("headers") or []}
    from_name, from_email = parse_from_header(headers.get("from", ""))
    return {
        "fromName": from_name,
        "fromEmail": from_email,
        "subject": headers.get("subject") or "(No Subject)",
        "bodyText": extract_body(message),
        "messageId": message["id"],
        "attachments": extract_attachments(message),
    }


async def sync_connection(db: Session, connection: GmailConnection, client: httpx.AsyncClient) -> int:
    access_token = await gmail_service.get_valid_access_token(connection, db)
    if not access_token:
        raise gmail_service.GmailAPIError("No valid access token")

    refs = await gmail_service.list_unread_messages(
        client, access_token, build_query(), MAX_EMAILS_PER_ACCOUNT
    )
    if not refs:
        logger.info(f"📪 No unread emails for {connection.email}")
        return 0

    synced = 0
    for ref in refs:
        try:
            message = await gmail_service.get_message(client, access_token, ref["id"])
            if not message:
                continue
            parsed = parse_gmail_message(message)
            await save_normalized_message(db, connection.account_id, from_gmail(parsed))
            await gmail_service.mark_as_read(client, access_token, ref["id"])
            synced += 1
        except Exception as e:
            # One bad message must not stop the batch
            logger.error(f"❌ Failed to process Gmail message {ref.get('id')}: {e}")
    return synced


async def sync_gmail_to_inbox(db: Session, account_id: Optional[int] = None) -> dict:
    """Sync every active connection (or one account's). Returns {totalSynced, errors}."""
    query = db.query(GmailConnection).filter(GmailConnection.is_active == True)  # noqa: E712
    if account_id is not None:
        query = query.filter(GmailConnection.account_id == account_id)
    connections = query.all()

    if not connections:
        logger.info("📭 No active Gmail connections found")
        return {"totalSynced": 0, "errors": []}

    total_synced = 0
    errors: list[str] = []
    async with httpx.AsyncClient(timeout=20.0) as client:
        for connection in connections:
            try:
                synced = await sync_connection(db, connection, client)
                connection.last_synced_at = datetime.utcnow()
                connection.last_sync_error = None
                db.commit()
                total_synced += synced
                logger.info(f"✅ Synced {synced} email(s) from {connection.email}")
            except Exception as e:
                message = f"Failed to sync {connection.email}: {e}"
                logger.error(f"❌ {message}")
                errors.append(message)
                connection.last_sync_error = str(e)[:1000]
                db.commit()

    logger.info(f"🎉 Gmail sync complete. Total synced: {total_synced}")
    return {"totalSynced": total_synced, "errors": errors}

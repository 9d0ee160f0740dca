"""
Channel payload normalization

Every intake channel (Twilio SMS/WhatsApp, Gmail, web forms) is converted
into a NormalizedMessage before it is saved to the unified inbox.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException

from ..shared.validators import normalize_phone

CHANNELS = ("email", "sms", "whatsapp", "web_form")
WHATSAPP_PREFIX = "whatsapp:"


@dataclass
class Identity:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class Attachment:
    url: str
    type: str = "file"  # image, file
    name: Optional[str] = None


@dataclass
class NormalizedMessage:
    channel: str
    direction: str = "inbound"
    external_id: Optional[str] = None
    sender: Identity = field(default_factory=Identity)
    recipient: Identity = field(default_factory=Identity)
    subject: Optional[str] = None
    text: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    received_at: Optional[datetime] = None
    raw_payload: dict[str, Any] = field(default_factory=dict)

    def attachments_json(self) -> list[dict]:
        return [{"url": a.url, "type": a.type, "name": a.name} for a in self.attachments]


def _strip_whatsapp(value: str) -> str:
    return value[len(WHATSAPP_PREFIX):] if value.startswith(WHATSAPP_PREFIX) else value


def from_twilio(form: dict) -> NormalizedMessage:
    """Twilio posts form-encoded SMS/WhatsApp webhooks"""
    sender = str(form.get("From") or "")
    to = str(form.get("To") or "")
    is_whatsapp = sender.startswith(WHATSAPP_PREFIX) or to.startswith(WHATSAPP_PREFIX)

    try:
        num_media = int(form.get("NumMedia") or 0)
    except (TypeError, ValueError):
        num_media = 0

    attachments = []
    for i in range(num_media):
        content_type = str(form.get(f"MediaContentType{i}") or "image")
        attachments.append(
            Attachment(
                url=str(form.get(f"MediaUrl{i}") or ""),
                type="image" if content_type.startswith("image") else "file",
            )
        )

    return NormalizedMessage(
        channel="whatsapp" if is_whatsapp else "sms",
        external_id=str(form.get("SmsSid") or form.get("MessageSid") or "") or None,
        sender=Identity(phone=normalize_phone(_strip_whatsapp(sender))),
        recipient=Identity(phone=normalize_phone(_strip_whatsapp(to))),
        text=str(form.get("Body") or ""),
        attachments=attachments,
        received_at=datetime.utcnow(),
        raw_payload=dict(form),
    )


def from_gmail(payload: dict) -> NormalizedMessage:
    """Parsed Gmail message, as produced by the sync worker or an intake pipeline"""
    if not payload.get("fromEmail") or not payload.get("messageId") or not payload.get("subject"):
        raise HTTPException(status_code=400, detail="fromEmail, messageId, and subject are required")

    raw_attachments = payload.get("attachments")
    if not isinstance(raw_attachments, list):
        raw_attachments = []

    attachments = []
    for item in raw_attachments:
        mime_type = item.get("mimeType") or "application/octet-stream"
        attachments.append(
            Attachment(
                url=item.get("downloadUrl") or "",
                type="image" if mime_type.startswith("image") else "file",
                name=item.get("filename"),
            )
        )

    return NormalizedMessage(
        channel="email",
        external_id=payload["messageId"],
        sender=Identity(name=payload.get("fromName") or None, email=payload["fromEmail"]),
        subject=payload["subject"],
        text=payload.get("bodyText") or "",
        attachments=attachments,
        received_at=datetime.utcnow(),
        raw_payload=payload,
    )


def from_web_form(payload: dict) -> NormalizedMessage:
    return NormalizedMessage(
        channel="web_form",
        sender=Identity(
            name=payload.get("name") or None,
            email=payload.get("email") or None,
            phone=normalize_phone(payload.get("phone")),
        ),
        subject=payload.get("subject") or "Website inquiry",
        text=payload.get("message") or "",
        received_at=datetime.utcnow(),
        raw_payload=payload,
    )

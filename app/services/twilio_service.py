"""
Twilio SMS Service
Outbound SMS/WhatsApp for inbox replies and workflow notifications
"""

import logging
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ..models_twilio import TwilioIntegration, TwilioSMSLog
from ..shared.crypto import decrypt_token

logger = logging.getLogger(__name__)

TWILIO_API = "https://api.twilio.com/2010-04-01"


async def verify_credentials(account_sid: str, auth_token: str) -> tuple[bool, Optional[str]]:
    """Check Twilio credentials by fetching the account resource"""
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{TWILIO_API}/Accounts/{account_sid}.json",
                auth=(account_sid, auth_token),
                timeout=10.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"Twilio verification request failed: {str(e)}")
        return False, "Could not reach Twilio"

    if response.status_code == 200:
        return True, None
    logger.warning(f"⚠️ Twilio credential check failed: {response.status_code}")
    return False, "Invalid Twilio credentials"


def _log_sms(db: Session, integration: TwilioIntegration, to_phone: str, body: str, message_type: str,
             entity_type: Optional[str], entity_id: Optional[int], status: str,
             message_sid: Optional[str] = None, error_message: Optional[str] = None) -> None:
    db.add(
        TwilioSMSLog(
            account_id=integration.account_id,
            integration_id=integration.id,
            to_phone=to_phone,
            message_body=body,
            message_type=message_type,
            entity_type=entity_type,
            entity_id=entity_id,
            twilio_message_sid=message_sid,
            status=status,
            error_message=error_message,
        )
    )
    db.commit()


async def send_sms(
    db: Session,
    account_id: int,
    to_phone: str,
    message_body: str,
    message_type: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    whatsapp: bool = False,
) -> tuple[bool, Optional[str], Optional[str]]:
    """
    Send SMS (or WhatsApp) via Twilio

    Args:
        to_phone: Recipient phone number in E.164 format
        message_type: inbox_reply, visit_reminder, job_completion, invoice
        whatsapp: Send over the WhatsApp channel instead of SMS

    Returns:
        Tuple of (success, error_message, message_sid)
    """
    if not to_phone:
        return False, "No phone number provided", None
    if not to_phone.startswith("+"):
        logger.warning(f"Phone number not in E.164 format: {to_phone}")
        return False, "Phone number must be in E.164 format (e.g., +1234567890)", None

    integration = db.query(TwilioIntegration).filter(TwilioIntegration.account_id == account_id).first()
    if not integration:
        logger.debug(f"No Twilio integration found for account {account_id}")
        return False, "No Twilio integration", None
    if not integration.sms_enabled:
        return False, "SMS disabled", None
    if not integration.is_verified:
        logger.warning(f"Twilio integration not verified for account {account_id}")
        return False, "Integration not verified", None

    message_type_settings = {
        "visit_reminder": integration.send_visit_reminder,
        "job_completion": integration.send_job_completion,
        "invoice": integration.send_invoice,
        "inbox_reply": integration.send_inbox_reply,
    }
    if message_type in message_type_settings and not message_type_settings[message_type]:
        logger.debug(f"Message type {message_type} disabled for account {account_id}")
        return False, f"Message type {message_type} disabled", None

    try:
        account_sid = decrypt_token(integration.account_sid)
        auth_token = decrypt_token(integration.auth_token)
    except Exception as e:
        logger.error(f"Failed to decrypt Twilio credentials: {str(e)}")
        return False, "Failed to decrypt credentials", None

    prefix = "whatsapp:" if whatsapp else ""
    data = {"To": f"{prefix}{to_phone}", "Body": message_body}
    if integration.messaging_service_sid and not whatsapp:
        data["MessagingServiceSid"] = decrypt_token(integration.messaging_service_sid)
    else:
        data["From"] = f"{prefix}{integration.phone_number}"

    logger.info(f"📱 Sending {message_type} {'WhatsApp' if whatsapp else 'SMS'} to {to_phone} (account {account_id})")
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{TWILIO_API}/Accounts/{account_sid}/Messages.json",
                auth=(account_sid, auth_token),
                data=data,
                timeout=10.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"Twilio API error: {str(e)}")
        _log_sms(db, integration, to_phone, message_body, message_type, entity_type, entity_id,
                 "failed", error_message=str(e))
        return False, str(e), None

    if response.status_code in (200, 201):
        message_sid = response.json().get("sid")
        _log_sms(db, integration, to_phone, message_body, message_type, entity_type, entity_id,
                 "sent", message_sid=message_sid)
        logger.info(f"✅ SMS sent: {message_type} to {to_phone} (SID: {message_sid})")
        return True, None, message_sid

    error_data = response.json()
    error_message = error_data.get("message", "Unknown error")
    error_code = error_data.get("code")
    _log_sms(db, integration, to_phone, message_body, message_type, entity_type, entity_id, "failed",
             error_message=f"[{error_code}] {error_message}" if error_code else error_message)
    logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
    return False, error_message, None

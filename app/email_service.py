"""
Email Service - outbound email through Resend
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import BUSINESS_EMAIL, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    contact_request_template,
    emergency_alert_template,
    estimate_ready_template,
    invoice_ready_template,
    plain_message_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailSendError(Exception):
    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailSendError(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> dict:
    """
    Send an email via Resend

    Raises EmailSendError when Resend is not configured or rejects the message.
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailSendError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        email_data = {
            "from": from_address or EMAIL_FROM_ADDRESS,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }
        if reply_to:
            email_data["reply_to"] = reply_to

        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailSendError(f"Failed to send email: {str(e)}") from e


# ============================================
# Pre-built emails
# ============================================


async def send_estimate_email(
    to: str,
    client_name: str,
    business_name: str,
    estimate_number: str,
    title: str,
    total: float,
    approve_url: str,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Estimate {estimate_number} from {business_name}",
        mjml_content=estimate_ready_template(
            client_name, business_name, estimate_number, title, total, approve_url
        ),
    )


async def send_invoice_email(
    to: str,
    client_name: str,
    business_name: str,
    invoice_number: str,
    amount: float,
    due_date: Optional[str] = None,
    portal_url: Optional[str] = None,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Invoice Ready: {invoice_number} - {business_name}",
        mjml_content=invoice_ready_template(
            client_name, business_name, invoice_number, amount, due_date or "", portal_url or ""
        ),
    )


async def send_emergency_alert(
    client_name: str,
    location: str,
    description: str,
    contact_phone: str,
    priority: str,
    to: Optional[str] = None,
) -> dict:
    """Alert the business inbox about a portal emergency request"""
    recipient = to or BUSINESS_EMAIL
    if not recipient:
        raise EmailSendError("BUSINESS_EMAIL is not configured")
    return await send_email(
        to=recipient,
        subject=f"🚨 {priority.upper()} emergency request from {client_name}",
        mjml_content=emergency_alert_template(client_name, location, description, contact_phone, priority),
    )


async def send_reply_email(to: str, subject: str, body: str, business_name: str) -> dict:
    return await send_email(
        to=to,
        subject=subject,
        mjml_content=plain_message_template(subject, body, business_name),
    )


async def send_contact_request_email(
    customer_name: str, customer_email: str, category: str, subject: str, message: str
) -> dict:
    if not BUSINESS_EMAIL:
        raise EmailSendError("BUSINESS_EMAIL is not configured")
    return await send_email(
        to=BUSINESS_EMAIL,
        subject=f"Portal message: {subject}",
        mjml_content=contact_request_template(customer_name, customer_email, category, subject, message),
        reply_to=customer_email or None,
    )

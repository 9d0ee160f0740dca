"""
MJML Email Templates
Customer-facing and business notification emails
"""

from html import escape
from typing import Optional

THEME = {
    "primary": "#2563eb",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    business_name: str = "FieldDesk",
) -> str:
    """Base MJML wrapper shared by every email"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="18px 40px" font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}">
              Sent by {escape(business_name)}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def estimate_ready_template(
    client_name: str, business_name: str, estimate_number: str, title: str, total: float, approve_url: str
) -> str:
    content = f"""
    <mj-text>Hi {escape(client_name)},</mj-text>
    <mj-text>
      <strong>{escape(business_name)}</strong> sent you an estimate for <strong>{escape(title)}</strong>.
    </mj-text>
    <mj-text align="center" font-size="32px" font-weight="700" color="{THEME['text_primary']}" padding="20px 0">
      ${total:,.2f}
    </mj-text>
    <mj-text font-size="14px" color="{THEME['text_muted']}">Estimate: {estimate_number}</mj-text>
    <mj-text>Review the line items and approve online when you're ready.</mj-text>
    """
    return get_base_template(
        title="Your estimate is ready",
        preview_text=f"Estimate {estimate_number} from {business_name}",
        content_sections=content,
        cta_url=approve_url,
        cta_label="Review & Approve",
        business_name=business_name,
    )


def invoice_ready_template(
    client_name: str,
    business_name: str,
    invoice_number: str,
    amount: float,
    due_date: str = "",
    portal_url: str = "",
) -> str:
    due_date_section = f"<br/>Due Date: {due_date}" if due_date else ""
    content = f"""
    <mj-text>Hi {escape(client_name)},</mj-text>
    <mj-text>Your invoice from <strong>{escape(business_name)}</strong> is ready for payment.</mj-text>
    <mj-text align="center" font-size="32px" font-weight="700" color="{THEME['text_primary']}" padding="20px 0">
      ${amount:,.2f}
    </mj-text>
    <mj-text font-size="14px" color="{THEME['text_muted']}">
      Invoice: {invoice_number}{due_date_section}
    </mj-text>
    """
    return get_base_template(
        title="Invoice ready",
        preview_text=f"Invoice {invoice_number} from {business_name}",
        content_sections=content,
        cta_url=portal_url or None,
        cta_label="View & Pay",
        business_name=business_name,
    )


def emergency_alert_template(
    client_name: str, location: str, description: str, contact_phone: str, priority: str
) -> str:
    content = f"""
    <mj-text color="{THEME['danger']}" font-weight="700">Priority: {priority.upper()}</mj-text>
    <mj-text>
      <strong>Client:</strong> {escape(client_name)}<br/>
      <strong>Location:</strong> {escape(location)}<br/>
      <strong>Callback:</strong> {escape(contact_phone)}
    </mj-text>
    <mj-text>{escape(description)}</mj-text>
    """
    return get_base_template(
        title="Emergency service request",
        preview_text=f"Emergency request from {client_name}",
        content_sections=content,
    )


def plain_message_template(subject: str, body: str, business_name: str) -> str:
    """Inbox replies: the typed text, line breaks preserved"""
    content = f"""
    <mj-text>{escape(body).replace(chr(10), '<br/>')}</mj-text>
    """
    return get_base_template(
        title=escape(subject), preview_text=escape(body[:90]), content_sections=content,
        business_name=business_name,
    )


def contact_request_template(
    customer_name: str, customer_email: str, category: str, subject: str, message: str
) -> str:
    content = f"""
    <mj-text>
      <strong>From:</strong> {escape(customer_name)} ({escape(customer_email)})<br/>
      <strong>Category:</strong> {escape(category)}<br/>
      <strong>Subject:</strong> {escape(subject)}
    </mj-text>
    <mj-text>{escape(message).replace(chr(10), '<br/>')}</mj-text>
    """
    return get_base_template(
        title="New portal message",
        preview_text=f"{customer_name}: {subject}",
        content_sections=content,
    )

"""
Stripe Service - Checkout sessions for invoice payments and webhook parsing
"""

import json
import logging

import stripe

from ..config import FRONTEND_URL, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from ..shared.numbering import round_half_up

logger = logging.getLogger(__name__)

stripe.api_key = STRIPE_SECRET_KEY


class StripeNotConfigured(Exception):
    pass


class StripeSignatureError(Exception):
    pass


def is_configured() -> bool:
    return bool(STRIPE_SECRET_KEY)


def create_invoice_checkout_session(invoice, customer_user_id: int) -> dict:
    """Card checkout for the invoice's outstanding balance (USD cents)"""
    if not is_configured():
        raise StripeNotConfigured("Stripe not configured: missing STRIPE_SECRET_KEY")

    success_url = f"{FRONTEND_URL}/portal/invoices/{invoice.id}?success=true"
    cancel_url = f"{FRONTEND_URL}/portal/invoices/{invoice.id}"

    session = stripe.checkout.Session.create(
        api_key=STRIPE_SECRET_KEY,
        payment_method_types=["card"],
        mode="payment",
        line_items=[
            {
                "price_data": {
                    "currency": "usd",
                    "product_data": {"name": f"Invoice {invoice.invoice_number}"},
                    "unit_amount": round_half_up(invoice.balance_due * 100),
                },
                "quantity": 1,
            }
        ],
        metadata={"invoice_id": str(invoice.id), "customer_id": str(customer_user_id)},
        success_url=success_url,
        cancel_url=cancel_url,
    )
    logger.info(f"💳 Stripe checkout session {session['id']} created for invoice {invoice.invoice_number}")
    return {"id": session["id"], "url": session["url"]}


def parse_webhook_event(payload: bytes, signature_header: str) -> dict:
    """Verify the Stripe-Signature header and return the event as a plain dict"""
    if not STRIPE_WEBHOOK_SECRET:
        raise StripeNotConfigured("STRIPE_WEBHOOK_SECRET is not set")
    if not signature_header:
        raise StripeSignatureError("Missing Stripe-Signature header")

    body = payload.decode("utf-8")
    try:
        stripe.WebhookSignature.verify_header(body, signature_header, STRIPE_WEBHOOK_SECRET, tolerance=300)
    except stripe.SignatureVerificationError as e:
        raise StripeSignatureError(str(e)) from e
    return json.loads(body)

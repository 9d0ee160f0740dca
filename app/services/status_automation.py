"""
Automated status transitions for invoices
Handles sent/partial → overdue once the due date has passed
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..cache import invalidate_dashboard
from ..models_invoice import Invoice

logger = logging.getLogger(__name__)

OVERDUE_ELIGIBLE_STATUSES = ("sent", "partial")


def mark_overdue_invoices(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Flag unpaid invoices past their due date
    Should be run as a scheduled job (daily cron)

    Returns:
        dict: Summary of status changes made
    """
    summary = {"marked_overdue": 0, "accounts": []}
    now = now or datetime.utcnow()

    try:
        invoices = (
            db.query(Invoice)
            .filter(
                Invoice.status.in_(OVERDUE_ELIGIBLE_STATUSES),
                Invoice.due_date.isnot(None),
                Invoice.due_date < now,
            )
            .all()
        )

        accounts = set()
        for invoice in invoices:
            logger.info(f"⏰ Invoice {invoice.invoice_number} transitioned: {invoice.status} → overdue")
            invoice.status = "overdue"
            accounts.add(invoice.account_id)

        if invoices:
            db.commit()
            for account_id in accounts:
                invalidate_dashboard(account_id)
            summary["marked_overdue"] = len(invoices)
            summary["accounts"] = sorted(accounts)
            logger.info(f"📊 Overdue sweep summary: {summary}")
        else:
            logger.debug("ℹ️ No overdue invoices found")

        return summary

    except Exception as e:
        logger.error(f"❌ Error marking overdue invoices: {str(e)}")
        db.rollback()
        raise

"""Dashboard service - headline numbers and today's work"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...cache import cache, dashboard_cache_key
from ...models import Client, Job, Lead
from ...models_invoice import Invoice, InvoicePayment
from ...permissions import AccountContext
from ..visits.repository import VisitRepository
from ..visits.service import to_detail

logger = logging.getLogger(__name__)

STATS_TTL_SECONDS = 60

OPEN_LEAD_STATUSES = ("new", "contacted", "qualified", "proposal_sent", "negotiating")
ACTIVE_JOB_STATUSES = ("scheduled", "in_progress")
UNPAID_INVOICE_STATUSES = ("sent", "partial", "overdue")


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def _count(self, model, *criteria) -> int:
        return self.db.query(func.count(model.id)).filter(*criteria).scalar() or 0

    def compute_stats(self, account_id: int, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        month_start = datetime(now.year, now.month, 1)

        revenue = (
            self.db.query(func.coalesce(func.sum(InvoicePayment.amount), 0))
            .filter(InvoicePayment.account_id == account_id, InvoicePayment.paid_at >= month_start)
            .scalar()
        )
        outstanding = (
            self.db.query(func.coalesce(func.sum(Invoice.total - Invoice.amount_paid), 0))
            .filter(Invoice.account_id == account_id, Invoice.status.in_(UNPAID_INVOICE_STATUSES))
            .scalar()
        )

        return {
            "clients": self._count(Client, Client.account_id == account_id, Client.status == "active"),
            "openLeads": self._count(Lead, Lead.account_id == account_id, Lead.status.in_(OPEN_LEAD_STATUSES)),
            "activeJobs": self._count(Job, Job.account_id == account_id, Job.status.in_(ACTIVE_JOB_STATUSES)),
            "readyForInvoice": self._count(
                Job, Job.account_id == account_id, Job.ready_for_invoice == True  # noqa: E712
            ),
            "unpaidInvoices": self._count(
                Invoice, Invoice.account_id == account_id, Invoice.status.in_(UNPAID_INVOICE_STATUSES)
            ),
            "overdueInvoices": self._count(
                Invoice, Invoice.account_id == account_id, Invoice.status == "overdue"
            ),
            "revenueThisMonth": round(float(revenue or 0), 2),
            "outstandingBalance": round(float(outstanding or 0), 2),
            "generatedAt": now.isoformat(),
        }

    def get_stats(self, ctx: AccountContext) -> dict:
        key = dashboard_cache_key(ctx.account_id)
        cached = cache.get(key)
        if cached:
            return cached

        stats = self.compute_stats(ctx.account_id)
        cache.set(key, stats, ttl=STATS_TTL_SECONDS)
        return stats

    def get_today(self, ctx: AccountContext, today: Optional[date] = None) -> dict:
        today = today or datetime.utcnow().date()
        start = datetime(today.year, today.month, today.day)

        visits = VisitRepository.build_query(
            self.db, ctx.account_id, start=start, end=start + timedelta(days=1)
        ).all()
        jobs = (
            self.db.query(Job)
            .filter(
                Job.account_id == ctx.account_id,
                Job.service_date == today,
                Job.status.notin_(("cancelled", "invoiced")),
            )
            .order_by(Job.scheduled_time.asc())
            .all()
        )
        return {
            "date": today.isoformat(),
            "visits": [to_detail(v) for v in visits],
            "jobs": [
                {
                    "id": j.id,
                    "job_number": j.job_number,
                    "title": j.title,
                    "status": j.status,
                    "scheduled_time": j.scheduled_time,
                    "address": j.address,
                    "assigned_to": j.assigned_to,
                    "client_name": j.client.name if j.client else None,
                }
                for j in jobs
            ],
        }

"""Tests for the dashboard numbers."""

from datetime import datetime, timedelta
from unittest.mock import patch

from app.models import Lead
from app.domain.dashboard.service import DashboardService
from app.domain.invoices.service import record_payment


class TestDashboardStats:

    def test_counts_and_money(self, client, db, account, admin_headers, make_job, make_invoice):
        db.add(Lead(account_id=account.id, first_name="Open", status="new"))
        db.add(Lead(account_id=account.id, first_name="Done", status="converted"))
        db.commit()
        make_job(status="scheduled")
        make_job(status="completed", ready_for_invoice=True)
        paid_partly = make_invoice(status="sent", total=100.0)
        make_invoice(status="overdue", total=50.0)
        record_payment(db, paid_partly, 30, method="cash")

        resp = client.get("/dashboard/stats", headers=admin_headers)
        assert resp.status_code == 200
        stats = resp.json()
        assert stats["clients"] == 1
        assert stats["openLeads"] == 1
        assert stats["activeJobs"] == 1
        assert stats["readyForInvoice"] == 1
        assert stats["unpaidInvoices"] == 2
        assert stats["overdueInvoices"] == 1
        assert stats["revenueThisMonth"] == 30.0
        assert stats["outstandingBalance"] == 120.0

    def test_stats_are_served_from_cache(self, db, account):
        service = DashboardService(db)
        ctx = type("Ctx", (), {"account_id": account.id})()
        cached = {"clients": 99}
        with patch("app.domain.dashboard.service.cache") as cache:
            cache.get.return_value = cached
            assert service.get_stats(ctx) == cached
            cache.set.assert_not_called()

    def test_stats_are_cached_for_a_minute(self, db, account):
        service = DashboardService(db)
        ctx = type("Ctx", (), {"account_id": account.id})()
        with patch("app.domain.dashboard.service.cache") as cache:
            cache.get.return_value = None
            service.get_stats(ctx)
            assert cache.set.call_args.kwargs["ttl"] == 60


class TestDashboardToday:

    def test_today_visits_and_jobs(self, client, admin_headers, make_job, make_visit):
        today = datetime.utcnow().date()
        today_job = make_job(service_date=today, title="Today clean")
        make_job(service_date=today + timedelta(days=1))
        make_job(service_date=today, status="cancelled")
        make_visit(today_job, start_at=datetime.utcnow().replace(hour=10, minute=0))

        data = client.get("/dashboard/today", headers=admin_headers).json()
        assert [j["title"] for j in data["jobs"]] == ["Today clean"]
        assert data["jobs"][0]["client_name"] == "Jane Homeowner"
        assert len(data["visits"]) == 1

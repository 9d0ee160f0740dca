"""Tests for jobs: workflow rules, pricing totals, notes and invoicing."""

from types import SimpleNamespace

import pytest

from app.models import JobNote
from app.models_invoice import Invoice
from app.domain.jobs.automation import (
    calculate_totals,
    get_suggestions,
    is_valid_transition,
    normalize_line_items,
    payment_status,
)


class TestWorkflowRules:

    @pytest.mark.parametrize(
        "current,new,ok",
        [
            ("draft", "scheduled", True),
            ("quote", "scheduled", True),
            ("scheduled", "in_progress", True),
            ("in_progress", "completed", True),
            ("completed", "invoiced", True),
            ("scheduled", "completed", False),
            ("invoiced", "draft", False),
            ("cancelled", "scheduled", False),
        ],
    )
    def test_transitions(self, current, new, ok):
        assert is_valid_transition(current, new) is ok

    def test_totals_round_half_up(self):
        grout = normalize_line_items([{"description": "Grout", "quantity": 1, "unit_price": 0.125}])
        assert grout[0]["total"] == 0.13

        items = normalize_line_items([{"description": "Windows", "quantity": 2, "unit_price": 50.125}])
        totals = calculate_totals(items, 0.0825)
        assert totals == {"subtotal": 100.25, "tax_rate": 0.0825, "tax_amount": 8.27, "total": 108.52}

    def test_payment_status(self):
        assert payment_status(100, 0) == "unpaid"
        assert payment_status(100, 40) == "partial"
        assert payment_status(100, 100) == "paid"

    def test_suggestions(self):
        job = SimpleNamespace(status="invoiced", total=200, total_paid=50, service_date=None)
        assert get_suggestions(job) == ["Follow up on remaining balance: $150.00"]
        job = SimpleNamespace(status="scheduled", total=0, total_paid=0, service_date=None)
        assert "Set a service date for this scheduled job" in get_suggestions(job)


class TestJobCrud:

    def test_create_computes_totals_with_account_tax(self, client, admin_headers, customer_client):
        resp = client.post(
            "/jobs",
            json={
                "client_id": customer_client.id,
                "title": "Move-out clean",
                "scheduled_time": "08:30",
                "line_items": [
                    {"description": "Kitchen", "quantity": 1, "unit_price": 120},
                    {"description": "Bathroom", "quantity": 2, "unit_price": 40},
                ],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        job = resp.json()
        assert job["job_number"].startswith("JOB-")
        assert job["subtotal"] == 200.0
        assert job["tax_rate"] == 0.1
        assert job["total"] == 220.0
        assert job["payment_status"] == "unpaid"

    def test_create_for_foreign_client(self, client, outsider_headers, customer_client):
        resp = client.post(
            "/jobs", json={"client_id": customer_client.id, "title": "Nope"}, headers=outsider_headers
        )
        assert resp.status_code == 404

    def test_bad_time_format(self, client, admin_headers, customer_client):
        resp = client.post(
            "/jobs",
            json={"client_id": customer_client.id, "title": "X", "scheduled_time": "9am"},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    def test_assignee_must_be_in_account(self, client, admin_headers, customer_client, outsider):
        resp = client.post(
            "/jobs",
            json={"client_id": customer_client.id, "title": "X", "assigned_to": outsider.id},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_only_early_jobs_can_be_deleted(self, client, admin_headers, make_job):
        scheduled = make_job(status="scheduled")
        draft = make_job(status="draft")
        assert client.delete(f"/jobs/{scheduled.id}", headers=admin_headers).status_code == 409
        assert client.delete(f"/jobs/{draft.id}", headers=admin_headers).status_code == 200

    def test_replace_line_items(self, client, admin_headers, make_job):
        job = make_job()
        resp = client.put(
            f"/jobs/{job.id}/line-items",
            json={"line_items": [{"description": "Oven", "quantity": 1, "unit_price": 50}], "tax_rate": 0},
            headers=admin_headers,
        )
        assert resp.json()["total"] == 50.0

    def test_list_filters_by_status(self, client, admin_headers, make_job):
        make_job(status="draft")
        make_job(status="scheduled")
        resp = client.get("/jobs?status=draft", headers=admin_headers)
        assert [j["status"] for j in resp.json()["jobs"]] == ["draft"]


class TestJobStatus:

    def test_invalid_transition(self, client, admin_headers, make_job):
        job = make_job(status="scheduled")
        resp = client.patch(f"/jobs/{job.id}/status", json={"status": "completed"}, headers=admin_headers)
        assert resp.status_code == 400
        assert "Allowed: in_progress, cancelled" in resp.json()["detail"]

    def test_status_change_writes_note(self, client, db, admin_headers, make_job):
        job = make_job(status="scheduled")
        resp = client.patch(
            f"/jobs/{job.id}/status",
            json={"status": "in_progress", "reason": "Crew on site"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        note = db.query(JobNote).filter(JobNote.job_id == job.id).one()
        assert note.note_type == "status_change"
        assert note.content == "Status changed from scheduled to in_progress: Crew on site"

    def test_completion_marks_ready_for_invoice(self, client, admin_headers, make_job):
        job = make_job(status="in_progress")
        resp = client.patch(f"/jobs/{job.id}/status", json={"status": "completed"}, headers=admin_headers)
        data = resp.json()
        assert data["ready_for_invoice"] is True
        assert data["completed_at"] is not None

    def test_completion_auto_invoices_when_enabled(self, client, db, account, admin_headers, make_job):
        account.auto_invoice_on_completion = True
        db.commit()
        job = make_job(status="in_progress")

        resp = client.patch(f"/jobs/{job.id}/status", json={"status": "completed"}, headers=admin_headers)
        assert resp.json()["status"] == "invoiced"
        assert db.query(Invoice).filter(Invoice.job_id == job.id).count() == 1

    def test_tech_can_only_move_own_jobs(self, client, tech, tech_headers, make_job):
        mine = make_job(status="scheduled", assigned_to=tech.id)
        theirs = make_job(status="scheduled")
        assert (
            client.patch(f"/jobs/{mine.id}/status", json={"status": "in_progress"}, headers=tech_headers)
        ).status_code == 200
        assert (
            client.patch(f"/jobs/{theirs.id}/status", json={"status": "in_progress"}, headers=tech_headers)
        ).status_code == 403


class TestJobInvoicing:

    def test_invoice_completed_job(self, client, db, admin_headers, make_job):
        job = make_job(status="completed", ready_for_invoice=True)
        resp = client.post(f"/jobs/{job.id}/invoice", headers=admin_headers)
        assert resp.status_code == 201
        invoice = resp.json()
        assert invoice["total"] == 220.0
        assert invoice["status"] == "draft"

        db.refresh(job)
        assert job.status == "invoiced"
        assert job.ready_for_invoice is False

    def test_cannot_invoice_unfinished_job(self, client, admin_headers, make_job):
        job = make_job(status="scheduled")
        assert client.post(f"/jobs/{job.id}/invoice", headers=admin_headers).status_code == 400

    def test_notes(self, client, admin_headers, make_job):
        job = make_job()
        created = client.post(f"/jobs/{job.id}/notes", json={"content": "  Gate code 1234 "}, headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["content"] == "Gate code 1234"
        notes = client.get(f"/jobs/{job.id}/notes", headers=admin_headers).json()
        assert [n["content"] for n in notes] == ["Gate code 1234"]

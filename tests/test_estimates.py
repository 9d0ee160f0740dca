"""Tests for estimates and the public approval link."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

from app.models import Job

APPROVAL = {"clientName": "Jane Homeowner", "clientSignature": "data:image/png;base64,AAAA"}


class TestEstimateCrud:

    def test_create_draft_with_default_validity(self, client, admin_headers, customer_client):
        resp = client.post(
            "/estimates",
            json={
                "client_id": customer_client.id,
                "title": "Kitchen refresh",
                "line_items": [{"description": "Paint", "quantity": 2, "unit_price": 150}],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "draft"
        assert data["estimate_number"].startswith("EST-")
        assert data["subtotal"] == 300.0
        assert data["total"] == 330.0
        assert data["valid_until"] is not None

    def test_update_reprices(self, client, admin_headers, make_estimate):
        estimate = make_estimate(status="draft")
        resp = client.patch(
            f"/estimates/{estimate.id}",
            json={"line_items": [{"description": "Rugs", "quantity": 1, "unit_price": 80}], "tax_rate": 0},
            headers=admin_headers,
        )
        assert resp.json()["total"] == 80.0

    def test_approved_cannot_be_edited_or_deleted(self, client, admin_headers, make_estimate):
        estimate = make_estimate(status="approved")
        assert client.patch(
            f"/estimates/{estimate.id}", json={"title": "New"}, headers=admin_headers
        ).status_code == 409
        assert client.delete(f"/estimates/{estimate.id}", headers=admin_headers).status_code == 409

    def test_send(self, client, admin_headers, make_estimate):
        estimate = make_estimate(status="draft")
        with patch("app.domain.estimates.service.send_estimate_email", new=AsyncMock()) as sender:
            resp = client.post(f"/estimates/{estimate.id}/send", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "sent"
        assert sender.await_args.kwargs["approve_url"].endswith(f"/estimates/{estimate.public_id}")


class TestPublicApproval:

    def test_public_view_needs_no_auth(self, client, make_estimate):
        estimate = make_estimate()
        resp = client.get(f"/public/estimates/{estimate.public_id}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["business_name"] == "Sparkle Field Services"
        assert data["client_name"] == "Jane Homeowner"
        assert data["is_expired"] is False
        assert "approval_info" not in data

    def test_unknown_public_id(self, client):
        assert client.get("/public/estimates/does-not-exist").status_code == 404

    def test_approve_creates_job(self, client, db, make_estimate):
        estimate = make_estimate(status="sent")
        resp = client.post(
            f"/public/estimates/{estimate.public_id}/approve",
            json=APPROVAL,
            headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "approved"

        job = db.query(Job).filter(Job.id == body["jobId"]).one()
        assert job.estimate_id == estimate.id
        assert job.total == 150.0
        assert job.status == "quote"

        db.refresh(estimate)
        assert estimate.job_id == job.id
        assert estimate.approval_info["ipAddress"] == "203.0.113.9"
        assert estimate.approval_info["approvedBy"] == "Jane Homeowner"

    def test_approve_twice(self, client, make_estimate):
        estimate = make_estimate(status="sent")
        client.post(f"/public/estimates/{estimate.public_id}/approve", json=APPROVAL)
        resp = client.post(f"/public/estimates/{estimate.public_id}/approve", json=APPROVAL)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Estimate has already been approved"

    def test_draft_is_not_approvable(self, client, make_estimate):
        estimate = make_estimate(status="draft")
        resp = client.post(f"/public/estimates/{estimate.public_id}/approve", json=APPROVAL)
        assert resp.status_code == 400

    def test_expired(self, client, make_estimate):
        estimate = make_estimate(status="sent", valid_until=datetime.utcnow() - timedelta(days=1))
        assert client.get(f"/public/estimates/{estimate.public_id}").json()["is_expired"] is True
        resp = client.post(f"/public/estimates/{estimate.public_id}/approve", json=APPROVAL)
        assert resp.status_code == 400
        assert "expired" in resp.json()["detail"]

    def test_blank_signature(self, client, make_estimate):
        estimate = make_estimate(status="sent")
        resp = client.post(
            f"/public/estimates/{estimate.public_id}/approve",
            json={"clientName": "Jane", "clientSignature": "  "},
        )
        assert resp.status_code == 422

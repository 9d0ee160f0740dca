"""Tests for the customer portal."""

from unittest.mock import AsyncMock, patch

import pytest

from app.email_service import EmailSendError
from app.models import Client, ContactRequest
from app.domain.portal.service import emergency_priority


class TestPortalListings:

    def test_only_own_non_draft_records(
        self, client, db, account, customer_headers, make_job, make_invoice, make_estimate
    ):
        other = Client(account_id=account.id, name="Neighbour")
        db.add(other)
        db.commit()

        visible_job = make_job(status="scheduled")
        make_job(status="draft")
        make_job(status="scheduled", client_id=other.id)
        visible_invoice = make_invoice(status="sent")
        make_invoice(status="draft")
        visible_estimate = make_estimate(status="sent")
        make_estimate(status="draft")

        jobs = client.get("/portal/jobs", headers=customer_headers).json()
        invoices = client.get("/portal/invoices", headers=customer_headers).json()
        estimates = client.get("/portal/estimates", headers=customer_headers).json()

        assert [j["id"] for j in jobs] == [visible_job.id]
        assert [i["id"] for i in invoices] == [visible_invoice.id]
        assert [e["id"] for e in estimates] == [visible_estimate.id]
        assert "assigned_to" not in jobs[0]

    def test_customer_without_client_link(self, client, db, customer, customer_headers):
        customer.client_id = None
        db.commit()
        assert client.get("/portal/jobs", headers=customer_headers).status_code == 403


class TestPortalPayments:

    def test_creates_checkout_session(self, client, db, customer_headers, make_invoice):
        invoice = make_invoice(status="partial", total=100.0, amount_paid=40.0)
        with patch(
            "app.services.stripe_service.create_invoice_checkout_session",
            return_value={"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"},
        ) as create_session:
            resp = client.post(f"/portal/invoices/{invoice.id}/pay", headers=customer_headers)

        assert resp.status_code == 200
        assert resp.json() == {"url": "https://checkout.stripe.test/cs_test_1"}
        assert create_session.call_args.args[0].balance_due == 60.0
        db.refresh(invoice)
        assert invoice.stripe_checkout_session_id == "cs_test_1"

    @pytest.mark.parametrize("status", ["draft", "paid", "cancelled"])
    def test_unpayable_statuses(self, client, customer_headers, make_invoice, status):
        invoice = make_invoice(status=status)
        assert client.post(f"/portal/invoices/{invoice.id}/pay", headers=customer_headers).status_code == 400

    def test_other_clients_invoice_is_forbidden(self, client, db, account, customer_headers, make_invoice):
        other = Client(account_id=account.id, name="Neighbour")
        db.add(other)
        db.commit()
        invoice = make_invoice(client_id=other.id)
        assert client.post(f"/portal/invoices/{invoice.id}/pay", headers=customer_headers).status_code == 403

    def test_stripe_failure_is_500(self, client, customer_headers, make_invoice):
        invoice = make_invoice()
        with patch(
            "app.services.stripe_service.create_invoice_checkout_session",
            side_effect=RuntimeError("stripe down"),
        ):
            resp = client.post(f"/portal/invoices/{invoice.id}/pay", headers=customer_headers)
        assert resp.status_code == 500


class TestPortalRequests:

    def test_contact_request(self, client, db, customer_headers):
        with patch("app.domain.portal.service.send_contact_request_email", new=AsyncMock()) as sender:
            resp = client.post(
                "/portal/contact",
                json={"category": "billing", "subject": "Question", "message": "Why two charges?"},
                headers=customer_headers,
            )
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert sender.await_args.kwargs["customer_email"] == "jane@home.test"
        assert db.query(ContactRequest).one().category == "billing"

    def test_contact_blank_message(self, client, customer_headers):
        resp = client.post(
            "/portal/contact",
            json={"category": "general", "subject": "Hi", "message": "   "},
            headers=customer_headers,
        )
        assert resp.status_code == 422

    def test_emergency_request(self, client, db, customer_headers):
        with patch("app.domain.portal.service.send_emergency_alert", new=AsyncMock()) as alert:
            resp = client.post(
                "/portal/emergency",
                json={
                    "location": "Basement",
                    "description": "Water everywhere",
                    "contactPhone": "512-555-0100",
                    "urgency": "critical",
                },
                headers=customer_headers,
            )
        assert resp.status_code == 200
        request = db.query(ContactRequest).one()
        assert request.category == "emergency"
        assert request.priority == "urgent"
        assert request.subject == "EMERGENCY: Basement"
        assert alert.await_args.kwargs["priority"] == "urgent"

    def test_emergency_email_failure(self, client, customer_headers):
        with patch(
            "app.domain.portal.service.send_emergency_alert",
            new=AsyncMock(side_effect=EmailSendError("no key")),
        ):
            resp = client.post(
                "/portal/emergency",
                json={"location": "Roof", "description": "Leak", "contactPhone": "5125550100"},
                headers=customer_headers,
            )
        assert resp.status_code == 500

    @pytest.mark.parametrize(
        "urgency,expected",
        [("high", "high"), ("URGENT", "urgent"), ("critical", "urgent"), ("whenever", "urgent"), ("", "urgent")],
    )
    def test_emergency_priority(self, urgency, expected):
        assert emergency_priority(urgency) == expected

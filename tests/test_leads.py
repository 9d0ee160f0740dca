"""Tests for the leads domain and urgency scoring."""

from datetime import datetime, timedelta
from types import SimpleNamespace

from app.models import Client, Lead
from app.domain.leads.scoring import calculate_urgency_score, sort_by_urgency

NOW = datetime(2025, 6, 1, 12, 0, 0)


def lead_like(**fields):
    values = {
        "status": "contacted",
        "priority": "low",
        "estimated_value": None,
        "created_at": NOW - timedelta(hours=48),
        "source": "web",
    }
    values.update(fields)
    return SimpleNamespace(**values)


class TestUrgencyScore:

    def test_baseline_is_zero(self):
        assert calculate_urgency_score(lead_like(), NOW) == 0

    def test_fresh_urgent_phone_lead(self):
        lead = lead_like(
            status="new", priority="urgent", source="phone", created_at=NOW - timedelta(minutes=10)
        )
        assert calculate_urgency_score(lead, NOW) == 50 + 100 + 50 + 20

    def test_value_bands(self):
        assert calculate_urgency_score(lead_like(estimated_value=12000), NOW) == 50
        assert calculate_urgency_score(lead_like(estimated_value=6000), NOW) == 25
        assert calculate_urgency_score(lead_like(estimated_value=5000), NOW) == 0

    def test_age_bands(self):
        assert calculate_urgency_score(lead_like(created_at=NOW - timedelta(hours=2)), NOW) == 30
        assert calculate_urgency_score(lead_like(created_at=NOW - timedelta(hours=10)), NOW) == 10
        assert calculate_urgency_score(lead_like(created_at=NOW - timedelta(hours=100)), NOW) == -20

    def test_walk_in_and_medium(self):
        assert calculate_urgency_score(lead_like(source="walk_in", priority="medium"), NOW) == 55

    def test_sort_ties_break_newest_first(self):
        earlier = lead_like(priority="high", created_at=NOW - timedelta(hours=40))
        recent = lead_like(priority="high", created_at=NOW - timedelta(hours=30))
        top = lead_like(priority="urgent")
        assert sort_by_urgency([earlier, recent, top], NOW) == [top, recent, earlier]


class TestLeadEndpoints:

    def test_create_and_fetch(self, client, admin_headers):
        resp = client.post(
            "/leads",
            json={"first_name": "Sam", "last_name": "Rivera", "phone": "512-555-0142", "source": "phone"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        lead = resp.json()
        assert lead["phone"] == "+15125550142"
        assert lead["status"] == "new"
        assert lead["urgency_score"] >= 50 + 25 + 50 + 20

        fetched = client.get(f"/leads/{lead['id']}", headers=admin_headers)
        assert fetched.json()["first_name"] == "Sam"

    def test_tech_has_no_lead_access(self, client, tech_headers):
        assert client.get("/leads", headers=tech_headers).status_code == 403

    def test_invalid_priority(self, client, admin_headers):
        resp = client.post("/leads", json={"first_name": "X", "priority": "asap"}, headers=admin_headers)
        assert resp.status_code == 422

    def test_list_sorted_by_urgency(self, client, db, account, admin_headers):
        db.add(Lead(account_id=account.id, first_name="Cold", status="lost", priority="low"))
        db.add(Lead(account_id=account.id, first_name="Hot", status="new", priority="urgent"))
        db.commit()

        resp = client.get("/leads?sort=urgency", headers=admin_headers)
        names = [lead["first_name"] for lead in resp.json()["leads"]]
        assert names == ["Hot", "Cold"]

    def test_filter_by_status(self, client, db, account, admin_headers):
        db.add(Lead(account_id=account.id, first_name="A", status="new"))
        db.add(Lead(account_id=account.id, first_name="B", status="qualified"))
        db.commit()
        resp = client.get("/leads?status=qualified", headers=admin_headers)
        assert [lead["first_name"] for lead in resp.json()["leads"]] == ["B"]

    def test_status_converted_requires_convert_endpoint(self, client, db, account, admin_headers):
        lead = Lead(account_id=account.id, first_name="Pat")
        db.add(lead)
        db.commit()
        resp = client.patch(f"/leads/{lead.id}", json={"status": "converted"}, headers=admin_headers)
        assert resp.status_code == 400


class TestLeadConversion:

    def test_convert_creates_client(self, client, db, account, admin_headers):
        lead = Lead(
            account_id=account.id,
            first_name="Robin",
            last_name="Lee",
            email="robin@lee.test",
            address="9 Elm St",
        )
        db.add(lead)
        db.commit()

        resp = client.post(f"/leads/{lead.id}/convert", headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["lead"]["status"] == "converted"

        new_client = db.query(Client).filter(Client.id == data["client_id"]).one()
        assert new_client.name == "Robin Lee"
        assert new_client.source == "lead"

    def test_convert_twice_conflicts(self, client, db, account, admin_headers):
        lead = Lead(account_id=account.id, first_name="Robin")
        db.add(lead)
        db.commit()
        client.post(f"/leads/{lead.id}/convert", headers=admin_headers)
        assert client.post(f"/leads/{lead.id}/convert", headers=admin_headers).status_code == 409

    def test_analytics(self, client, db, account, admin_headers):
        db.add(Lead(account_id=account.id, first_name="A", status="converted", estimated_value=100))
        db.add(Lead(account_id=account.id, first_name="B", status="new", estimated_value=400))
        db.commit()
        data = client.get("/leads/analytics", headers=admin_headers).json()
        assert data["total"] == 2
        assert data["conversionRate"] == 50.0
        assert data["byStatus"]["new"] == 1

"""Tests for the technician portal."""

from datetime import datetime, timedelta

from app.models import JobChecklistItem


class TestTechSchedule:

    def test_schedule_shows_only_my_upcoming_visits(
        self, client, tech, other_tech, tech_headers, make_job, make_visit
    ):
        job = make_job(title="Office clean")
        now = datetime.utcnow()
        mine = make_visit(job, tech_id=tech.id, start_at=now + timedelta(days=1))
        make_visit(job, tech_id=other_tech.id, start_at=now + timedelta(days=1))
        make_visit(job, tech_id=tech.id, start_at=now + timedelta(days=1), status="cancelled")
        make_visit(job, tech_id=tech.id, start_at=now + timedelta(days=30))

        resp = client.get("/tech/schedule", headers=tech_headers)
        assert resp.status_code == 200
        assert [v["id"] for v in resp.json()] == [mine.id]
        assert resp.json()[0]["job_title"] == "Office clean"

    def test_today(self, client, tech, tech_headers, make_job, make_visit):
        job = make_job()
        today = make_visit(job, tech_id=tech.id)
        make_visit(job, tech_id=tech.id, start_at=datetime.utcnow() + timedelta(days=2))
        resp = client.get("/tech/today", headers=tech_headers)
        assert [v["id"] for v in resp.json()] == [today.id]


class TestTechVisitUpdates:

    def test_forward_only_progression(self, client, tech, tech_headers, make_job, make_visit):
        visit = make_visit(make_job(), tech_id=tech.id)
        skipped = client.patch(f"/tech/visits/{visit.id}", json={"status": "completed"}, headers=tech_headers)
        assert skipped.status_code == 400

        started = client.patch(f"/tech/visits/{visit.id}", json={"status": "in_progress"}, headers=tech_headers)
        assert started.json()["started_at"] is not None
        done = client.patch(f"/tech/visits/{visit.id}", json={"status": "completed"}, headers=tech_headers)
        assert done.json()["status"] == "completed"

    def test_notes_are_appended_with_timestamp(self, client, tech, tech_headers, make_job, make_visit):
        visit = make_visit(make_job(), tech_id=tech.id, notes="Dog in yard")
        resp = client.patch(f"/tech/visits/{visit.id}", json={"notes": "Left key under mat"}, headers=tech_headers)
        lines = resp.json()["notes"].splitlines()
        assert lines[0] == "Dog in yard"
        assert lines[1].endswith("] Left key under mat")

    def test_cannot_touch_someone_elses_visit(self, client, other_tech, tech_headers, make_job, make_visit):
        visit = make_visit(make_job(), tech_id=other_tech.id)
        resp = client.patch(f"/tech/visits/{visit.id}", json={"status": "in_progress"}, headers=tech_headers)
        assert resp.status_code == 403


class TestTechJobs:

    def test_job_visible_through_visit_assignment(self, client, tech, tech_headers, make_job, make_visit):
        job = make_job()
        make_visit(job, tech_id=tech.id)
        resp = client.get(f"/tech/jobs/{job.id}", headers=tech_headers)
        assert resp.status_code == 200
        assert resp.json()["client_name"] == "Jane Homeowner"

    def test_unassigned_job_is_forbidden(self, client, tech_headers, make_job):
        job = make_job()
        assert client.get(f"/tech/jobs/{job.id}", headers=tech_headers).status_code == 403

    def test_admin_sees_any_job(self, client, admin_headers, make_job):
        job = make_job()
        assert client.get(f"/tech/jobs/{job.id}", headers=admin_headers).status_code == 200

    def test_add_note(self, client, tech, tech_headers, make_job):
        job = make_job(assigned_to=tech.id)
        resp = client.post(f"/tech/jobs/{job.id}/notes", json={"content": "Arrived"}, headers=tech_headers)
        assert resp.status_code == 201
        assert resp.json()["user_id"] == tech.id


class TestChecklist:

    def test_items_get_increasing_sort_order(self, client, tech, tech_headers, make_job):
        job = make_job(assigned_to=tech.id)
        first = client.post(f"/tech/jobs/{job.id}/checklist", json={"item_text": "Vacuum"}, headers=tech_headers)
        second = client.post(f"/tech/jobs/{job.id}/checklist", json={"item_text": " Mop "}, headers=tech_headers)
        assert first.json()["sort_order"] == 0
        assert second.json()["sort_order"] == 1
        assert second.json()["item_text"] == "Mop"

        items = client.get(f"/tech/jobs/{job.id}/checklist", headers=tech_headers).json()
        assert [i["item_text"] for i in items] == ["Vacuum", "Mop"]

    def test_blank_item_rejected(self, client, tech, tech_headers, make_job):
        job = make_job(assigned_to=tech.id)
        resp = client.post(f"/tech/jobs/{job.id}/checklist", json={"item_text": "   "}, headers=tech_headers)
        assert resp.status_code == 422

    def test_toggle(self, client, db, account, tech, tech_headers, make_job):
        job = make_job(assigned_to=tech.id)
        item = JobChecklistItem(job_id=job.id, account_id=account.id, item_text="Dust")
        db.add(item)
        db.commit()

        on = client.patch(f"/tech/checklist/{item.id}", headers=tech_headers)
        assert on.json()["is_completed"] is True
        assert on.json()["completed_by"] == tech.id

        off = client.patch(f"/tech/checklist/{item.id}", headers=tech_headers)
        assert off.json()["is_completed"] is False
        assert off.json()["completed_at"] is None

        explicit = client.patch(f"/tech/checklist/{item.id}", json={"is_completed": True}, headers=tech_headers)
        assert explicit.json()["is_completed"] is True

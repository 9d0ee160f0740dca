"""Tests for visit scheduling."""

from datetime import datetime, timedelta

START = datetime(2025, 7, 1, 9, 0)


class TestVisits:

    def test_create_defaults_tech_to_job_assignee(self, client, admin_headers, tech, make_job):
        job = make_job(assigned_to=tech.id)
        resp = client.post(
            "/visits",
            json={"job_id": job.id, "start_at": START.isoformat(), "end_at": (START + timedelta(hours=2)).isoformat()},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["tech_id"] == tech.id
        assert resp.json()["status"] == "scheduled"

    def test_end_before_start_is_rejected(self, client, admin_headers, make_job):
        job = make_job()
        resp = client.post(
            "/visits",
            json={"job_id": job.id, "start_at": START.isoformat(), "end_at": (START - timedelta(hours=1)).isoformat()},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    def test_cannot_schedule_on_cancelled_job(self, client, admin_headers, make_job):
        job = make_job(status="cancelled")
        resp = client.post("/visits", json={"job_id": job.id, "start_at": START.isoformat()}, headers=admin_headers)
        assert resp.status_code == 400

    def test_list_in_range_with_job_details(self, client, admin_headers, make_job, make_visit):
        job = make_job(title="Window wash")
        make_visit(job, start_at=START)
        make_visit(job, start_at=START + timedelta(days=3))

        resp = client.get(
            "/visits",
            params={"start": START.isoformat(), "end": (START + timedelta(days=1)).isoformat()},
            headers=admin_headers,
        )
        visits = resp.json()
        assert len(visits) == 1
        assert visits[0]["job_title"] == "Window wash"
        assert visits[0]["client_name"] == "Jane Homeowner"

    def test_update_window_validation(self, client, admin_headers, make_job, make_visit):
        visit = make_visit(make_job(), start_at=START, end_at=START + timedelta(hours=1))
        resp = client.patch(
            f"/visits/{visit.id}", json={"start_at": (START + timedelta(hours=2)).isoformat()}, headers=admin_headers
        )
        assert resp.status_code == 400

    def test_status_timestamps(self, client, admin_headers, make_job, make_visit):
        visit = make_visit(make_job(), start_at=START)
        started = client.patch(f"/visits/{visit.id}", json={"status": "in_progress"}, headers=admin_headers)
        assert started.json()["started_at"] is not None
        done = client.patch(f"/visits/{visit.id}", json={"status": "completed"}, headers=admin_headers)
        assert done.json()["completed_at"] is not None

    def test_delete(self, client, admin_headers, outsider_headers, make_job, make_visit):
        visit = make_visit(make_job(), start_at=START)
        assert client.delete(f"/visits/{visit.id}", headers=outsider_headers).status_code == 404
        assert client.delete(f"/visits/{visit.id}", headers=admin_headers).status_code == 200

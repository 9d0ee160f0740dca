"""Tests for the clients domain."""

from app.models import Client


class TestClientCrud:

    def test_create_normalizes_contact_details(self, client, admin_headers):
        resp = client.post(
            "/clients",
            json={"name": "Acme Offices", "email": "Front@Acme.COM", "phone": "(512) 555-0199"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["email"] == "front@acme.com"
        assert data["phone"] == "+15125550199"
        assert data["status"] == "active"
        assert data["source"] == "manual"

    def test_invalid_phone_is_rejected(self, client, admin_headers):
        resp = client.post("/clients", json={"name": "Bad", "phone": "12345"}, headers=admin_headers)
        assert resp.status_code == 422

    def test_duplicate_email_conflicts(self, client, admin_headers, customer_client):
        resp = client.post(
            "/clients", json={"name": "Jane Again", "email": "JANE@home.test"}, headers=admin_headers
        )
        assert resp.status_code == 409

    def test_get_other_tenant_is_404(self, client, outsider_headers, customer_client):
        resp = client.get(f"/clients/{customer_client.id}", headers=outsider_headers)
        assert resp.status_code == 404

    def test_update(self, client, admin_headers, customer_client):
        resp = client.patch(
            f"/clients/{customer_client.id}",
            json={"status": "inactive", "notes": "Moved away"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "inactive"

    def test_update_rejects_unknown_status(self, client, admin_headers, customer_client):
        resp = client.patch(
            f"/clients/{customer_client.id}", json={"status": "gone"}, headers=admin_headers
        )
        assert resp.status_code == 422

    def test_delete_without_history(self, client, db, admin_headers, customer_client):
        resp = client.delete(f"/clients/{customer_client.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db.query(Client).count() == 0

    def test_delete_with_jobs_conflicts(self, client, admin_headers, customer_client, make_job):
        make_job()
        resp = client.delete(f"/clients/{customer_client.id}", headers=admin_headers)
        assert resp.status_code == 409


class TestClientListing:

    def test_search_and_pagination(self, client, db, account, admin_headers):
        for i in range(3):
            db.add(Client(account_id=account.id, name=f"Maple {i}", email=f"maple{i}@x.test"))
        db.add(Client(account_id=account.id, name="Birch"))
        db.commit()

        resp = client.get("/clients?search=maple&limit=2", headers=admin_headers)
        data = resp.json()
        assert resp.status_code == 200
        assert len(data["clients"]) == 2
        assert data["pagination"]["total"] == 3
        assert data["pagination"]["hasMore"] is True

    def test_tenant_isolation(self, client, db, other_account, admin_headers, customer_client):
        db.add(Client(account_id=other_account.id, name="Not mine"))
        db.commit()
        names = [c["name"] for c in client.get("/clients", headers=admin_headers).json()["clients"]]
        assert names == ["Jane Homeowner"]

    def test_batch_delete_skips_clients_with_history(
        self, client, db, account, admin_headers, customer_client, make_job
    ):
        make_job()
        spare = Client(account_id=account.id, name="Spare")
        db.add(spare)
        db.commit()

        resp = client.post(
            "/clients/batch-delete",
            json={"client_ids": [customer_client.id, spare.id, 9999]},
            headers=admin_headers,
        )
        data = resp.json()
        assert data["deletedCount"] == 1
        assert sorted(data["skippedIds"]) == sorted([customer_client.id, 9999])

    def test_activity_lists_jobs_estimates_invoices(
        self, client, admin_headers, customer_client, make_job, make_estimate, make_invoice
    ):
        make_job()
        make_estimate()
        make_invoice()
        resp = client.get(f"/clients/{customer_client.id}/activity", headers=admin_headers)
        assert resp.status_code == 200
        assert {item["type"] for item in resp.json()} == {"job", "estimate", "invoice"}


class TestClientExport:

    def test_owner_can_export_csv(self, client, owner_headers, customer_client):
        resp = client.get("/clients/export", headers=owner_headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        lines = resp.text.strip().splitlines()
        assert lines[0].startswith("ID,Name,Company")
        assert "Jane Homeowner" in lines[1]

    def test_admin_lacks_export_permission(self, client, admin_headers):
        assert client.get("/clients/export", headers=admin_headers).status_code == 403

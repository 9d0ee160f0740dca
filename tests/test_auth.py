"""Tests for authentication, role guards and the health endpoints."""

from unittest.mock import patch

from app.models import Account, User
from app.permissions import ADMIN, OWNER, TECH, resolve_permissions

from conftest import make_token


class TestHealth:

    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "running" in resp.json()["message"]

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.json() == {"status": "healthy"}

    def test_security_headers_added(self, client):
        resp = client.get("/")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"

    def test_redis_health_reports_unhealthy_on_failure(self, client):
        with patch("app.rate_limiter.get_redis_client", side_effect=ConnectionError("down")):
            resp = client.get("/health/redis")
        assert resp.status_code == 200
        assert resp.json()["status"] == "unhealthy"
        assert resp.json()["redis"]["connected"] is False


class TestAuthentication:

    def test_missing_token_is_rejected(self, client):
        resp = client.get("/clients")
        assert resp.status_code in (401, 403)

    def test_garbage_token(self, client):
        resp = client.get("/clients", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_wrong_secret(self, client, owner):
        from jose import jwt

        token = jwt.encode({"sub": owner.auth_uid, "email": owner.email}, "nope", algorithm="HS256")
        resp = client.get("/clients", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_first_login_provisions_account_and_owner(self, client, db):
        token = make_token("brand-new", "New.Owner@Example.com", user_metadata={"full_name": "New Owner"})
        resp = client.get("/account", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200

        user = db.query(User).filter(User.auth_uid == "brand-new").one()
        assert user.email == "new.owner@example.com"
        assert user.role == OWNER
        assert db.query(Account).filter(Account.id == user.account_id).one().name == "New Owner"

    def test_invited_user_is_linked_by_email(self, client, db, account):
        invited = User(account_id=account.id, email="invitee@sparkle.test", role=TECH)
        db.add(invited)
        db.commit()

        token = make_token("invitee-uid", "invitee@sparkle.test")
        resp = client.get("/account", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        db.refresh(invited)
        assert invited.auth_uid == "invitee-uid"
        assert resp.json()["context"]["role"] == TECH

    def test_disabled_user(self, client, db, admin, admin_headers):
        admin.is_active = False
        db.commit()
        resp = client.get("/account", headers=admin_headers)
        assert resp.status_code == 403


class TestRoleGuards:

    def test_tech_cannot_use_admin_endpoints(self, client, tech_headers):
        assert client.get("/clients", headers=tech_headers).status_code == 403

    def test_customer_cannot_use_tech_portal(self, client, customer_headers):
        assert client.get("/tech/schedule", headers=customer_headers).status_code == 403

    def test_admin_cannot_use_customer_portal(self, client, admin_headers):
        assert client.get("/portal/jobs", headers=admin_headers).status_code == 403


class TestPermissions:

    def test_owner_has_everything(self):
        assert "export_data" in resolve_permissions(OWNER)

    def test_extra_grants_are_merged_without_duplicates(self):
        perms = resolve_permissions(ADMIN, ["export_data", "manage_leads", "made_up"])
        assert perms.count("manage_leads") == 1
        assert "export_data" in perms
        assert "made_up" not in perms

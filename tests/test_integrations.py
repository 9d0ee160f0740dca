"""Tests for Twilio, Square and Gmail integrations and the background worker."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.messaging.gmail_worker import sync_gmail_to_inbox
from app.models import Client
from app.models_gmail import GmailConnection
from app.models_messaging import Message
from app.models_square import SquareIntegration
from app.models_twilio import TwilioIntegration, TwilioSMSLog
from app.services.square_service import import_customers, map_square_customer, parse_expires_at
from app.services.twilio_service import send_sms
from app.shared.crypto import decrypt_token, encrypt_token
from app.worker import WorkerSettings, get_redis_settings


def fake_http(response):
    """Stand-in for httpx.AsyncClient used as an async context manager"""
    client = MagicMock()
    client.get = AsyncMock(return_value=response)
    client.post = AsyncMock(return_value=response)
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=client)
    session.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=session), client


@pytest.fixture
def twilio(db, account):
    integration = TwilioIntegration(
        account_id=account.id,
        account_sid=encrypt_token("AC123"),
        auth_token=encrypt_token("twilio-auth"),
        phone_number="+15125550199",
        sms_enabled=True,
        is_verified=True,
    )
    db.add(integration)
    db.commit()
    return integration


class TestTwilioRoutes:

    def test_status_not_connected(self, client, admin_headers):
        assert client.get("/twilio/status", headers=admin_headers).json()["connected"] is False

    def test_connect_stores_encrypted_credentials(self, client, db, account, admin_headers):
        with patch("app.routes.twilio.verify_credentials", new=AsyncMock(return_value=(True, None))):
            resp = client.post(
                "/twilio/connect",
                json={"account_sid": "AC123", "auth_token": "secret", "phone_number": "+15125550199"},
                headers=admin_headers,
            )
        assert resp.status_code == 200

        integration = db.query(TwilioIntegration).filter_by(account_id=account.id).one()
        assert integration.auth_token != "secret"
        assert decrypt_token(integration.auth_token) == "secret"
        assert integration.is_verified is True

        status = client.get("/twilio/status", headers=admin_headers).json()
        assert status["connected"] is True
        assert status["phone_number"] == "***-***-0199"

    def test_connect_needs_sender(self, client, admin_headers):
        resp = client.post(
            "/twilio/connect", json={"account_sid": "AC123", "auth_token": "secret"}, headers=admin_headers
        )
        assert resp.status_code == 400

    def test_connect_rejects_bad_credentials(self, client, admin_headers):
        with patch(
            "app.routes.twilio.verify_credentials",
            new=AsyncMock(return_value=(False, "Invalid Twilio credentials")),
        ):
            resp = client.post(
                "/twilio/connect",
                json={"account_sid": "AC123", "auth_token": "bad", "phone_number": "+15125550199"},
                headers=admin_headers,
            )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid Twilio credentials"

    def test_disconnect(self, client, db, twilio, admin_headers):
        assert client.delete("/twilio/disconnect", headers=admin_headers).status_code == 200
        assert db.query(TwilioIntegration).count() == 0
        assert client.delete("/twilio/disconnect", headers=admin_headers).status_code == 404

    def test_tech_cannot_manage(self, client, tech_headers):
        assert client.get("/twilio/status", headers=tech_headers).status_code == 403


class TestSendSms:

    def test_requires_e164(self, db, account, twilio):
        success, error, sid = asyncio.run(send_sms(db, account.id, "5125550123", "Hi", "inbox_reply"))
        assert success is False
        assert "E.164" in error

    def test_no_integration(self, db, other_account):
        assert asyncio.run(send_sms(db, other_account.id, "+15125550123", "Hi", "inbox_reply")) == (
            False,
            "No Twilio integration",
            None,
        )

    def test_message_type_disabled(self, db, account, twilio):
        twilio.send_visit_reminder = False
        db.commit()
        success, error, _ = asyncio.run(send_sms(db, account.id, "+15125550123", "Hi", "visit_reminder"))
        assert success is False
        assert error == "Message type visit_reminder disabled"

    def test_sent_and_logged(self, db, account, twilio):
        factory, http = fake_http(httpx.Response(201, json={"sid": "SM42"}))
        with patch("app.services.twilio_service.httpx.AsyncClient", factory):
            result = asyncio.run(
                send_sms(db, account.id, "+15125550123", "On our way", "inbox_reply", whatsapp=True)
            )

        assert result == (True, None, "SM42")
        data = http.post.call_args.kwargs["data"]
        assert data["To"] == "whatsapp:+15125550123"
        assert data["From"] == "whatsapp:+15125550199"
        log = db.query(TwilioSMSLog).one()
        assert log.status == "sent"
        assert log.twilio_message_sid == "SM42"

    def test_api_error_logged(self, db, account, twilio):
        factory, _ = fake_http(httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"}))
        with patch("app.services.twilio_service.httpx.AsyncClient", factory):
            success, error, sid = asyncio.run(send_sms(db, account.id, "+15125550123", "Hi", "inbox_reply"))

        assert (success, sid) == (False, None)
        assert error == "Invalid 'To' Phone Number"
        assert db.query(TwilioSMSLog).one().error_message == "[21211] Invalid 'To' Phone Number"


class TestSquareImport:

    def test_map_customer(self):
        mapped = map_square_customer(
            {
                "id": "SQ1",
                "given_name": " Jane ",
                "family_name": "Homeowner",
                "email_address": "Jane@Home.TEST",
                "phone_number": "+15125550100",
                "address": {
                    "address_line_1": "12 Oak St",
                    "address_line_2": "Unit 2",
                    "locality": "Austin",
                    "administrative_district_level_1": "TX",
                    "postal_code": "78701",
                },
            }
        )
        assert mapped["name"] == "Jane Homeowner"
        assert mapped["email"] == "jane@home.test"
        assert mapped["address"] == "12 Oak St, Unit 2"
        assert mapped["city"] == "Austin"
        assert mapped["square_customer_id"] == "SQ1"

    def test_map_company_only(self):
        assert map_square_customer({"id": "SQ2", "company_name": "Acme"})["name"] == "Acme"

    def test_parse_expires_at(self):
        assert parse_expires_at("2025-01-01T12:00:00Z").isoformat() == "2025-01-01T12:00:00"
        assert parse_expires_at("not a date") is None

    def test_import_skips_existing(self, db, account, customer_client):
        customers = [
            {"id": "SQ1", "given_name": "Jane", "email_address": "JANE@home.test"},
            {"id": "SQ2", "given_name": "Omar", "email_address": "omar@home.test"},
            {"id": "SQ2", "given_name": "Omar again"},
        ]
        result = import_customers(db, account.id, customers)
        assert result == {"imported": 1, "skipped": 2, "total": 3}

        omar = db.query(Client).filter_by(square_customer_id="SQ2").one()
        assert omar.source == "square"
        assert omar.account_id == account.id

    def test_import_endpoint(self, client, db, account, admin_headers):
        db.add(SquareIntegration(account_id=account.id, merchant_id="M1", access_token=encrypt_token("tok")))
        db.commit()

        with patch("app.routes.square.fetch_square_customers", new=AsyncMock(return_value=[{"id": "SQ9"}])) as fetch:
            resp = client.post("/square/import-customers", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json()["imported"] == 1
        assert fetch.call_args.args[0] == "tok"
        assert db.query(SquareIntegration).one().last_import_at is not None

    def test_import_requires_connection(self, client, admin_headers):
        assert client.post("/square/import-customers", headers=admin_headers).status_code == 401

    def test_status(self, client, db, account, admin_headers):
        assert client.get("/square/status", headers=admin_headers).json()["connected"] is False
        db.add(SquareIntegration(account_id=account.id, merchant_id="M1", access_token=encrypt_token("tok")))
        db.commit()
        status = client.get("/square/status", headers=admin_headers).json()
        assert status["connected"] is True
        assert status["merchant_id"] == "M1"


class TestGmail:

    @pytest.fixture
    def connection(self, db, account):
        connection = GmailConnection(
            account_id=account.id, email="office@sparkle.test", access_token=encrypt_token("gtok")
        )
        db.add(connection)
        db.commit()
        return connection

    def test_status_and_sync_without_connection(self, client, admin_headers):
        assert client.get("/gmail/status", headers=admin_headers).json() == {
            "connected": False,
            "email": None,
            "last_synced_at": None,
            "last_sync_error": None,
        }
        assert client.post("/gmail/sync", headers=admin_headers).status_code == 404

    def test_sync_saves_unread_mail(self, db, account, connection):
        message = {
            "id": "18c1",
            "payload": {
                "headers": [
                    {"name": "From", "value": "Jane <jane@home.test>"},
                    {"name": "Subject", "value": "Window cleaning"},
                ],
                "body": {},
            },
            "snippet": "Can you do Friday?",
        }
        with patch("app.services.gmail_service.get_valid_access_token", new=AsyncMock(return_value="gtok")), patch(
            "app.services.gmail_service.list_unread_messages", new=AsyncMock(return_value=[{"id": "18c1"}])
        ), patch("app.services.gmail_service.get_message", new=AsyncMock(return_value=message)), patch(
            "app.services.gmail_service.mark_as_read", new=AsyncMock()
        ) as mark:
            summary = asyncio.run(sync_gmail_to_inbox(db))

        assert summary == {"totalSynced": 1, "errors": []}
        saved = db.query(Message).one()
        assert saved.external_id == "18c1"
        assert saved.message_text == "Can you do Friday?"
        mark.assert_awaited_once()
        db.refresh(connection)
        assert connection.last_synced_at is not None

    def test_sync_records_token_failure(self, db, connection):
        with patch("app.services.gmail_service.get_valid_access_token", new=AsyncMock(return_value=None)):
            summary = asyncio.run(sync_gmail_to_inbox(db))

        assert summary["totalSynced"] == 0
        assert len(summary["errors"]) == 1
        db.refresh(connection)
        assert "No valid access token" in connection.last_sync_error

    def test_disconnect(self, client, db, connection, admin_headers):
        assert client.delete("/gmail/disconnect", headers=admin_headers).status_code == 200
        assert db.query(GmailConnection).count() == 0


class TestWorker:

    def test_registered_tasks(self):
        names = {f.__name__ for f in WorkerSettings.functions}
        assert names == {"process_message_ai_task", "sync_gmail_accounts_task", "invoice_status_task"}
        assert len(WorkerSettings.cron_jobs) == 2

    def test_redis_settings_from_url(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "rediss://:pw@cache.internal:6380")
        settings = get_redis_settings()
        assert settings.host == "cache.internal"
        assert settings.port == 6380
        assert settings.password == "pw"
        assert settings.ssl is True

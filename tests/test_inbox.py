"""Tests for the unified inbox endpoints."""

from unittest.mock import AsyncMock, patch

from app.email_service import EmailSendError
from app.messaging.normalize import from_gmail, from_twilio
from app.messaging.save import store_normalized_message
from app.models_messaging import Message


def save_sms(db, account, sid="SM0001", phone="+15125550123", body="Is Tuesday open?"):
    form = {"From": phone, "To": "+15125550199", "Body": body, "MessageSid": sid}
    return store_normalized_message(db, account.id, from_twilio(form))


def save_email(db, account, message_id="gm-1", sender="jane@home.test", subject="Leaky faucet"):
    payload = {"fromEmail": sender, "fromName": "Jane", "messageId": message_id, "subject": subject}
    return store_normalized_message(db, account.id, from_gmail(payload))


class TestConversationList:

    def test_requires_back_office(self, client, tech_headers):
        assert client.get("/inbox/conversations", headers=tech_headers).status_code == 403

    def test_newest_first_with_pagination(self, client, db, account, admin_headers):
        save_sms(db, account, sid="SM1", phone="+15125550001")
        save_sms(db, account, sid="SM2", phone="+15125550002")
        latest = save_sms(db, account, sid="SM3", phone="+15125550003")

        resp = client.get("/inbox/conversations?pageSize=2", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"] == {"page": 1, "pageSize": 2, "total": 3, "hasMore": True}
        assert body["conversations"][0]["id"] == latest["conversation_id"]
        assert body["conversations"][0]["customer"]["phone"] == "+15125550003"

        page2 = client.get("/inbox/conversations?pageSize=2&page=2", headers=admin_headers).json()
        assert len(page2["conversations"]) == 1
        assert page2["pagination"]["hasMore"] is False

    def test_spam_hidden_by_default(self, client, db, account, admin_headers):
        spam = save_email(db, account, sender="deals@promo.test", subject="50% off")
        real = save_sms(db, account)
        db.query(Message).get(spam["message_id"]).ai_category = "spam_or_ads"
        db.commit()

        ids = [c["id"] for c in client.get("/inbox/conversations", headers=admin_headers).json()["conversations"]]
        assert ids == [real["conversation_id"]]

        ids = [
            c["id"]
            for c in client.get("/inbox/conversations?hideSpam=false", headers=admin_headers).json()["conversations"]
        ]
        assert spam["conversation_id"] in ids

    def test_status_filter(self, client, db, account, admin_headers):
        saved = save_sms(db, account)
        client.patch(
            f"/inbox/conversations/{saved['conversation_id']}", json={"status": "closed"}, headers=admin_headers
        )

        assert client.get("/inbox/conversations", headers=admin_headers).json()["conversations"] == []
        closed = client.get("/inbox/conversations?status=closed", headers=admin_headers).json()
        assert closed["conversations"][0]["status"] == "closed"
        assert client.get("/inbox/conversations?status=all", headers=admin_headers).json()["pagination"]["total"] == 1

    def test_other_accounts_hidden(self, client, db, other_account, admin_headers):
        save_sms(db, other_account)
        assert client.get("/inbox/conversations", headers=admin_headers).json()["pagination"]["total"] == 0


class TestConversationDetail:

    def test_messages_in_order(self, client, db, account, admin_headers):
        first = save_sms(db, account, sid="SM1", body="Hello")
        save_sms(db, account, sid="SM2", body="Anyone there?")

        resp = client.get(f"/inbox/conversations/{first['conversation_id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert [m["message_text"] for m in resp.json()["messages"]] == ["Hello", "Anyone there?"]

    def test_other_account_not_found(self, client, db, other_account, admin_headers):
        saved = save_sms(db, other_account)
        resp = client.get(f"/inbox/conversations/{saved['conversation_id']}", headers=admin_headers)
        assert resp.status_code == 404

    def test_invalid_status(self, client, db, account, admin_headers):
        saved = save_sms(db, account)
        resp = client.patch(
            f"/inbox/conversations/{saved['conversation_id']}", json={"status": "archived"}, headers=admin_headers
        )
        assert resp.status_code == 422


class TestReply:

    def test_sms_reply(self, client, db, account, admin_headers):
        saved = save_sms(db, account)
        with patch(
            "app.domain.inbox.service.send_sms", new=AsyncMock(return_value=(True, None, "SM999"))
        ) as send:
            resp = client.post(
                f"/inbox/conversations/{saved['conversation_id']}/reply",
                json={"message": "Tuesday at 10 works"},
                headers=admin_headers,
            )

        assert resp.status_code == 201
        body = resp.json()
        assert body["direction"] == "outbound"
        assert body["channel"] == "sms"
        assert send.call_args.args[2] == "+15125550123"
        assert send.call_args.kwargs["whatsapp"] is False
        assert db.query(Message).get(body["id"]).external_id == "SM999"

    def test_sms_failure_is_bad_gateway(self, client, db, account, admin_headers):
        saved = save_sms(db, account)
        with patch(
            "app.domain.inbox.service.send_sms", new=AsyncMock(return_value=(False, "Twilio not configured", None))
        ):
            resp = client.post(
                f"/inbox/conversations/{saved['conversation_id']}/reply",
                json={"message": "Hi"},
                headers=admin_headers,
            )
        assert resp.status_code == 502
        assert db.query(Message).filter(Message.direction == "outbound").count() == 0

    def test_email_reply_threads_subject(self, client, db, account, admin_headers):
        saved = save_email(db, account)
        with patch(
            "app.domain.inbox.service.send_reply_email", new=AsyncMock(return_value={"id": "re_123"})
        ) as send:
            resp = client.post(
                f"/inbox/conversations/{saved['conversation_id']}/reply",
                json={"message": "We can come Thursday"},
                headers=admin_headers,
            )

        assert resp.status_code == 201
        assert resp.json()["subject"] == "Re: Leaky faucet"
        to, subject, body, business = send.call_args.args
        assert to == "jane@home.test"
        assert business == "Sparkle Field Services"

    def test_email_failure_is_bad_gateway(self, client, db, account, admin_headers):
        saved = save_email(db, account)
        with patch(
            "app.domain.inbox.service.send_reply_email",
            new=AsyncMock(side_effect=EmailSendError("Email service not configured")),
        ):
            resp = client.post(
                f"/inbox/conversations/{saved['conversation_id']}/reply",
                json={"message": "Hi"},
                headers=admin_headers,
            )
        assert resp.status_code == 502

    def test_missing_contact_detail(self, client, db, account, admin_headers):
        saved = save_email(db, account)
        resp = client.post(
            f"/inbox/conversations/{saved['conversation_id']}/reply",
            json={"message": "Hi", "channel": "sms"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Customer has no phone number"

    def test_blank_message_rejected(self, client, db, account, admin_headers):
        saved = save_sms(db, account)
        resp = client.post(
            f"/inbox/conversations/{saved['conversation_id']}/reply",
            json={"message": "   "},
            headers=admin_headers,
        )
        assert resp.status_code == 422

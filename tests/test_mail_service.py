import pytest
from fastapi.testclient import TestClient

from cleanbins import email_service
from cleanbins.mail_service import auth as mail_auth
from cleanbins.mail_service.main import app
from cleanbins.mail_service.templating import render_template
from cleanbins.rate_limiter import reset_rate_limits

API_KEY = "mail-key-123"
HEADERS = {"X-API-Key": API_KEY}


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def fake_send_email(**kwargs):
        sent.append(kwargs)
        return {"messageId": f"<{len(sent)}@mail.test>", "accepted": [kwargs["to"]], "rejected": []}

    monkeypatch.setattr(email_service, "smtp_configured", lambda: True)
    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return sent


@pytest.fixture
def mail_client(monkeypatch, outbox):
    monkeypatch.setattr(mail_auth, "API_KEYS", [API_KEY])
    reset_rate_limits()
    return TestClient(app)


class TestApiKey:
    def test_missing_key(self, mail_client):
        response = mail_client.post("/api/send", json={"to": "a@example.com", "subject": "s", "text": "t"})
        assert response.status_code == 401
        assert response.json()["error"].startswith("Clé API manquante")

    def test_invalid_key(self, mail_client):
        response = mail_client.post(
            "/api/send",
            json={"to": "a@example.com", "subject": "s", "text": "t"},
            headers={"X-API-Key": "wrong"},
        )
        assert response.status_code == 403
        assert response.json() == {"ok": False, "error": "Clé API invalide"}

    def test_bearer_key_is_accepted(self, mail_client):
        response = mail_client.post(
            "/api/send",
            json={"to": "a@example.com", "subject": "s", "text": "t"},
            headers={"Authorization": f"Bearer {API_KEY}"},
        )
        assert response.status_code == 200

    def test_no_configured_key_lets_requests_through(self, mail_client, monkeypatch):
        monkeypatch.setattr(mail_auth, "API_KEYS", [])
        response = mail_client.post("/api/send", json={"to": "a@example.com", "subject": "s", "text": "t"})
        assert response.status_code == 200


class TestSend:
    def test_send(self, mail_client, outbox):
        response = mail_client.post(
            "/api/send",
            json={
                "to": ["a@example.com", "b@example.com"],
                "subject": "Bonjour",
                "html": "<p>Bonjour</p>",
                "replyTo": "reply@example.com",
            },
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert response.json()["messageId"] == "<1@mail.test>"
        assert outbox[0]["to"] == ["a@example.com", "b@example.com"]
        assert outbox[0]["reply_to"] == "reply@example.com"
        assert outbox[0]["text"] is None

    def test_body_is_required(self, mail_client, outbox):
        response = mail_client.post("/api/send", json={"to": "a@example.com", "subject": "s"}, headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["error"] == "Au moins 'text' ou 'html' doit être fourni"
        assert outbox == []

    def test_invalid_recipient(self, mail_client):
        response = mail_client.post(
            "/api/send", json={"to": "not-an-address", "subject": "s", "text": "t"}, headers=HEADERS
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Erreurs de validation"
        assert response.json()["details"][0]["field"].startswith("to")

    def test_subject_too_long(self, mail_client):
        response = mail_client.post(
            "/api/send", json={"to": "a@example.com", "subject": "x" * 201, "text": "t"}, headers=HEADERS
        )
        assert response.status_code == 400

    def test_smtp_not_configured(self, mail_client, monkeypatch):
        monkeypatch.setattr(email_service, "smtp_configured", lambda: False)
        response = mail_client.post(
            "/api/send", json={"to": "a@example.com", "subject": "s", "text": "t"}, headers=HEADERS
        )
        assert response.status_code == 500
        assert response.json()["error"] == "Configuration email incomplète"

    def test_transport_failure(self, mail_client, monkeypatch):
        def broken(**kwargs):
            raise ConnectionError("connection refused")

        monkeypatch.setattr(email_service, "send_email", broken)
        response = mail_client.post(
            "/api/send", json={"to": "a@example.com", "subject": "s", "text": "t"}, headers=HEADERS
        )
        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "Email send failed", "message": "connection refused"}

    def test_sends_are_rate_limited(self, mail_client):
        payload = {"to": "a@example.com", "subject": "s", "text": "t"}
        for _ in range(50):
            assert mail_client.post("/api/send", json=payload, headers=HEADERS).status_code == 200

        response = mail_client.post("/api/send", json=payload, headers=HEADERS)
        assert response.status_code == 429
        assert response.json()["error"].startswith("Limite d'envoi d'emails atteinte")


class TestTemplate:
    def test_placeholders_are_filled(self, mail_client, outbox):
        response = mail_client.post(
            "/api/send-template",
            json={
                "to": "a@example.com",
                "subject": "Rappel",
                "template": "Bonjour {{name}}, passage le {{date}} ({{urgent}}) {{unknown}}",
                "data": {"name": "Jean", "date": "12/03/2030", "urgent": False},
            },
            headers=HEADERS,
        )

        assert response.status_code == 200
        expected = "Bonjour Jean, passage le 12/03/2030 (false) {{unknown}}"
        assert outbox[0]["text"] == expected
        assert outbox[0]["html"] == expected

    def test_render_template_values(self):
        assert render_template("{{a}}-{{a}}-{{b}}-{{c}}", {"a": 1, "b": None, "c": True}) == "1-1-null-true"
        assert render_template("{{a}}") == "{{a}}"


class TestContact:
    def test_fields_are_escaped(self, mail_client, sent_emails):
        response = mail_client.post(
            "/api/contact",
            json={
                "name": "<b>Jean</b>",
                "email": "Jean@Example.com",
                "message": "<script>alert(1)</script> bonjour",
            },
            headers=HEADERS,
        )

        assert response.json() == {"ok": True}
        mail = sent_emails[0]
        assert "<script>" not in mail["text"]
        assert "&lt;script&gt;" in mail["text"]
        assert "&lt;b&gt;Jean&lt;/b&gt;" in mail["subject"]
        assert mail["reply_to"] == "jean@example.com"

    def test_custom_subject(self, mail_client, sent_emails):
        mail_client.post(
            "/api/contact",
            json={"name": "Jean", "email": "jean@example.com", "message": "Un message assez long", "subject": "Devis"},
            headers=HEADERS,
        )
        assert sent_emails[0]["subject"] == "Devis"

    def test_message_too_short(self, mail_client, sent_emails):
        response = mail_client.post(
            "/api/contact", json={"name": "Jean", "email": "jean@example.com", "message": "court"}, headers=HEADERS
        )
        assert response.status_code == 400
        assert sent_emails == []


def test_unknown_route(mail_client):
    response = mail_client.get("/api/nothing-here", headers=HEADERS)
    assert response.status_code == 404
    assert response.json() == {"ok": False, "error": "Route not found", "path": "/api/nothing-here"}


def test_health(mail_client):
    body = mail_client.get("/health").json()
    assert body["status"] == "ok"
    assert body["service"] == "mail-service"
    assert body["smtp"]["configured"] is True

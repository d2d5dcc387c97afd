import pytest

from cleanbins import email_service
from cleanbins.models import AuditLog, Quote
from helpers import reload, set_config


def quote_payload(**overrides):
    payload = {
        "name": "Société Propre",
        "email": "contact@societe.example",
        "phone": "0478000000",
        "city": "Lyon",
        "serviceType": "bin-cleaning",
        "binCount": "12",
        "company": "Société Propre SARL",
        "message": "Contrat annuel pour 12 bacs",
        "rgpdConsent": True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def quotes_on(db):
    set_config(db, "quotes_enabled", "true")


class TestQuotes:
    def test_disabled_by_default(self, client, city, sent_emails):
        response = client.post("/api/contact", json=quote_payload())
        assert response.status_code == 403
        assert response.json()["error"] == "Les demandes de devis sont actuellement désactivées"
        assert sent_emails == []

    def test_request_is_mailed_then_stored(self, client, db, city, quotes_on, sent_emails):
        response = client.post("/api/contact", json=quote_payload())

        assert response.json() == {"ok": True}
        assert sent_emails[0]["subject"] == "Nouvelle demande de devis – Société Propre"
        assert "Entreprise: Société Propre SARL" in sent_emails[0]["text"]
        assert sent_emails[0]["reply_to"] == "contact@societe.example"

        reload(db)
        quote = db.query(Quote).one()
        assert quote.status == "pending"
        assert quote.bin_count == "12"

    def test_unserved_city(self, client, city, quotes_on):
        response = client.post("/api/contact", json=quote_payload(city="Brest"))
        assert response.status_code == 400

    def test_missing_fields(self, client, city, quotes_on):
        response = client.post("/api/contact", json=quote_payload(phone=""))
        assert response.json() == {"ok": False, "error": "Missing required fields"}

    def test_email_failure_is_an_error_and_nothing_is_stored(self, client, db, city, quotes_on, monkeypatch):
        def broken(subject, text, reply_to=None):
            raise email_service.EmailNotConfiguredError("SMTP_TO non configuré")

        monkeypatch.setattr(email_service, "send_operator_email", broken)

        response = client.post("/api/contact", json=quote_payload())
        assert response.status_code == 500
        assert response.json()["error"] == "Email send failed"
        reload(db)
        assert db.query(Quote).count() == 0

    def test_admin_status_update(self, client, db, city, quotes_on, admin_headers):
        client.post("/api/contact", json=quote_payload())
        reload(db)
        quote_id = db.query(Quote).one().id

        response = client.put(
            f"/api/admin/quotes/{quote_id}/status", json={"status": "contacted"}, headers=admin_headers
        )
        assert response.json()["quote"]["status"] == "contacted"

        listed = client.get("/api/admin/quotes", headers=admin_headers).json()["quotes"]
        assert listed[0]["status"] == "contacted"

        reload(db)
        assert db.query(AuditLog).filter(AuditLog.entity_type == "quote").count() == 1

    def test_admin_rejects_unknown_status(self, client, admin_headers):
        response = client.put("/api/admin/quotes/1/status", json={"status": "archived"}, headers=admin_headers)
        assert response.status_code == 400


class TestGeneralContact:
    def test_message_is_forwarded(self, client, sent_emails):
        response = client.post(
            "/api/contact-general",
            json={"name": "Marie", "email": "marie@example.com", "message": "Bonjour, vous passez quand ?"},
        )
        assert response.json() == {"ok": True}
        assert sent_emails[0]["subject"] == "💬 Nouveau message de contact – Marie"
        assert sent_emails[0]["reply_to"] == "marie@example.com"
        assert "Téléphone" not in sent_emails[0]["text"]

    def test_missing_message(self, client, sent_emails):
        response = client.post("/api/contact-general", json={"name": "Marie", "email": "marie@example.com"})
        assert response.status_code == 400
        assert sent_emails == []

    def test_invalid_email(self, client):
        response = client.post(
            "/api/contact-general", json={"name": "Marie", "email": "pas-un-email", "message": "Bonjour"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Erreurs de validation"

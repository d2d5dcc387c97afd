from datetime import date

import pytest

from cleanbins.models import AdminUser, AuditLog, Booking, Quote
from cleanbins.security_utils import hash_password_bcrypt
from helpers import auth_headers, reload


@pytest.fixture
def customer_records(db):
    db.add_all(
        [
            Booking(
                name="Jean", email="Jean@Example.com", phone="1", city="Lyon", service_type="bin-cleaning",
                preferred_date=date(2030, 3, 12), status="pending", payment_status="paid",
            ),
            Booking(
                name="Autre", email="autre@example.com", phone="1", city="Lyon", service_type="bin-cleaning",
                preferred_date=date(2030, 3, 12), status="pending", payment_status="paid",
            ),
            Quote(name="Jean", email="jean@example.com", phone="1", city="Lyon", service_type="bin-cleaning"),
        ]
    )
    db.commit()


def test_client_data_matches_email_case_insensitively(client, customer_records, admin_headers):
    response = client.get("/api/admin/rgpd/client-data", params={"email": "jean@example.com"}, headers=admin_headers)

    data = response.json()["data"]
    assert data["totalRecords"] == 2
    assert [b["name"] for b in data["bookings"]] == ["Jean"]
    assert len(data["quotes"]) == 1


def test_email_is_required(client, admin_headers):
    response = client.get("/api/admin/rgpd/client-data", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Email requis"


def test_export_is_an_audited_download(client, db, customer_records, admin_headers):
    response = client.get("/api/admin/rgpd/export", params={"email": "jean@example.com"}, headers=admin_headers)

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="donnees-client-jean@example.com-')
    body = response.json()
    assert body["metadata"]["dataController"] == "Bacs Propres"
    assert len(body["personalData"]["bookings"]) == 1
    assert "RGPD" in body["rights"]["info"]

    reload(db)
    assert db.query(AuditLog).filter(AuditLog.action == "EXPORT").count() == 1


def test_erasure_removes_only_that_customer(client, db, customer_records, admin_headers):
    response = client.request(
        "DELETE", "/api/admin/rgpd/delete", json={"email": "jean@example.com"}, headers=admin_headers
    )
    assert response.json() == {"ok": True, "deleted": {"bookings": 1, "quotes": 1}}

    reload(db)
    assert [b.email for b in db.query(Booking).all()] == ["autre@example.com"]
    assert db.query(Quote).count() == 0
    entry = db.query(AuditLog).filter(AuditLog.entity_type == "rgpd").one()
    assert entry.action == "DELETE"


def test_operators_have_no_access(client, db):
    operator = AdminUser(username="op@example.com", password_hash=hash_password_bcrypt("x"), role="operator")
    db.add(operator)
    db.commit()
    db.refresh(operator)

    response = client.get(
        "/api/admin/rgpd/client-data", params={"email": "jean@example.com"}, headers=auth_headers(operator)
    )
    assert response.status_code == 403

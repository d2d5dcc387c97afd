from datetime import date

from cleanbins.models import AuditLog, Booking
from helpers import booking_payload, reload, set_config


def paid_booking(db, day=date(2030, 3, 12), time=None):
    booking = Booking(
        name="Déjà payé",
        email="paid@example.com",
        phone="0600000000",
        city="Lyon",
        service_type="bin-cleaning",
        preferred_date=day,
        preferred_time=time,
        status="pending",
        payment_status="paid",
    )
    db.add(booking)
    db.commit()
    return booking


class TestCreateBooking:
    def test_booking_waits_for_payment_and_sends_nothing(self, client, db, city, sent_emails):
        response = client.post("/api/booking", json=booking_payload())

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert sent_emails == []

        reload(db)
        booking = db.get(Booking, body["bookingId"])
        assert booking.status == "awaiting_payment"
        assert booking.payment_status == "unpaid"
        assert booking.preferred_time is None
        assert booking.bin_count == "2"
        assert booking.rgpd_consent is True

    def test_city_lookup_ignores_case(self, client, city):
        response = client.post("/api/booking", json=booking_payload(city="lyon"))
        assert response.status_code == 200

    def test_unknown_city_is_refused(self, client, city):
        response = client.post("/api/booking", json=booking_payload(city="Marseille"))
        assert response.status_code == 400
        assert response.json()["error"] == "Nous n'intervenons pas encore dans cette ville"

    def test_disabled_city_is_refused(self, client, db, city):
        city.enabled = False
        db.commit()
        response = client.post("/api/booking", json=booking_payload())
        assert response.status_code == 400

    def test_date_after_cutoff_is_refused(self, client, db, city):
        city.cutoff_date = date(2030, 3, 1)
        db.commit()

        response = client.post("/api/booking", json=booking_payload())
        assert response.status_code == 400
        assert "fermées au-delà du 01/03/2030" in response.json()["error"]

    def test_cutoff_day_itself_is_bookable(self, client, db, city):
        city.cutoff_date = date(2030, 3, 12)
        db.commit()
        assert client.post("/api/booking", json=booking_payload()).status_code == 200

    def test_missing_fields(self, client, city):
        response = client.post("/api/booking", json=booking_payload(phone="  "))
        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "Missing required fields"}

    def test_time_required_when_time_selection_is_on(self, client, db, city):
        set_config(db, "time_selection_enabled", "true")
        response = client.post("/api/booking", json=booking_payload())
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    def test_malformed_time_is_a_validation_error(self, client, city):
        response = client.post("/api/booking", json=booking_payload(preferredTime="25:00"))
        assert response.status_code == 400
        assert response.json()["error"] == "Erreurs de validation"

    def test_taken_slot_conflicts(self, client, db, city):
        set_config(db, "time_selection_enabled", "true")
        first = client.post("/api/booking", json=booking_payload(preferredTime="10:00"))
        assert first.status_code == 200

        second = client.post("/api/booking", json=booking_payload(preferredTime="10:00"))
        assert second.status_code == 409
        assert second.json()["error"] == "Cette date et heure sont déjà réservées"

    def test_cancelled_booking_frees_its_slot(self, client, db, city):
        set_config(db, "time_selection_enabled", "true")
        first = client.post("/api/booking", json=booking_payload(preferredTime="10:00"))

        reload(db)
        db.get(Booking, first.json()["bookingId"]).status = "cancelled"
        db.commit()

        second = client.post("/api/booking", json=booking_payload(preferredTime="10:00"))
        assert second.status_code == 200

    def test_time_ignored_when_time_selection_is_off(self, client, db, city):
        first = client.post("/api/booking", json=booking_payload(preferredTime="10:00"))
        second = client.post("/api/booking", json=booking_payload(preferredTime="10:00"))

        assert first.status_code == 200
        assert second.status_code == 200
        reload(db)
        assert db.get(Booking, first.json()["bookingId"]).preferred_time is None
        assert db.get(Booking, second.json()["bookingId"]).preferred_time is None

    def test_full_date_is_refused(self, client, db, city):
        set_config(db, "max_bookings_per_day", "1")
        paid_booking(db)

        response = client.post("/api/booking", json=booking_payload())
        assert response.status_code == 409
        assert response.json()["error"].startswith("Désolé, cette date est complète")

    def test_unpaid_bookings_do_not_fill_a_date(self, client, db, city):
        set_config(db, "max_bookings_per_day", "1")
        assert client.post("/api/booking", json=booking_payload()).status_code == 200
        assert client.post("/api/booking", json=booking_payload()).status_code == 200

    def test_creation_is_audited(self, client, db, city):
        booking_id = client.post("/api/booking", json=booking_payload()).json()["bookingId"]

        reload(db)
        entry = db.query(AuditLog).filter(AuditLog.entity_type == "booking").one()
        assert entry.action == "CREATE"
        assert entry.entity_id == str(booking_id)
        assert entry.admin_id is None


class TestAdminBookings:
    def test_requires_a_token(self, client):
        response = client.get("/api/admin/bookings")
        assert response.status_code == 401
        assert response.json() == {"ok": False, "error": "Token manquant"}

    def test_list_includes_service_name(self, client, db, city, service, admin_headers):
        paid_booking(db, day=date(2030, 3, 20))
        paid_booking(db, day=date(2030, 3, 12))

        response = client.get("/api/admin/bookings", headers=admin_headers)
        assert response.status_code == 200
        bookings = response.json()["bookings"]
        assert [b["preferred_date"] for b in bookings] == ["2030-03-12", "2030-03-20"]
        assert bookings[0]["service_name"] == "Nettoyage de bacs"
        assert bookings[0]["payment_status"] == "paid"

    def test_list_filtered_by_day(self, client, db, admin_headers):
        paid_booking(db, day=date(2030, 3, 20))
        paid_booking(db, day=date(2030, 3, 12))

        response = client.get("/api/admin/bookings", params={"date": "2030-03-20"}, headers=admin_headers)
        assert [b["preferred_date"] for b in response.json()["bookings"]] == ["2030-03-20"]

    def test_calendar_counts(self, client, db, city, admin_headers):
        paid_booking(db)
        client.post("/api/booking", json=booking_payload())

        response = client.get(
            "/api/admin/bookings/calendar",
            params={"startDate": "2030-03-01", "endDate": "2030-03-31", "serviceType": "all"},
            headers=admin_headers,
        )
        assert response.json() == {
            "ok": True,
            "bookings": [{"date": "2030-03-12", "count": 2, "paidCount": 1}],
        }

    def test_status_update_is_audited(self, client, db, superadmin, admin_headers):
        booking = paid_booking(db)

        response = client.put(
            f"/api/admin/bookings/{booking.id}/status",
            json={"status": "confirmed"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["booking"]["status"] == "confirmed"

        reload(db)
        entry = db.query(AuditLog).filter(AuditLog.action == "STATUS_CHANGE").one()
        assert entry.admin_username == superadmin.username
        assert entry.entity_id == str(booking.id)

    def test_invalid_status(self, client, db, admin_headers):
        booking = paid_booking(db)
        response = client.put(
            f"/api/admin/bookings/{booking.id}/status", json={"status": "done"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Statut invalide"

    def test_unknown_booking(self, client, admin_headers):
        response = client.put(
            "/api/admin/bookings/999/status", json={"status": "confirmed"}, headers=admin_headers
        )
        assert response.status_code == 404

    def test_reactivating_a_rebooked_slot_conflicts(self, client, db, city, admin_headers):
        set_config(db, "time_selection_enabled", "true")
        first_id = client.post("/api/booking", json=booking_payload(preferredTime="10:00")).json()["bookingId"]
        cancel = client.put(
            f"/api/admin/bookings/{first_id}/status", json={"status": "cancelled"}, headers=admin_headers
        )
        assert cancel.status_code == 200
        assert client.post("/api/booking", json=booking_payload(preferredTime="10:00")).status_code == 200

        response = client.put(
            f"/api/admin/bookings/{first_id}/status", json={"status": "pending"}, headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json() == {"ok": False, "error": "Cette date et heure sont déjà réservées"}

        reload(db)
        assert db.get(Booking, first_id).status == "cancelled"

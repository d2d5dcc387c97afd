from cleanbins.models import AuditLog, ServiceCity, ServiceVariant
from helpers import reload


class TestConfig:
    def test_public_config_lists_enabled_cities(self, client, db, city):
        db.add(ServiceCity(city_name="Paris", enabled=False))
        db.commit()

        config = client.get("/api/config").json()["config"]
        assert config["quotesEnabled"] is False
        assert config["timeSelectionEnabled"] is False
        assert [c["name"] for c in config["serviceCities"]] == ["Lyon"]
        assert "testModeEnabled" not in config

    def test_admin_config(self, client, admin_headers):
        config = client.get("/api/admin/config", headers=admin_headers).json()["config"]
        assert config["maxBookingsPerDay"] == 25
        assert config["testModeEnabled"] is False

    def test_flag_update_is_audited(self, client, db, admin_headers):
        response = client.put("/api/admin/config/quotes", json={"enabled": True}, headers=admin_headers)
        assert response.json() == {"ok": True, "quotesEnabled": True}
        assert client.get("/api/config").json()["config"]["quotesEnabled"] is True

        reload(db)
        entry = db.query(AuditLog).filter(AuditLog.action == "CONFIG_CHANGE").one()
        assert entry.entity_id == "quotes_enabled"

    def test_flag_must_be_boolean(self, client, admin_headers):
        response = client.put("/api/admin/config/time-selection", json={"enabled": "yes"}, headers=admin_headers)
        assert response.status_code == 400

    def test_max_bookings(self, client, admin_headers):
        response = client.put("/api/admin/config/max-bookings", json={"maxBookingsPerDay": "3"}, headers=admin_headers)
        assert response.json() == {"ok": True, "maxBookingsPerDay": 3}

        rejected = client.put("/api/admin/config/max-bookings", json={"maxBookingsPerDay": 0}, headers=admin_headers)
        assert rejected.status_code == 400

    def test_contact_phone(self, client, admin_headers):
        client.put("/api/admin/config/contact-phone", json={"contactPhone": "04 00 00 00 00"}, headers=admin_headers)
        assert client.get("/api/config").json()["config"]["contactPhone"] == "04 00 00 00 00"


class TestCities:
    def test_create_update_delete(self, client, admin_headers):
        created = client.post(
            "/api/admin/cities",
            json={"cityName": " Villeurbanne ", "passage1Week": 1, "passage1Day": 3, "cutoffDate": "2030-06-30"},
            headers=admin_headers,
        ).json()["city"]
        assert created["cityName"] == "Villeurbanne"
        assert created["cutoffDate"] == "2030-06-30"

        updated = client.put(
            f"/api/admin/cities/{created['id']}",
            json={"cityName": "Villeurbanne", "enabled": False, "cutoffDate": ""},
            headers=admin_headers,
        ).json()["city"]
        assert updated["enabled"] is False
        assert updated["cutoffDate"] is None
        assert updated["passage1Week"] is None

        assert client.delete(f"/api/admin/cities/{created['id']}", headers=admin_headers).json() == {"ok": True}

    def test_duplicate_city(self, client, city, admin_headers):
        response = client.post("/api/admin/cities", json={"cityName": "Lyon"}, headers=admin_headers)
        assert response.status_code == 409

    def test_passage_rules_are_validated(self, client, admin_headers):
        response = client.post(
            "/api/admin/cities", json={"cityName": "Bron", "passage1Week": 6}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "passage1Week"


class TestServices:
    def test_public_listing_hides_disabled_services(self, client, db, service, admin_headers):
        client.post(
            "/api/admin/services",
            json={"serviceId": "hidden", "name": "Caché", "enabled": False},
            headers=admin_headers,
        )

        public = client.get("/api/services").json()["services"]
        assert [s["id"] for s in public] == ["bin-cleaning"]

        admin = client.get("/api/admin/services", headers=admin_headers).json()["services"]
        assert {s["serviceId"] for s in admin} == {"bin-cleaning", "hidden"}

    def test_duplicate_service_id(self, client, service, admin_headers):
        response = client.post(
            "/api/admin/services", json={"serviceId": "bin-cleaning", "name": "Again"}, headers=admin_headers
        )
        assert response.status_code == 409

    def test_service_capacity_and_passages(self, client, service, admin_headers):
        response = client.put(
            f"/api/admin/services/{service.id}",
            json={
                "serviceId": "bin-cleaning",
                "name": "Nettoyage de bacs",
                "maxBookingsPerDay": 3,
                "passage1Week": 0,
                "passage1Day": 2,
            },
            headers=admin_headers,
        )
        updated = response.json()["service"]
        assert updated["maxBookingsPerDay"] == 3
        assert updated["passage1Week"] == 0

    def test_variants(self, client, db, service, admin_headers):
        created = client.post(
            f"/api/admin/services/{service.id}/variants",
            json={"name": "Grand bac", "priceModifier": 500},
            headers=admin_headers,
        ).json()["variant"]
        client.post(
            f"/api/admin/services/{service.id}/variants",
            json={"name": "Désactivée", "enabled": False},
            headers=admin_headers,
        )

        public = client.get("/api/services/bin-cleaning/variants").json()["variants"]
        assert [v["name"] for v in public] == ["Grand bac"]
        assert public[0]["priceModifier"] == 500

        client.delete(f"/api/admin/services/{service.id}/variants/{created['id']}", headers=admin_headers)
        reload(db)
        assert db.get(ServiceVariant, created["id"]) is None

    def test_unknown_service_variants(self, client):
        assert client.get("/api/services/nope/variants").status_code == 404

    def test_sync_prices_from_stripe(self, client, db, service, stripe_gateway, admin_headers):
        stripe_gateway.price = {"id": "price_9", "unit_amount": 5900}

        response = client.post("/api/admin/services/sync-stripe-prices", headers=admin_headers)
        assert response.json()["syncCount"] == 1

        reload(db)
        db.refresh(service)
        assert service.price == 5900

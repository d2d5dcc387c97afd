from datetime import date

from cleanbins.models import AdminUser, AuditLog, Booking, Quote
from cleanbins.security_utils import hash_password_bcrypt
from helpers import auth_headers, reload


def add_account(db, username, role, password="secret-password"):
    account = AdminUser(username=username, password_hash=hash_password_bcrypt(password), role=role, is_active=True)
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


class TestLogin:
    def test_first_admin_bootstrap_only_once(self, client):
        first = client.post("/api/admin/init", json={"username": "boss@example.com", "password": "pw-123456"})
        assert first.json() == {"ok": True, "message": "Super admin créé avec succès"}

        second = client.post("/api/admin/init", json={"username": "other@example.com", "password": "pw-123456"})
        assert second.status_code == 403
        assert second.json()["error"] == "Un admin existe déjà"

    def test_login_returns_a_working_token(self, client, db, superadmin):
        response = client.post(
            "/api/admin/login", json={"username": superadmin.username, "password": "owner-password"}
        )
        body = response.json()
        assert body["ok"] is True
        assert body["role"] == "superadmin"
        assert body["fullName"] == "Owner"

        users = client.get("/api/admin/users", headers={"Authorization": f"Bearer {body['token']}"})
        assert users.status_code == 200

        reload(db)
        assert db.query(AuditLog).filter(AuditLog.action == "LOGIN").count() == 1

    def test_wrong_password(self, client, superadmin):
        response = client.post("/api/admin/login", json={"username": superadmin.username, "password": "nope"})
        assert response.status_code == 401
        assert response.json()["error"] == "Identifiants incorrects"

    def test_disabled_account(self, client, db):
        account = add_account(db, "gone@example.com", "admin")
        account.is_active = False
        db.commit()

        response = client.post(
            "/api/admin/login", json={"username": "gone@example.com", "password": "secret-password"}
        )
        assert response.json()["error"] == "Compte désactivé"

    def test_missing_credentials(self, client):
        assert client.post("/api/admin/login", json={"username": "x"}).status_code == 400

    def test_garbage_token(self, client):
        response = client.get("/api/admin/users", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 403

    def test_login_is_rate_limited(self, client):
        for _ in range(20):
            client.post("/api/admin/login", json={"username": "nobody@example.com", "password": "x"})

        response = client.post("/api/admin/login", json={"username": "nobody@example.com", "password": "x"})
        assert response.status_code == 429
        assert "Retry-After" in response.headers


class TestUsers:
    def test_superadmin_creates_and_lists_users(self, client, admin_headers):
        created = client.post(
            "/api/admin/users",
            json={"username": "ops@example.com", "password": "pw-123456", "fullName": "Ops", "role": "manager"},
            headers=admin_headers,
        )
        assert created.json()["ok"] is True
        user_id = created.json()["userId"]

        user = client.get(f"/api/admin/users/{user_id}", headers=admin_headers).json()["user"]
        assert user["role"] == "manager"
        assert "password_hash" not in user

        usernames = [u["username"] for u in client.get("/api/admin/users", headers=admin_headers).json()["users"]]
        assert "ops@example.com" in usernames

    def test_superadmin_role_cannot_be_granted(self, client, admin_headers):
        response = client.post(
            "/api/admin/users",
            json={"username": "x@example.com", "password": "pw-123456", "role": "superadmin"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Rôle invalide"

    def test_duplicate_username(self, client, superadmin, admin_headers):
        response = client.post(
            "/api/admin/users",
            json={"username": superadmin.username, "password": "pw-123456"},
            headers=admin_headers,
        )
        assert response.json()["error"] == "Cet utilisateur existe déjà"

    def test_only_superadmin_creates_users(self, client, db, superadmin):
        manager = add_account(db, "manager@example.com", "manager")
        response = client.post(
            "/api/admin/users",
            json={"username": "x@example.com", "password": "pw-123456"},
            headers=auth_headers(manager),
        )
        assert response.status_code == 403

    def test_operator_cannot_manage_users(self, client, db):
        operator = add_account(db, "op@example.com", "operator")
        response = client.get("/api/admin/users", headers=auth_headers(operator))
        assert response.status_code == 403

    def test_last_administrator_keeps_its_role(self, client, superadmin, admin_headers):
        response = client.put(
            f"/api/admin/users/{superadmin.id}", json={"role": "manager"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Impossible de modifier le rôle du dernier administrateur"

    def test_last_administrator_can_still_edit_other_fields(self, client, db, superadmin, admin_headers):
        response = client.put(
            f"/api/admin/users/{superadmin.id}", json={"fullName": "Patron"}, headers=admin_headers
        )
        assert response.status_code == 200

        reload(db)
        assert db.get(AdminUser, superadmin.id).full_name == "Patron"

    def test_demotion_allowed_with_another_administrator(self, client, db, admin_headers):
        admin = add_account(db, "second@example.com", "admin")
        response = client.put(f"/api/admin/users/{admin.id}", json={"role": "operator"}, headers=admin_headers)
        assert response.status_code == 200

    def test_username_taken(self, client, db, superadmin, admin_headers):
        other = add_account(db, "other@example.com", "operator")
        response = client.put(
            f"/api/admin/users/{other.id}", json={"username": superadmin.username}, headers=admin_headers
        )
        assert response.json()["error"] == "Ce nom d'utilisateur est déjà pris"

    def test_cannot_delete_self(self, client, superadmin, admin_headers):
        response = client.delete(f"/api/admin/users/{superadmin.id}", headers=admin_headers)
        assert response.json()["error"] == "Impossible de supprimer votre propre compte"

    def test_cannot_delete_last_administrator(self, client, db, superadmin):
        manager = add_account(db, "manager@example.com", "manager")
        response = client.delete(f"/api/admin/users/{superadmin.id}", headers=auth_headers(manager))
        assert response.status_code == 400
        assert response.json()["error"] == "Impossible de supprimer le dernier administrateur"

    def test_delete_is_audited(self, client, db, admin_headers):
        operator = add_account(db, "op@example.com", "operator")
        operator_id = operator.id

        response = client.delete(f"/api/admin/users/{operator_id}", headers=admin_headers)
        assert response.json()["ok"] is True

        reload(db)
        assert db.get(AdminUser, operator_id) is None
        entry = db.query(AuditLog).filter(AuditLog.action == "DELETE").one()
        assert entry.entity_id == str(operator_id)

    def test_unknown_user(self, client, admin_headers):
        assert client.get("/api/admin/users/999", headers=admin_headers).status_code == 404


class TestPasswords:
    def test_change_password(self, client, superadmin, admin_headers):
        response = client.put(
            "/api/admin/profile/password",
            json={"currentPassword": "owner-password", "newPassword": "brand-new"},
            headers=admin_headers,
        )
        assert response.json()["ok"] is True

        login = client.post("/api/admin/login", json={"username": superadmin.username, "password": "brand-new"})
        assert login.status_code == 200

    def test_change_password_checks_current(self, client, admin_headers):
        response = client.put(
            "/api/admin/profile/password",
            json={"currentPassword": "wrong", "newPassword": "brand-new"},
            headers=admin_headers,
        )
        assert response.status_code == 401

    def test_change_password_minimum_length(self, client, admin_headers):
        response = client.put(
            "/api/admin/profile/password",
            json={"currentPassword": "owner-password", "newPassword": "abc"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_reset_flow(self, client, superadmin, sent_emails):
        response = client.post("/api/admin/forgot-password", json={"email": superadmin.username})
        assert response.json() == {
            "ok": True,
            "message": "Si cet email existe, un lien de réinitialisation a été envoyé",
        }
        assert sent_emails[0]["to"] == superadmin.username
        link = sent_emails[0]["reset_link"]
        assert "/admin/reset-password?token=" in link
        token = link.split("token=", 1)[1]

        check = client.get("/api/admin/verify-reset-token", params={"token": token})
        assert check.json() == {"ok": True, "valid": True}

        reset = client.post("/api/admin/reset-password", json={"token": token, "newPassword": "after-reset"})
        assert reset.json()["ok"] is True

        login = client.post("/api/admin/login", json={"username": superadmin.username, "password": "after-reset"})
        assert login.status_code == 200

        reused = client.post("/api/admin/reset-password", json={"token": token, "newPassword": "again-again"})
        assert reused.status_code == 400
        assert reused.json()["error"] == "Token invalide ou expiré"

    def test_unknown_email_gets_the_same_answer(self, client, sent_emails):
        response = client.post("/api/admin/forgot-password", json={"email": "stranger@example.com"})
        assert response.json()["message"] == "Si cet email existe, un lien de réinitialisation a été envoyé"
        assert sent_emails == []

    def test_unknown_token(self, client):
        response = client.get("/api/admin/verify-reset-token", params={"token": "nope"})
        assert response.json() == {"ok": False, "valid": False, "error": "Token invalide ou expiré"}


def test_dashboard_stats(client, db, admin_headers):
    db.add_all(
        [
            Booking(
                name="A", email="a@example.com", phone="1", city="Lyon", service_type="bin-cleaning",
                preferred_date=date(2030, 3, 12), status="pending", payment_status="paid",
            ),
            Booking(
                name="B", email="b@example.com", phone="1", city="Lyon", service_type="bin-cleaning",
                preferred_date=date(2020, 1, 7), status="completed", payment_status="paid",
            ),
            Quote(name="Q", email="q@example.com", phone="1", city="Lyon", service_type="bin-cleaning"),
        ]
    )
    db.commit()

    response = client.get("/api/admin/stats", headers=admin_headers)
    assert response.json() == {
        "ok": True,
        "stats": {
            "pending_quotes": 1,
            "pending_bookings": 1,
            "upcoming_bookings": 1,
            "total_quotes": 1,
            "total_bookings": 2,
        },
    }

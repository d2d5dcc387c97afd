import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from cleanbins import email_service  # noqa: E402
from cleanbins.config import DEFAULT_CONFIG  # noqa: E402
from cleanbins.database import Base, build_engine, get_db  # noqa: E402
from cleanbins.domain.settings.repository import ConfigRepository  # noqa: E402
from cleanbins.main import app  # noqa: E402
from cleanbins.models import (  # noqa: E402
    ROLE_SUPERADMIN,
    AdminUser,
    Service,
    ServiceCity,
)
from cleanbins.rate_limiter import reset_rate_limits  # noqa: E402
from cleanbins.security_utils import hash_password_bcrypt  # noqa: E402
from cleanbins.services.stripe_service import get_stripe_gateway  # noqa: E402
from helpers import FakeStripeGateway, auth_headers  # noqa: E402


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = factory()
    ConfigRepository.seed_defaults(db, DEFAULT_CONFIG)
    db.close()

    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def sent_emails(monkeypatch):
    """Operator emails captured instead of sent"""
    sent = []

    def fake_operator_email(subject, text, reply_to=None):
        sent.append({"subject": subject, "text": text, "reply_to": reply_to})
        return {"messageId": f"<test-{len(sent)}@bacs-propres.test>"}

    def fake_reset_email(to, reset_link, full_name=None):
        sent.append({"to": to, "reset_link": reset_link})
        return {"messageId": "<reset@bacs-propres.test>"}

    monkeypatch.setattr(email_service, "send_operator_email", fake_operator_email)
    monkeypatch.setattr(email_service, "send_password_reset_email", fake_reset_email)
    return sent


@pytest.fixture
def stripe_gateway():
    return FakeStripeGateway()


@pytest.fixture
def client(session_factory, sent_emails, stripe_gateway):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    reset_rate_limits()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def superadmin(db):
    admin = AdminUser(
        username="owner@bacs-propres.fr",
        password_hash=hash_password_bcrypt("owner-password"),
        full_name="Owner",
        role=ROLE_SUPERADMIN,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


@pytest.fixture
def admin_headers(superadmin):
    return auth_headers(superadmin)


@pytest.fixture
def city(db):
    """Served city with no passage rules"""
    row = ServiceCity(city_name="Lyon", postal_code="69001", enabled=True)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def service(db):
    row = Service(
        service_id="bin-cleaning",
        name="Nettoyage de bacs",
        stripe_product_id="prod_123",
        price=4900,
        enabled=True,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row

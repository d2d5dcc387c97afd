from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Booking lifecycle
BOOKING_AWAITING_PAYMENT = "awaiting_payment"
BOOKING_PENDING = "pending"
BOOKING_CONFIRMED = "confirmed"
BOOKING_COMPLETED = "completed"
BOOKING_CANCELLED = "cancelled"
BOOKING_STATUSES = (
    BOOKING_AWAITING_PAYMENT,
    BOOKING_PENDING,
    BOOKING_CONFIRMED,
    BOOKING_COMPLETED,
    BOOKING_CANCELLED,
)

PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"

QUOTE_STATUSES = ("pending", "contacted", "converted", "cancelled")

ROLE_OPERATOR = "operator"
ROLE_MANAGER = "manager"
ROLE_ADMIN = "admin"
ROLE_SUPERADMIN = "superadmin"

ACTIVE_SLOT_CONDITION = "status != 'cancelled' AND preferred_time IS NOT NULL"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # One live booking per (date, time) slot; cancelled rows free the slot
        Index(
            "uq_bookings_active_slot",
            "preferred_date",
            "preferred_time",
            unique=True,
            sqlite_where=text(ACTIVE_SLOT_CONDITION),
            postgresql_where=text(ACTIVE_SLOT_CONDITION),
        ),
        Index("ix_bookings_date_payment", "preferred_date", "payment_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False)
    city = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    postal_code = Column(String(20), nullable=True)
    service_type = Column(String(100), nullable=False)  # Service.service_id
    bin_count = Column(String(20), nullable=True)
    variant_id = Column(Integer, ForeignKey("service_variants.id", ondelete="SET NULL"), nullable=True)
    preferred_date = Column(Date, nullable=False)
    preferred_time = Column(String(5), nullable=True)  # HH:MM, NULL when time selection is off
    message = Column(Text, nullable=True)
    status = Column(String(30), default=BOOKING_AWAITING_PAYMENT, nullable=False)
    payment_status = Column(String(20), default=PAYMENT_UNPAID, nullable=False)
    stripe_session_id = Column(String(255), nullable=True, index=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)
    rgpd_consent = Column(Boolean, default=False, nullable=False)
    marketing_consent = Column(Boolean, default=False, nullable=False)
    consent_date = Column(DateTime, nullable=True)
    consent_ip = Column(String(64), nullable=True)
    subscription_contract_consent = Column(Boolean, default=False, nullable=False)
    subscription_contract_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    variant = relationship("ServiceVariant")


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False)
    city = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    postal_code = Column(String(20), nullable=True)
    service_type = Column(String(100), nullable=False)
    bin_count = Column(String(20), nullable=True)
    company = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    status = Column(String(30), default="pending", nullable=False)
    rgpd_consent = Column(Boolean, default=False, nullable=False)
    marketing_consent = Column(Boolean, default=False, nullable=False)
    consent_date = Column(DateTime, nullable=True)
    consent_ip = Column(String(64), nullable=True)
    stripe_session_id = Column(String(255), nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)
    payment_status = Column(String(20), default=PAYMENT_UNPAID, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    translation_key = Column(String(255), nullable=True)
    stripe_product_id = Column(String(255), nullable=True)
    price = Column(Integer, default=0, nullable=False)  # cents
    enabled = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    # Passage rules: week of month 0-5 (0 = every week, 5 = last), weekday 0-6 (0 = Sunday)
    passage1_week = Column(Integer, nullable=True)
    passage1_day = Column(Integer, nullable=True)
    passage2_week = Column(Integer, nullable=True)
    passage2_day = Column(Integer, nullable=True)
    max_bookings_per_day = Column(Integer, nullable=True)  # overrides the global default
    is_subscription = Column(Boolean, default=False, nullable=False)
    information = Column(Text, nullable=True)
    contract_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    variants = relationship(
        "ServiceVariant",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServiceVariant.display_order",
    )


class ServiceVariant(Base):
    __tablename__ = "service_variants"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price_modifier = Column(Integer, default=0, nullable=False)  # cents, added to the base price
    image_path = Column(String(500), nullable=True)
    enabled = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    service = relationship("Service", back_populates="variants")


class ServiceCity(Base):
    __tablename__ = "service_cities"

    id = Column(Integer, primary_key=True, index=True)
    city_name = Column(String(255), unique=True, nullable=False)
    postal_code = Column(String(20), nullable=True)
    passage1_week = Column(Integer, nullable=True)
    passage1_day = Column(Integer, nullable=True)
    passage2_week = Column(Integer, nullable=True)
    passage2_day = Column(Integer, nullable=True)
    enabled = Column(Boolean, default=True, nullable=False)
    cutoff_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ConfigEntry(Base):
    __tablename__ = "config"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AdminUser(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), default=ROLE_OPERATOR, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("admins.id", ondelete="CASCADE"), nullable=False)
    token = Column(String(128), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True, index=True)
    admin_username = Column(String(255), nullable=True)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(255), nullable=True)
    old_value = Column(Text, nullable=True)  # JSON
    new_value = Column(Text, nullable=True)  # JSON
    description = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

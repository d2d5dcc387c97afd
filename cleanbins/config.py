import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/bookings.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("JWT_SECRET") or os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

ADMIN_TOKEN_EXPIRE_DAYS = int(os.getenv("ADMIN_TOKEN_EXPIRE_DAYS", "7"))
PASSWORD_RESET_EXPIRE_MINUTES = 60

# Public site used in checkout redirects and password reset links
BASE_URL = os.getenv("BASE_URL", "http://localhost:5173")
FRONTEND_URL = os.getenv("FRONTEND_URL", BASE_URL)
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:3001")

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")

# Blog articles stored as JSON files, images under <ARTICLES_DIR>/img
ARTICLES_DIR = os.getenv("ARTICLES_DIR", str(Path.cwd() / "articles"))

# SMTP (operator mailbox)
SMTP_HOST = os.getenv("SMTP_HOST", "ssl0.ovh.net")
SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASS = os.getenv("SMTP_PASS")
SMTP_FROM = os.getenv("SMTP_FROM") or SMTP_USER
SMTP_TO = os.getenv("SMTP_TO") or SMTP_USER
SMTP_TIMEOUT = int(os.getenv("SMTP_TIMEOUT", "15"))

# Resend Email Configuration (fallback when SMTP credentials are absent)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Bacs Propres <noreply@bacs-propres.fr>")

# Data controller named in RGPD exports
DATA_CONTROLLER_NAME = os.getenv("DATA_CONTROLLER_NAME", "Bacs Propres")
DATA_CONTROLLER_CONTACT = os.getenv("DATA_CONTROLLER_CONTACT", "contact@bacs-propres.fr")

# Stripe
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_TIMEOUT = int(os.getenv("STRIPE_TIMEOUT", "15"))
STRIPE_CURRENCY = "eur"

# Mail service API keys (comma separated). Empty means development mode.
API_KEYS = [k.strip() for k in os.getenv("API_KEYS", "").split(",") if k.strip()]
MAIL_SERVICE_PORT = int(os.getenv("MAIL_SERVICE_PORT", os.getenv("PORT", "3001")))

# Rate limiting backend, in-memory when unset
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST")

# Business configuration defaults seeded into the config table
DEFAULT_CONFIG = {
    "quotes_enabled": "false",
    "max_bookings_per_day": "25",
    "time_selection_enabled": "false",
    "languages_enabled": "false",
}

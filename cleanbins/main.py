import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import email_service
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, ARTICLES_DIR, DEFAULT_CONFIG
from .database import Base, SessionLocal, engine
from .domain.admin.router import router as admin_router
from .domain.articles.router import router as articles_router
from .domain.audit.router import router as audit_router
from .domain.availability.router import router as availability_router
from .domain.bookings.router import admin_router as bookings_admin_router
from .domain.bookings.router import router as bookings_router
from .domain.catalog.router import admin_router as catalog_admin_router
from .domain.catalog.router import router as catalog_router
from .domain.contact.router import router as contact_router
from .domain.payments.router import admin_router as payments_admin_router
from .domain.payments.router import router as payments_router
from .domain.quotes.router import admin_router as quotes_admin_router
from .domain.quotes.router import router as quotes_router
from .domain.rgpd.router import router as rgpd_router
from .domain.settings.repository import ConfigRepository
from .domain.settings.router import admin_router as settings_admin_router
from .domain.settings.router import router as settings_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("stripe").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("✅ Database tables ready")

    db = SessionLocal()
    try:
        seeded = ConfigRepository.seed_defaults(db, DEFAULT_CONFIG)
        if seeded:
            logger.info(f"✅ Seeded {seeded} default config entries")
    finally:
        db.close()

    if not email_service.email_configured():
        logger.warning("⚠️ No SMTP credentials or RESEND_API_KEY - operator emails will fail")

    logger.info(f"📁 Articles directory: {ARTICLES_DIR}")
    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Bacs Propres API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Every error leaves the API as {ok: false, error}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    details = [
        {"field": ".".join(str(part) for part in error.get("loc", ())[1:]), "message": error.get("msg")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": "Erreurs de validation", "details": details},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ {request.method} {request.url.path} - Error: {exc}")
    return JSONResponse(status_code=500, content={"ok": False, "error": "Erreur serveur"})


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(settings_router)
app.include_router(settings_admin_router)
app.include_router(catalog_router)
app.include_router(catalog_admin_router)
app.include_router(availability_router)
app.include_router(bookings_router)
app.include_router(bookings_admin_router)
app.include_router(quotes_router)
app.include_router(quotes_admin_router)
app.include_router(contact_router)
app.include_router(articles_router)
app.include_router(payments_router)
app.include_router(payments_admin_router)
app.include_router(audit_router)
app.include_router(admin_router)
app.include_router(rgpd_router)


@app.get("/health")
def health():
    return {"status": "healthy"}

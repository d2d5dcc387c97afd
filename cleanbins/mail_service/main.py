import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import email_service
from ..config import ALLOWED_ORIGINS, API_KEYS, SMTP_HOST, SMTP_PORT, SMTP_TO, SMTP_USER
from ..security_utils import get_client_ip, mask_sensitive_data
from .router import router as mail_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger.info(
    f"📧 SMTP configuration: host={SMTP_HOST} port={SMTP_PORT} "
    f"user={mask_sensitive_data(SMTP_USER) if SMTP_USER else 'unset'} to={SMTP_TO or 'unset'}"
)
logger.info(
    f"🔐 API keys configured: {len(API_KEYS) if API_KEYS else 'none (development mode)'}"
)
if not email_service.smtp_configured():
    logger.warning("⚠️ SMTP_USER/SMTP_PASS not set. Email sending will fail.")

app = FastAPI(title="Bacs Propres Mail Service", version="1.0.0")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"ok": False, "error": "Route not found", "path": request.url.path},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
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
    logger.error(f"❌ Server error on {request.url.path} from {get_client_ip(request)}: {exc}")
    return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key"],
)

app.include_router(mail_router)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "mail-service",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "smtp": {
            "configured": email_service.smtp_configured(),
            "host": SMTP_HOST,
            "port": SMTP_PORT,
        },
        "security": {
            "apiKeyRequired": bool(API_KEYS),
            "rateLimiting": True,
        },
    }

"""
Mail Service Runner
Run this as a separate process: python run_mail_service.py
"""

import logging
import sys

import uvicorn

from cleanbins.config import MAIL_SERVICE_PORT

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info(f"🚀 Starting mail service on port {MAIL_SERVICE_PORT}...")
    try:
        uvicorn.run("cleanbins.mail_service.main:app", host="0.0.0.0", port=MAIL_SERVICE_PORT)
    except KeyboardInterrupt:
        logger.info("👋 Mail service stopped by user")
    except Exception as e:
        logger.error(f"❌ Mail service crashed: {e}")
        sys.exit(1)

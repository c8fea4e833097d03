"""mailcapture service runtime.

Starts the aiosmtpd controller with the capture handler and, when configured,
the Admin API under uvicorn in the same process.

Usage:
    mailcapture
    python -m mailcapture.service
"""

import asyncio
import logging
import sys

import uvicorn
from aiosmtpd.controller import Controller

from .config import Settings, get_settings
from .domain.mail.policy import ConnectionPolicy
from .infrastructure.ingest.ingestor import MessageIngestor
from .infrastructure.ingest.mime_parser import MimeDecoder
from .infrastructure.ingest.smtp_handler import MailCaptureSMTPHandler
from .infrastructure.storage.recipient_store import RecipientStore
from .infrastructure.storage.weekly_index import WeeklyIndexManager
from .main import create_app
from .observability.logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_smtp_handler(settings: Settings) -> MailCaptureSMTPHandler:
    """Wire policy, storage and ingestion into an SMTP handler."""
    store = RecipientStore(settings.MAIL_ROOT)
    strict = settings.MIME_STRICT
    return MailCaptureSMTPHandler(
        policy=ConnectionPolicy(settings.email_domains, settings.EMAIL_ACCOUNT_PREFIX),
        store=store,
        ingestor=MessageIngestor(store, lambda: MimeDecoder(strict=strict)),
        index_manager=WeeklyIndexManager(settings.MAIL_ROOT),
        chunk_size=settings.SMTP_CHUNK_SIZE,
    )


def log_admin_api_disabled(settings: Settings) -> None:
    logger.warning("Admin API settings missing or incomplete. Admin API will not be enabled.")
    logger.warning("To enable Admin API, add these settings to the .env file:")
    logger.warning("  ADMIN_APP_PORT=2255")
    logger.warning(f"  API_KEY=<security key of at least {settings.API_KEY_MIN_LENGTH} chars>")


async def serve(settings: Settings) -> None:
    """Run the SMTP server (and the Admin API if enabled) until cancelled."""
    if not settings.email_domains:
        logger.warning("EMAIL_DOMAIN is empty, every recipient will be refused")

    controller = Controller(
        build_smtp_handler(settings),
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        data_size_limit=settings.SMTP_MAX_SIZE,
        enable_SMTPUTF8=True,
    )
    controller.start()
    logger.info(f"SMTP listening on {settings.SMTP_HOST}:{settings.SMTP_PORT}")
    logger.info(f"Accepting mail for domains: {', '.join(settings.email_domains)}")

    try:
        if settings.admin_api_enabled:
            config = uvicorn.Config(
                create_app(settings),
                host=settings.ADMIN_APP_HOST,
                port=settings.ADMIN_APP_PORT,
                log_config=None,
            )
            logger.info(f"Admin app listening on {settings.ADMIN_APP_PORT}")
            await uvicorn.Server(config).serve()
        else:
            log_admin_api_disabled(settings)
            await asyncio.Event().wait()
    finally:
        logger.info("Shutting down SMTP server...")
        controller.stop()
        logger.info("SMTP server stopped")


def main() -> None:
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, exiting")
        sys.exit(0)
    except Exception as e:
        logger.error(f"mailcapture failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

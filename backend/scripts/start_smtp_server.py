#!/usr/bin/env python3
"""SMTP intake server for DocuSync.

Starts an aiosmtpd server whose handler parses each received email into a
canonical message and enqueues it on the processing queue.

Usage:
    python scripts/start_smtp_server.py

Environment Variables:
    SMTP_HOST: Bind address (default: 0.0.0.0)
    SMTP_PORT: Listen port (default: 2525)
    SMTP_MAX_SIZE: Max email size in bytes (default: 26214400 = 25MB)
    CELERY_BROKER_URL: Broker holding the processing queue
    EMAIL_QUEUE_NAME: Processing queue name (default: email-processing)
"""

import asyncio
import logging
import sys

from aiosmtpd.controller import Controller

from docsync.config import get_settings
from docsync.dependencies import get_intake_gateway
from docsync.infrastructure.ingest import DocSyncSMTPHandler
from docsync.observability.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def main():
    """Start SMTP server with the DocuSync handler."""
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    logger.info("=== DocuSync SMTP Server Starting ===")
    logger.info(f"SMTP Bind: {settings.SMTP_HOST}:{settings.SMTP_PORT}")
    logger.info(f"Max Message Size: {settings.SMTP_MAX_SIZE} bytes")
    logger.info(f"Queue: {settings.EMAIL_QUEUE_NAME}")

    smtp_handler = DocSyncSMTPHandler(get_intake_gateway())

    controller = Controller(
        smtp_handler,
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        data_size_limit=settings.SMTP_MAX_SIZE,
        enable_SMTPUTF8=True,
    )
    controller.start()

    logger.info(f"SMTP server started on {settings.SMTP_HOST}:{settings.SMTP_PORT}")
    logger.info("Press Ctrl+C to stop")

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        logger.info("Shutting down SMTP server...")
        controller.stop()
        logger.info("SMTP server stopped")


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, exiting")
        sys.exit(0)
    except Exception as e:
        logger.error(f"SMTP server failed: {e}", exc_info=True)
        sys.exit(1)

"""Component wiring for the API process, the SMTP server and the worker.

Factories build adapters from settings; the lru_cache'd getters hold one
instance per process. Tests bypass all of this and construct components
directly (or override the FastAPI dependencies).

Gateway backend (GATEWAY_BACKEND):
- live: S3 document storage + SMTP relay forwarding
- simulated: in-memory gateways with seedable failure injection
"""

import logging
import random
from functools import lru_cache
from typing import Optional

from .config import Settings, settings
from .database import get_session_factory
from .domain.ports import DocumentStoragePort, ForwardingPort, MailSourcePort
from .infrastructure.forwarding import SmtpForwardingGateway, SmtpRelayConfig
from .infrastructure.graph import GraphClient, GraphConfig, GraphMailSource, GraphSubscriptionManager
from .infrastructure.persistence import (
    SqlAlchemyClientRepository,
    SqlAlchemyDocumentTypeRepository,
    SqlAlchemyRequirementRepository,
)
from .infrastructure.queue import CeleryMessagePublisher
from .infrastructure.simulated import SimulatedDocumentStorage, SimulatedForwardingGateway
from .infrastructure.storage import S3DocumentStorage, load_storage_config, validate_storage_config
from .intake.gateway import IntakeGateway
from .services import DocumentService, RequirementService
from .workers.processor import EmailProcessor

logger = logging.getLogger(__name__)

LIVE_BACKEND = "live"
SIMULATED_BACKEND = "simulated"


def build_storage(config: Settings) -> DocumentStoragePort:
    """Create the document storage gateway for the configured backend."""
    if config.GATEWAY_BACKEND == SIMULATED_BACKEND:
        return SimulatedDocumentStorage(
            rng=random.Random(config.SIMULATED_SEED),
            failure_rate=config.SIMULATED_FAILURE_RATE,
            url_ttl_seconds=config.STORAGE_URL_TTL_SECONDS,
        )
    if config.GATEWAY_BACKEND != LIVE_BACKEND:
        raise ValueError(f"Unknown GATEWAY_BACKEND: {config.GATEWAY_BACKEND!r}")

    storage_config = load_storage_config(config)
    validate_storage_config(storage_config)
    return S3DocumentStorage(storage_config)


def build_forwarder(config: Settings) -> ForwardingPort:
    """Create the forwarding gateway for the configured backend."""
    if config.GATEWAY_BACKEND == SIMULATED_BACKEND:
        # Offset the seed so storage and forwarding failures are independent
        seed = None if config.SIMULATED_SEED is None else config.SIMULATED_SEED + 1
        return SimulatedForwardingGateway(
            rng=random.Random(seed),
            failure_rate=config.SIMULATED_FAILURE_RATE,
        )
    if config.GATEWAY_BACKEND != LIVE_BACKEND:
        raise ValueError(f"Unknown GATEWAY_BACKEND: {config.GATEWAY_BACKEND!r}")

    return SmtpForwardingGateway(SmtpRelayConfig.from_settings(config))


def build_processor(config: Settings) -> EmailProcessor:
    session_factory = get_session_factory()
    requirement_service = RequirementService(
        SqlAlchemyRequirementRepository(session_factory),
        max_attempts=config.REQUIREMENT_UPDATE_MAX_ATTEMPTS,
    )
    return EmailProcessor(
        clients=SqlAlchemyClientRepository(session_factory),
        document_types=SqlAlchemyDocumentTypeRepository(session_factory),
        requirement_service=requirement_service,
        document_service=DocumentService(build_storage(config), requirement_service),
        forwarder=build_forwarder(config),
    )


def graph_configured(config: Settings) -> bool:
    return all((
        config.GRAPH_TENANT_ID,
        config.GRAPH_CLIENT_ID,
        config.GRAPH_CLIENT_SECRET,
        config.GRAPH_MAILBOX,
    ))


def build_mail_source(config: Settings) -> Optional[MailSourcePort]:
    """Graph mail source, or None when Graph credentials are not configured."""
    if not graph_configured(config):
        logger.warning("Microsoft Graph is not configured; Graph notifications will fail")
        return None
    graph_config = GraphConfig.from_settings(config)
    return GraphMailSource(GraphClient(graph_config), graph_config.mailbox)


def build_subscription_manager(config: Settings) -> GraphSubscriptionManager:
    """Subscription manager for the configured mailbox.

    Raises:
        ValueError: If Graph credentials or GRAPH_NOTIFICATION_URL are missing
    """
    if not config.GRAPH_NOTIFICATION_URL:
        raise ValueError("GRAPH_NOTIFICATION_URL is required to manage subscriptions")
    graph_config = GraphConfig.from_settings(config)
    return GraphSubscriptionManager(
        client=GraphClient(graph_config),
        mailbox=graph_config.mailbox,
        notification_url=config.GRAPH_NOTIFICATION_URL,
        client_state=config.GRAPH_CLIENT_STATE,
        ttl_minutes=config.GRAPH_SUBSCRIPTION_TTL_MINUTES,
    )


def build_intake_gateway(config: Settings) -> IntakeGateway:
    from .workers.celery_app import celery_app

    return IntakeGateway(
        publisher=CeleryMessagePublisher(celery_app, queue=config.EMAIL_QUEUE_NAME),
        mail_source=build_mail_source(config),
        client_state=config.GRAPH_CLIENT_STATE,
    )


@lru_cache()
def get_processor() -> EmailProcessor:
    """Per-process EmailProcessor (worker)."""
    return build_processor(settings)


@lru_cache()
def get_intake_gateway() -> IntakeGateway:
    """Per-process IntakeGateway (API and SMTP server).

    Usage:
        @router.post("/webhooks/email")
        async def email_webhook(gateway: IntakeGateway = Depends(get_intake_gateway)):
            ...
    """
    return build_intake_gateway(settings)

"""Bootstrap — wires settings, logging, the httpx client and an orchestrator together.

Invariants:
    - The HTTP client is closed when the context exits, whatever the outcome
    - One orchestrator per context: each runs a single flow
    - With configure_logging, the handler attached on entry is detached on exit

Design Decisions:
    - asynccontextmanager mirrors an application lifespan: setup, yield, teardown
    - Logging setup is opt-in: embedding applications usually own the root logger
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from verifyflow.config import Settings, get_settings
from verifyflow.core.gateway_protocols import CaptureCollaborator
from verifyflow.infrastructure.observability import setup_logging
from verifyflow.infrastructure.validations_client import ValidationsApiClient
from verifyflow.services.orchestrator import SessionOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_orchestrator(
    capture: CaptureCollaborator,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    *,
    configure_logging: bool = False,
) -> AsyncIterator[SessionOrchestrator]:
    """Yield an orchestrator backed by a ValidationsApiClient built from settings."""
    settings = settings or get_settings()
    handler = setup_logging(settings.log_level, settings.log_format) if configure_logging else None
    try:
        async with ValidationsApiClient.from_settings(settings, transport=transport) as client:
            logger.debug(
                f"Validations client ready: {settings.validations_base_url}",
                extra={"stage": "bootstrap"},
            )
            yield SessionOrchestrator(client, capture)
    finally:
        if handler is not None:
            logging.root.removeHandler(handler)

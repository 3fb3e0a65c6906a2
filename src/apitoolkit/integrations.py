"""
apitoolkit.integrations

FastAPI wiring helpers.

Responsibilities:
- Create the SDK client once at application startup and stash it on `app.state`.
- Drain pending publishes and close the transport at shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from fastapi import FastAPI

from apitoolkit.client import new_client
from apitoolkit.middleware import APP_STATE_CLIENT
from apitoolkit.observability.logging import configure_logging, get_logger
from apitoolkit.settings import Settings

log = get_logger(__name__)


def apitoolkit_lifespan(
    settings: Settings,
    *,
    setup_logging: bool = False,
    **client_kwargs: Any,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """
    Usage:

        app = FastAPI(lifespan=apitoolkit_lifespan(Settings(api_key="...")))
        app.add_middleware(APIToolkitMiddleware)

    `client_kwargs` are forwarded to `new_client` (e.g. `http`, `transport_factory`).
    A failed client initialization aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if setup_logging:
            configure_logging(service_name=settings.service_name, level=settings.log_level)

        client = await new_client(settings, **client_kwargs)
        setattr(app.state, APP_STATE_CLIENT, client)
        log.info("apitoolkit_startup", project_id=client.metadata.project_id if client.metadata else "")
        try:
            yield
        finally:
            await client.aclose()
            setattr(app.state, APP_STATE_CLIENT, None)
            log.info("apitoolkit_shutdown")

    return lifespan


# --- Module Notes -----------------------------------------------------------
# Middleware registered without an explicit client resolves it from `app.state` per
# request, so it can be added before the lifespan has run.

"""
Application Factory
===================

Purpose
-------
Builds the FastAPI gateway and wires every dependency explicitly:

- ``DatabaseService`` (engine, sessions, transactions)
- ``TokenIssuer`` for login tokens
- ``ServiceContainer`` with all domain services
- ``RequestPipeline`` (bearer -> claims -> guard -> deadline)

Lifecycle
---------
Startup initializes the database, ensures the schema and initializes the
container. Shutdown reverses the order.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request

from src.api.errors import register_exception_handlers
from src.api.pipeline import RequestPipeline
from src.api.routes import news_router, stats_router, store_items_router, users_router
from src.core.auth.claims import ClaimsDecoder
from src.core.auth.guard import AuthorizationGuard
from src.core.auth.tokens import TokenIssuer, build_claims_decoder
from src.core.config.config import Config
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.services.container import ServiceContainer

logger = get_logger(__name__)

CACHE_CONTROL = "no-cache, no-store, max-age=0, must-revalidate"


def create_app(
    db: Optional[DatabaseService] = None,
    token_issuer: Optional[TokenIssuer] = None,
    decoder: Optional[ClaimsDecoder] = None,
    guard: Optional[AuthorizationGuard] = None,
    timeout_seconds: Optional[float] = None,
) -> FastAPI:
    """
    Build the gateway. Every collaborator can be injected; omitted ones are
    built from ``Config``.
    """
    db = db or DatabaseService()
    token_issuer = token_issuer or TokenIssuer()
    decoder = decoder or build_claims_decoder()
    guard = guard or AuthorizationGuard()
    timeout = timeout_seconds if timeout_seconds is not None else Config.REQUEST_TIMEOUT_SECONDS

    container = ServiceContainer(
        db,
        token_issuer,
        get_logger("src.core.services.container.ServiceContainer"),
    )
    pipeline = RequestPipeline(
        guard=guard,
        decoder=decoder,
        timeout_seconds=timeout,
        logger=get_logger("src.api.pipeline.RequestPipeline"),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Service starting",
            extra={"service": Config.SERVICE_NAME, "version": Config.SERVICE_VERSION},
        )
        await db.initialize()
        await db.create_schema()
        await container.initialize()
        logger.info("Startup health", extra=await container.health_check())
        try:
            yield
        finally:
            await container.shutdown()
            await db.shutdown()
            logger.info("Service stopped", extra={"service": Config.SERVICE_NAME})

    app = FastAPI(
        title=Config.SERVICE_NAME,
        version=Config.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.pipeline = pipeline

    @app.middleware("http")
    async def _no_cache(request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = CACHE_CONTROL
        return response

    register_exception_handlers(app)

    for router in (users_router, store_items_router, stats_router, news_router):
        app.include_router(router, prefix=Config.GATEWAY_PREFIX)

    return app

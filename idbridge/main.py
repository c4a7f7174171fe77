#!/usr/bin/env python3
"""
idbridge - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the API server

All business logic is in the modules, following black box principles.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from idbridge import __version__
from idbridge.config.provider import ConfigProvider, EnvConfigProvider
from idbridge.logging_config import configure_logging, get_logging_config
from idbridge.modules.accounts import InMemoryAccountStore, create_account_router
from idbridge.modules.auth import AuthFactory
from idbridge.modules.middleware import create_bearer_auth_middleware
from idbridge.modules.migration import MigrationFactory, create_migration_router

logger = logging.getLogger(__name__)


def create_app(
    config_provider: Optional[ConfigProvider] = None,
    http_client: Optional[httpx.Client] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config_provider: Configuration source (environment if omitted)
        http_client: Shared outbound HTTP client, left open for the caller
            (if omitted, one is created and closed on shutdown)

    Raises:
        ValueError: required authentication configuration is missing
    """
    config_provider = config_provider or EnvConfigProvider()

    # Fatal if absent
    auth_config = config_provider.get_auth_config()
    migration_config = config_provider.get_migration_config()
    api_config = config_provider.get_api_config()

    owns_client = http_client is None
    if owns_client:
        http_client = httpx.Client(timeout=auth_config.http_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting idbridge API...")
        yield
        logger.info("Shutting down idbridge API...")
        if owns_client:
            http_client.close()

    app = FastAPI(
        title="idbridge API",
        description="Bearer token verification and Passage to Auth0 account migration",
        version=__version__,
        lifespan=lifespan,
    )

    verifier = AuthFactory.build(auth_config, http_client=http_client)
    app.middleware("http")(
        create_bearer_auth_middleware(
            verifier,
            audience=auth_config.audience,
            domain=auth_config.domain,
            skip_prefixes=["/migrate/"],
        )
    )
    # Outermost middleware: preflight requests never reach authentication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    account_store = InMemoryAccountStore()
    app.state.account_store = account_store
    app.include_router(create_account_router(account_store))

    exchange_service = MigrationFactory.build(migration_config, http_client=http_client)
    app.state.exchange_service = exchange_service
    if exchange_service is not None:
        app.include_router(create_migration_router(exchange_service))
        logger.info("Migration endpoints enabled")
        logger.info("  POST /migrate/exchange-token - Exchange Passage JWT for Auth0 user")
        logger.info("  GET  /migrate/stats - View migration statistics")

    @app.get("/health")
    def health():
        """Liveness probe."""
        return {
            "status": "healthy",
            "version": __version__,
            "migration_enabled": exchange_service is not None,
        }

    return app


def main() -> None:
    """Run the API server."""
    config_provider = EnvConfigProvider()
    api_config = config_provider.get_api_config()
    configure_logging(api_config.debug)

    try:
        app = create_app(config_provider)
    except ValueError as e:
        logger.critical(f"Startup failed: {e}")
        raise SystemExit(1) from e

    uvicorn.run(
        app,
        host=api_config.host,
        port=api_config.port,
        log_config=get_logging_config("DEBUG" if api_config.debug else "INFO"),
    )


if __name__ == "__main__":
    main()

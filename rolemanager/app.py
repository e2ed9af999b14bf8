"""FastAPI application factory for the role manager."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import configure_logging, load_config_from_env
from .routes import configure_api_router, configure_page_router

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from .config import AppConfig
    from .store import RoleStore

LOGGER = logging.getLogger(__name__)


def configure_fastapi_app(config: AppConfig, store: RoleStore | None = None) -> FastAPI:
    """Configure and return the FastAPI application.

    :param config: Application configuration
    :param store: Data access layer to serve; built from ``config`` if omitted
    :return: Configured FastAPI application
    """
    role_store = store or config.build_store()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[Any, Any]:
        """Application lifespan manager.

        Drops the cached collections on shutdown so a reused store starts cold.
        """
        LOGGER.info("Role manager is starting with %s source", role_store.source.name)
        app.state.store = role_store

        yield

        role_store.invalidate()
        LOGGER.info("Role manager is shutting down")

    app = FastAPI(
        title="User Role Management",
        version="0.1.0",
        lifespan=lifespan,
        root_path=config.root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_router = configure_api_router(APIRouter(), role_store)
    page_router = configure_page_router(APIRouter(), role_store, config.page_size)

    app.include_router(api_router, prefix="/api", tags=["api"])
    app.include_router(page_router, tags=["page"])

    return app


def create_app(env_file: str | None = os.environ.get("ENV_FILE", ".env")) -> FastAPI:
    """Create and configure the FastAPI application.

    The default here is for uvicorn command line usage, in which case the user
    should set ENV_FILE environment variable if they want a different file.

    :param env_file: Optional path to the environment configuration file
    :return: Configured FastAPI application
    """
    config = load_config_from_env(env_file)
    configure_logging(config)
    return configure_fastapi_app(config)

"""FeedGate FastAPI application factory + lifespan lifecycle.

This module implements:
  - create_app() — testable application factory
  - lifespan     — @asynccontextmanager startup/shutdown sequence
  - /health      — delegated to feedgate/health.py
  - /v1/access-check — delegated to feedgate/api.py
  - app = create_app() — module-level instance for uvicorn

Startup sequence:
  1. load_config()          → app.state.config
  2. create_http_client()   → app.state.http_client (shared by every check)
  3. PackageAccessRule      → app.state.rule (None when no token is configured)
  4. app.state.ready = True

Shutdown (reverse): ready = False → close the shared HTTP client.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI

from feedgate.api import router as access_router
from feedgate.config import Config, load_config
from feedgate.constants import FEEDGATE_VERSION
from feedgate.health import router as health_router
from feedgate.policy.client import create_http_client
from feedgate.rule import PackageAccessRule
from feedgate.utils.logger import configure_logging, get_logger

# ─── Logging Setup ────────────────────────────────────────────────────────────
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — startup and shutdown sequence."""
    logger.info("FeedGate starting up...")

    # load_config() raises SystemExit on invalid config, before ready=True is ever set
    config: Config = load_config()
    app.state.config = config

    http_client: httpx.AsyncClient = create_http_client(config.rule.timeout_s)
    app.state.http_client = http_client

    rule: Optional[PackageAccessRule] = None
    if config.rule.configured:
        rule = PackageAccessRule.from_config(config.rule, http_client=http_client)
    else:
        logger.warning(
            "No organization token configured — access checks will return 503 "
            "until rule.token or FEEDGATE_TOKEN is set"
        )
    app.state.rule = rule

    app.state.ready = True
    logger.info(
        "FeedGate ready",
        endpoint=config.rule.endpoint,
        product=config.rule.product,
        token_configured=config.rule.configured,
    )

    try:
        yield
    finally:
        app.state.ready = False
        logger.info("FeedGate shutting down...")
        await http_client.aclose()
        logger.info("FeedGate shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="FeedGate",
        description="Package-access gate backed by an open-source policy service",
        version=FEEDGATE_VERSION,
        lifespan=lifespan,
    )
    application.state.ready = False
    application.include_router(health_router)
    application.include_router(access_router)
    return application


app = create_app()

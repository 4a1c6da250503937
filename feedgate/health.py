"""Health endpoint for FeedGate.

  GET /health — 503 before ``app.state.ready`` is set, 200 afterwards.

The body reports whether a token is configured, never the token itself.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from feedgate.config import Config
from feedgate.constants import FEEDGATE_VERSION

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Primary health check endpoint.

    Response body (200):
        {
          "status": "ok" | "unconfigured",
          "version": "2.0.0",
          "endpoint": "https://saas.whitesourcesoftware.com/agent",
          "product": "my-product" | null,
          "token_configured": true | false
        }
    """
    if not getattr(request.app.state, "ready", False):
        raise HTTPException(
            status_code=503,
            detail={"status": "starting", "message": "FeedGate is starting up."},
        )

    config: Config = request.app.state.config
    return {
        "status": "ok" if config.rule.configured else "unconfigured",
        "version": FEEDGATE_VERSION,
        "endpoint": config.rule.endpoint,
        "product": config.rule.product,
        "token_configured": config.rule.configured,
    }

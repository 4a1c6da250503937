"""Access-check endpoint — the loopback HTTP surface a feed host calls.

Provides:
  POST /v1/access-check — policy decision for one package-download attempt

A DENY is a decision, not an error: the endpoint returns HTTP 200 for both
ALLOW and DENY, with ``allowed`` set accordingly. Non-200 statuses mean the
gate itself could not be asked:
  - 422 — malformed body or invalid hex digest
  - 503 — gate starting up, or no organization token configured
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from feedgate.models.package import PackageDescriptor
from feedgate.rule import PackageAccessRule
from feedgate.utils.ulid import generate_ulid

router = APIRouter(prefix="/v1", tags=["access-check"])


# ─── Request / Response Models ───────────────────────────────────────────────


class AccessCheckRequest(BaseModel):
    """Request body for POST /v1/access-check."""

    name: str
    version: str
    group: Optional[str] = None
    sha1: Optional[str] = None
    """Hex-encoded SHA1 digest (40 chars). Omitted → the package is denied."""
    md5: Optional[str] = None
    """Hex-encoded MD5 digest (32 chars)."""
    last_modified: Optional[datetime] = None


class AccessCheckResponse(BaseModel):
    """Decision returned to the host."""

    allowed: bool
    reason: Optional[str] = None
    error: Optional[str] = None
    check_id: str


# ─── Dependencies ─────────────────────────────────────────────────────────────


async def require_rule(request: Request) -> PackageAccessRule:
    """FastAPI dependency: the configured rule, or HTTP 503."""
    if not getattr(request.app.state, "ready", False):
        raise HTTPException(
            status_code=503,
            detail={"status": "starting", "message": "FeedGate is starting up."},
        )
    rule: Optional[PackageAccessRule] = getattr(request.app.state, "rule", None)
    if rule is None:
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unconfigured",
                "message": "No organization token configured. Set rule.token or FEEDGATE_TOKEN.",
            },
        )
    return rule


# ─── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/access-check", response_model=AccessCheckResponse)
async def access_check(
    body: AccessCheckRequest,
    rule: PackageAccessRule = Depends(require_rule),
) -> AccessCheckResponse:
    """Ask the policy service whether the package in ``body`` may be downloaded."""
    try:
        package = PackageDescriptor.from_hex(
            name=body.name,
            version=body.version,
            group=body.group,
            sha1=body.sha1,
            md5=body.md5,
            last_modified=body.last_modified,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    check_id = generate_ulid()
    decision = await rule.get_package_access_policy(package, check_id=check_id)

    return AccessCheckResponse(
        allowed=decision.allowed,
        reason=decision.reason,
        error=decision.error,
        check_id=check_id,
    )

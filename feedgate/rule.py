"""PackageAccessRule — the gate as the feed host sees it.

The host calls ``get_package_access_policy()`` once per download attempt and
enforces the returned decision: allow the download, or reject it showing
``decision.reason`` to the user.

This layer adds one thing on top of ``PolicyCheckClient``: an outer safety
net. The client already converts every expected failure into a DENY; any
*unexpected* exception escaping it is logged at CRITICAL and also becomes a
DENY. Cancellation is the only exception that propagates.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from feedgate.config import RuleConfig
from feedgate.models.decision import AccessDecision
from feedgate.policy.client import PolicyCheckClient
from feedgate.utils.logger import check_scope, get_logger
from feedgate.utils.ulid import generate_ulid

logger = get_logger(__name__)

DISPLAY_NAME = "Open-source policy"
DESCRIPTION = "Verifies with the policy service that a package is allowed to be downloaded."
INTERNAL_ERROR_REASON = (
    "Package verification failed unexpectedly. See the error logs for more information."
)


class PackageAccessRule:
    """Access rule backed by the policy service.

    Args:
        config:      Rule configuration (token, endpoint, product).
        http_client: Optional shared ``httpx.AsyncClient``.
    """

    display_name: str = DISPLAY_NAME
    description: str = DESCRIPTION

    def __init__(
        self,
        config: RuleConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client = PolicyCheckClient(config, http_client=http_client)

    @classmethod
    def from_config(
        cls,
        config: RuleConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "PackageAccessRule":
        return cls(config, http_client=http_client)

    @property
    def config(self) -> RuleConfig:
        return self._client.config

    async def get_package_access_policy(
        self,
        package: Any,
        check_id: Optional[str] = None,
    ) -> AccessDecision:
        """Return the access decision for ``package``. Never raises except on cancellation."""
        check_id = check_id or generate_ulid()
        with check_scope(check_id):
            try:
                return await self._client.check_access(package, check_id=check_id)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                # Unexpected failure inside the policy check: DENY, never let through
                logger.critical(
                    "Unhandled policy check exception; denying",
                    error_type=type(exc).__name__,
                    error=str(exc),
                    exc_info=True,
                )
                return AccessDecision.deny(INTERNAL_ERROR_REASON, error="INTERNAL_ERROR")

    async def aclose(self) -> None:
        await self._client.aclose()

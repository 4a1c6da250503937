"""Request envelope for the policy-check endpoint.

The body is ``application/x-www-form-urlencoded`` with the fields in this exact
order (the service is order-sensitive in some deployments):

    type, agent, agentVersion, pluginVersion, token, product?, timeStamp, diff

Every value is percent-encoded; only the fixed keys and the ``&``/``=``
separators are literal. ``product`` is omitted when empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

from feedgate.constants import (
    AGENT_NAME,
    AGENT_VERSION,
    FEEDGATE_PRODUCT_NAME,
    FEEDGATE_VERSION,
    REQUEST_TYPE,
)
from feedgate.secrets import SecretToken

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def timestamp_ms(now: Optional[datetime] = None) -> int:
    """Milliseconds since 1970-01-01T00:00:00Z for ``now`` (default: current UTC time)."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    delta = now - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def user_agent(host_product: str, host_version: str) -> str:
    """User-Agent identifying the host product and this integration."""
    return f"{host_product}/{host_version} {FEEDGATE_PRODUCT_NAME}/{FEEDGATE_VERSION}"


def _escape(value: str) -> str:
    return quote(value, safe="")


@dataclass
class RequestEnvelope:
    """Form fields of one CHECK_POLICY_COMPLIANCE request.

    The timestamp is not stored here: ``encode()`` takes it so the caller can
    stamp the body at send time.
    """

    token: SecretToken
    diff: str
    plugin_version: str = FEEDGATE_VERSION
    product: Optional[str] = None
    request_type: str = REQUEST_TYPE
    agent: str = AGENT_NAME
    agent_version: str = AGENT_VERSION

    def encode(self, timestamp: int) -> str:
        """Render the form body. The token is revealed here and nowhere else."""
        fields: list[tuple[str, str]] = [
            ("type", self.request_type),
            ("agent", self.agent),
            ("agentVersion", self.agent_version),
            ("pluginVersion", self.plugin_version),
            ("token", self.token.reveal()),
        ]
        if self.product:
            fields.append(("product", self.product))
        fields.append(("timeStamp", str(int(timestamp))))
        fields.append(("diff", self.diff))
        return "&".join(f"{key}={_escape(value)}" for key, value in fields)

    def __repr__(self) -> str:
        return (
            f"RequestEnvelope(type={self.request_type!r}, product={self.product!r}, "
            f"token={self.token!r}, diff_len={len(self.diff)})"
        )

"""AccessDecision — the single output contract of the access gate.

A decision is either ALLOW (``allowed=True``, no reason) or DENY
(``allowed=False`` with a human-readable reason the host shows to the user
initiating the download). ``error`` names the error path that produced a deny
so callers and logs can distinguish a policy rejection from a communication
failure without parsing the reason text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

ErrorCode = Literal[
    "MISSING_HASH",
    "TRANSPORT_ERROR",
    "PROTOCOL_ERROR",
    "SERVICE_ERROR",
    "POLICY_REJECTION",
    "INTERNAL_ERROR",
]


@dataclass(frozen=True)
class AccessDecision:
    """Allow/deny verdict for one package-download attempt."""

    allowed: bool
    reason: Optional[str] = None
    error: Optional[ErrorCode] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return ALLOWED

    @classmethod
    def deny(cls, reason: str, error: Optional[ErrorCode] = None) -> "AccessDecision":
        return cls(allowed=False, reason=reason, error=error)

    @property
    def denied(self) -> bool:
        return not self.allowed


ALLOWED = AccessDecision(allowed=True)

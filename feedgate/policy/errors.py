"""Error taxonomy for the policy check.

Every failure the policy client can hit is one of these exceptions. They are
raised internally and converted into a DENY ``AccessDecision`` by
``PolicyCheckClient`` — they never reach the host. ``code`` matches
``AccessDecision.error``.

None of these exceptions may carry the organization token in their message or
attributes.
"""

from __future__ import annotations

from typing import Optional

from feedgate.models.decision import ErrorCode


class PolicyCheckError(Exception):
    """Base class for all policy-check failures."""

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingHashError(PolicyCheckError):
    """The package has no SHA1 hash. Local and non-retryable."""

    code: ErrorCode = "MISSING_HASH"

    def __init__(self, name: str, version: str) -> None:
        super().__init__(
            f"Package {name} {version} does not have a SHA1 hash computed. "
            "Run the feed cleanup task to generate one."
        )
        self.name = name
        self.version = version


class TransportError(PolicyCheckError):
    """Network failure, DNS, TLS, timeout or a non-2xx HTTP status."""

    code: ErrorCode = "TRANSPORT_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProtocolError(PolicyCheckError):
    """The policy service answered with something that is not the expected JSON."""

    code: ErrorCode = "PROTOCOL_ERROR"


class ServiceError(PolicyCheckError):
    """The response envelope reported ``status != 1``."""

    code: ErrorCode = "SERVICE_ERROR"

    def __init__(self, message: str, data: Optional[str] = None) -> None:
        super().__init__(message)
        self.data = data


class PolicyRejection(PolicyCheckError):
    """A policy with ``actionType == "Reject"`` matched the package."""

    code: ErrorCode = "POLICY_REJECTION"

    def __init__(self, display_name: str) -> None:
        super().__init__(f'Package rejected due to "{display_name}" policy.')
        self.display_name = display_name

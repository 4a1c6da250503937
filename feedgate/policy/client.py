"""PolicyCheckClient — asks the policy service whether a package may be downloaded.

One call to ``check_access()`` is one package-download attempt:

  1. Guard: no SHA1 hash (or no hash capability) → DENY, no network call.
  2. Build + serialize the diff payload for the package.
  3. Build the form-encoded request envelope, stamped at send time.
  4. POST it to the configured endpoint (single attempt, no retries).
  5. Parse the JSON envelope, then the JSON policy document inside ``data``.
  6. First ``policy`` object with ``actionType == "Reject"`` → DENY; else ALLOW.

FAIL-CLOSED INVARIANTS:
  - ``check_access()`` ALWAYS returns an ``AccessDecision`` for every
    ``PolicyCheckError`` and every ``httpx.HTTPError``. It never returns ALLOW
    on an error path.
  - Transport and protocol failures are logged with diagnostic detail and
    surfaced to the host only as a generic reason.
  - ``asyncio.CancelledError`` is the caller's cancellation signal and is
    propagated untouched.
  - The organization token never appears in logs, reasons or exceptions.

httpx never sends ``Expect: 100-continue``, which some service deployments
reject; no such header is set here either.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from feedgate.config import RuleConfig
from feedgate.constants import FEEDGATE_VERSION, FORM_CONTENT_TYPE, MAX_LOGGED_BODY_CHARS
from feedgate.models.decision import AccessDecision
from feedgate.models.package import HashedPackage
from feedgate.policy.diff import serialize_diff
from feedgate.policy.envelope import RequestEnvelope, timestamp_ms, user_agent
from feedgate.policy.errors import (
    MissingHashError,
    PolicyCheckError,
    ProtocolError,
    TransportError,
)
from feedgate.policy.response import interpret, parse_envelope
from feedgate.utils.logger import CheckTimer, check_scope, get_logger
from feedgate.utils.ulid import generate_ulid

logger = get_logger(__name__)

# ─── Deny reasons shown to the downloading user ──────────────────────────────

COMMUNICATION_ERROR_REASON = (
    "Error communicating with the policy service for package verification. "
    "See the error logs for more information."
)
INVALID_DATA_REASON = (
    "Invalid data from the policy service. See the error logs for more information."
)


class NotConfiguredError(RuntimeError):
    """The rule has no organization token; a client cannot be built."""


class PolicyCheckClient:
    """Policy-service client for one configured access rule.

    Holds only static configuration. Checks share no mutable state, so any
    number of them may run concurrently on the same client.

    Args:
        config:      Rule configuration. ``config.token`` is required.
        http_client: Shared ``httpx.AsyncClient``. When omitted the client
                     creates its own and closes it in ``aclose()``.
    """

    def __init__(
        self,
        config: RuleConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if config.token is None:
            raise NotConfiguredError(
                "Policy rule has no organization token. Set rule.token or FEEDGATE_TOKEN."
            )
        self._config = config
        self._owns_client = http_client is None
        self._http_client = http_client or create_http_client(config.timeout_s)
        self._headers = {
            "Content-Type": FORM_CONTENT_TYPE,
            "User-Agent": user_agent(config.host_product, config.host_version),
        }

    @property
    def config(self) -> RuleConfig:
        return self._config

    async def __aenter__(self) -> "PolicyCheckClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    # ─── Public API ──────────────────────────────────────────────────────────

    async def check_access(
        self,
        package: Any,
        check_id: Optional[str] = None,
    ) -> AccessDecision:
        """Decide whether ``package`` may be downloaded.

        ``package`` should satisfy ``HashedPackage``; anything else is denied
        as having no hash. ``check_id`` tags every log entry of this check
        (a new ULID when omitted) and is unbound again on return.

        Returns:
            AccessDecision. Never raises for service, protocol or transport errors.
        """
        with check_scope(check_id or generate_ulid()):
            with CheckTimer(logger, _describe(package)) as timer:
                decision = await self._check(package)
                timer.record(decision)
        return decision

    async def _check(self, package: Any) -> AccessDecision:
        try:
            body = self.build_body(package)
        except MissingHashError as exc:
            logger.warning(
                "Package has no SHA1 hash; denied without contacting policy service",
                package=exc.name,
                version=exc.version,
            )
            return AccessDecision.deny(exc.message, error=exc.code)

        try:
            response = await self._http_client.post(
                self._config.endpoint,
                content=body.encode("utf-8"),
                headers=self._headers,
                timeout=self._config.timeout_s,
            )
            content = await response.aread()
        except httpx.HTTPError as exc:
            return self._transport_denial(_transport_error(exc))

        return self._decide(response.status_code, content)

    # ─── Request / response shaping ──────────────────────────────────────────

    def build_body(self, package: Any, timestamp: Optional[int] = None) -> str:
        """Render the form body for ``package``.

        ``timestamp`` defaults to the current time; the policy service expects
        the moment of sending, so callers should not cache bodies.

        Raises:
            MissingHashError: If ``package`` has no SHA1 hash or no hash capability.
        """
        if not isinstance(package, HashedPackage):
            raise MissingHashError(
                str(getattr(package, "name", package)),
                str(getattr(package, "version", "")),
            )
        envelope = RequestEnvelope(
            token=self._config.token,  # type: ignore[arg-type]
            diff=serialize_diff(package),
            plugin_version=FEEDGATE_VERSION,
            product=self._config.product,
        )
        return envelope.encode(timestamp if timestamp is not None else timestamp_ms())

    def _decide(self, status_code: int, content: bytes) -> AccessDecision:
        if not 200 <= status_code < 300:
            return self._transport_denial(
                TransportError(
                    f"HTTP {status_code} from policy service",
                    status_code=status_code,
                    body=_excerpt(content),
                )
            )

        try:
            envelope = parse_envelope(content)
            decision = interpret(
                envelope, append_blank_data=self._config.append_blank_data
            )
        except ProtocolError as exc:
            logger.error(
                "Invalid data from policy service; expected JSON",
                error=exc.message,
                body=_excerpt(content),
            )
            return AccessDecision.deny(INVALID_DATA_REASON, error=exc.code)
        return decision

    def _transport_denial(self, exc: TransportError) -> AccessDecision:
        logger.error(
            exc.message,
            endpoint=self._config.endpoint,
            status_code=exc.status_code,
            response_body=exc.body,
        )
        return AccessDecision.deny(COMMUNICATION_ERROR_REASON, error=exc.code)


# ─── Helpers ─────────────────────────────────────────────────────────────────


def create_http_client(timeout_s: float) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` for policy checks.

    Redirects are not followed: the token is in the body and must only go to
    the configured endpoint.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_s),
        follow_redirects=False,
    )


def _transport_error(exc: httpx.HTTPError) -> TransportError:
    return TransportError(
        f"Error communicating with policy service: {type(exc).__name__}: {exc}"
    )


def _excerpt(content: bytes) -> str:
    return content[:MAX_LOGGED_BODY_CHARS].decode("utf-8", errors="replace")


def _describe(package: Any) -> str:
    name = getattr(package, "name", None) or type(package).__name__
    group = getattr(package, "group", None)
    version = getattr(package, "version", "")
    prefix = f"{group}/" if group else ""
    return f"{prefix}{name} {version}".strip()


__all__ = [
    "COMMUNICATION_ERROR_REASON",
    "INVALID_DATA_REASON",
    "NotConfiguredError",
    "PolicyCheckClient",
    "PolicyCheckError",
    "create_http_client",
]

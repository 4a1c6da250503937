"""Opaque holder for the policy-service organization token.

The token is a credential: it is sent in the body of every policy check and
nothing else may see it. ``SecretToken`` keeps it out of ``repr()``, ``str()``,
f-strings, structlog key/values and exception messages. The plaintext is only
reachable through ``reveal()``, which the request envelope calls exactly once
while encoding a body.

Usage::

    token = SecretToken(os.environ["FEEDGATE_TOKEN"])
    logger.info("configured", token=token)   # logs SecretToken('**********')
    body = envelope.encode(timestamp_ms())   # the only reveal() call site
"""

from __future__ import annotations

import hmac

_MASK = "**********"


class SecretToken:
    """Opaque, non-printable wrapper around a credential string."""

    __slots__ = ("_value",)

    def __init__(self, value: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("SecretToken requires a non-empty string")
        self._value = value

    def reveal(self) -> str:
        """Return the plaintext token. Call only while building a request body."""
        return self._value

    def __repr__(self) -> str:
        return f"SecretToken('{_MASK}')"

    def __str__(self) -> str:
        return _MASK

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretToken):
            return NotImplemented
        return hmac.compare_digest(self._value.encode(), other._value.encode())

    def __hash__(self) -> int:
        return hash((SecretToken, len(self._value)))

    def __bool__(self) -> bool:
        return True

"""Response envelope parsing and policy interpretation.

The policy service answers with a JSON envelope:

.. code-block:: json

    {"status": 1, "message": "ok", "data": "<JSON-encoded policy document>"}

On success ``data`` is itself a JSON *string* that must be parsed a second
time. The resulting policy document has no fixed schema: policies sit under
any number of project/library/category/sub-policy levels. Every object
property literally named ``policy`` whose value is an object is a policy,
wherever it appears. The first one (document order) whose ``actionType`` is
exactly ``"Reject"`` blocks the package.

Interpretation is fail-closed: anything that is not an explicit, fully parsed
success without a Reject policy raises a ``PolicyCheckError``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Union

from feedgate.constants import REJECT_ACTION, STATUS_SUCCESS
from feedgate.models.decision import ALLOWED, AccessDecision
from feedgate.policy.errors import PolicyRejection, ProtocolError, ServiceError

POLICY_KEY = "policy"

#: Rendered in place of a missing policy displayName.
UNKNOWN_DISPLAY_NAME = "unknown"

JSONValue = Union[dict, list, str, int, float, bool, None]


@dataclass(frozen=True)
class ResponseEnvelope:
    """Top-level response of the policy-check endpoint."""

    status: int
    message: Optional[str] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS


def parse_envelope(body: Union[bytes, str]) -> ResponseEnvelope:
    """Parse the HTTP body into a ResponseEnvelope.

    Raises:
        ProtocolError: Body is not JSON, not an object, or has no integer ``status``.
    """
    try:
        raw = json.loads(body)
    except (ValueError, TypeError, RecursionError) as exc:
        raise ProtocolError(f"Response body is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ProtocolError(
            f"Response body must be a JSON object, got {type(raw).__name__}"
        )

    status = raw.get("status")
    # bool is an int subclass; "status": true is not a status code
    if isinstance(status, bool) or not isinstance(status, (int, float, str)):
        raise ProtocolError("Response envelope has no integer 'status' field")
    if isinstance(status, float) and not status.is_integer():
        raise ProtocolError(f"Response envelope 'status' is not an integer: {status!r}")
    try:
        status = int(status)
    except ValueError as exc:
        raise ProtocolError(f"Response envelope 'status' is not an integer: {status!r}") from exc

    message = raw.get("message")
    return ResponseEnvelope(
        status=status,
        message=None if message is None else str(message),
        data=raw.get("data"),
    )


def iter_policies(node: JSONValue) -> Iterator[dict]:
    """Yield every ``policy`` object in ``node``, depth-first in document order.

    A policy object is yielded before any policies nested inside it. The walk
    keeps its own stack, so nesting depth is bounded only by memory.
    """
    # (is_policy, node); children pushed in reverse to pop in document order
    stack: list[tuple[bool, JSONValue]] = [(False, node)]
    while stack:
        is_policy, current = stack.pop()
        if is_policy:
            yield current  # type: ignore[misc]
        if isinstance(current, dict):
            stack.extend(
                (key == POLICY_KEY and isinstance(value, dict), value)
                for key, value in reversed(list(current.items()))
            )
        elif isinstance(current, list):
            stack.extend((False, item) for item in reversed(current))


def find_policies(document: JSONValue) -> list[dict]:
    """Collect every ``policy`` object in ``document`` regardless of depth."""
    return list(iter_policies(document))


def parse_policy_document(data: Any) -> JSONValue:
    """Second-level parse of the envelope's ``data`` field.

    Raises:
        ProtocolError: ``data`` is missing or is a string that is not JSON.
    """
    if data is None:
        raise ProtocolError("Successful response carries no 'data' field")
    if isinstance(data, (dict, list)):
        return data
    if not isinstance(data, str):
        raise ProtocolError(
            f"Response 'data' must be a JSON string, got {type(data).__name__}"
        )
    try:
        return json.loads(data)
    except (ValueError, RecursionError) as exc:
        raise ProtocolError(f"Response 'data' is not valid JSON: {exc}") from exc


def service_error_reason(
    envelope: ResponseEnvelope,
    append_blank_data: bool = False,
) -> str:
    """Deny reason for a ``status != 1`` envelope.

    ``data`` is appended as ``": <data>"`` only when it is a non-blank string.
    With ``append_blank_data`` any string ``data`` is appended, blank or not
    (compatibility with older service releases).
    """
    reason = "Policy service returned error when checking policies: " + (envelope.message or "")
    data = envelope.data
    if isinstance(data, str) and (append_blank_data or data.strip()):
        reason += ": " + data
    return reason


def check_envelope(envelope: ResponseEnvelope, append_blank_data: bool = False) -> None:
    """Raise the PolicyCheckError matching ``envelope``; return on ALLOW.

    Raises:
        ServiceError:    ``status != 1``.
        ProtocolError:   ``data`` cannot be parsed as a policy document.
        PolicyRejection: A policy with ``actionType == "Reject"`` was found.
    """
    if not envelope.ok:
        raise ServiceError(
            service_error_reason(envelope, append_blank_data=append_blank_data),
            data=envelope.data if isinstance(envelope.data, str) else None,
        )

    document = parse_policy_document(envelope.data)
    for policy in iter_policies(document):
        if policy.get("actionType") == REJECT_ACTION:
            display_name = policy.get("displayName")
            raise PolicyRejection(
                UNKNOWN_DISPLAY_NAME if display_name is None else str(display_name)
            )


def interpret(envelope: ResponseEnvelope, append_blank_data: bool = False) -> AccessDecision:
    """Map a parsed envelope to an AccessDecision.

    Raises:
        ProtocolError: ``data`` of a successful envelope is not a policy document.
    """
    try:
        check_envelope(envelope, append_blank_data=append_blank_data)
    except (ServiceError, PolicyRejection) as exc:
        return AccessDecision.deny(exc.message, error=exc.code)
    return ALLOWED

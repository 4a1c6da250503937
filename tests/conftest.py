"""Root test configuration for FeedGate.

Isolates every test from the developer's environment: FEEDGATE_* variables are
removed and the default config search paths point into the test's tmp_path, so
a real ``~/.feedgate/config.yaml`` can never leak into a test.

Also provides the shared package fixtures and ``MockPolicyService``, an
``httpx.MockTransport``-backed stand-in for the policy-check endpoint.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Callable, Optional
from urllib.parse import parse_qsl

import httpx
import pytest

from feedgate.config import RuleConfig
from feedgate.models.package import PackageDescriptor
from feedgate.secrets import SecretToken

TEST_TOKEN = "org-token-7f3a9c1e5b"
TEST_ENDPOINT = "https://policy.example.test/agent"

PACKAGE_BYTES = b"left-pad-1.3.0.tgz contents"
PACKAGE_SHA1 = hashlib.sha1(PACKAGE_BYTES).digest()
PACKAGE_MD5 = hashlib.md5(PACKAGE_BYTES).digest()


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Strip FEEDGATE_* env vars and redirect default config paths to tmp_path."""
    for var in (
        "FEEDGATE_CONFIG",
        "FEEDGATE_TOKEN",
        "FEEDGATE_ENDPOINT",
        "FEEDGATE_PRODUCT",
        "FEEDGATE_PORT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        "feedgate.config.DEFAULT_CONFIG_PATHS",
        [str(tmp_path / ".feedgate" / "config.yaml")],
    )


# ─── Package fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def package() -> PackageDescriptor:
    """A grouped package carrying both SHA1 and MD5."""
    return PackageDescriptor(
        name="left-pad",
        version="1.3.0",
        group="npm",
        sha1=PACKAGE_SHA1,
        md5=PACKAGE_MD5,
    )


@pytest.fixture
def bare_package() -> PackageDescriptor:
    """An ungrouped package with SHA1 only."""
    return PackageDescriptor(name="requests", version="2.31.0", sha1=PACKAGE_SHA1)


@pytest.fixture
def unhashed_package() -> PackageDescriptor:
    return PackageDescriptor(name="mystery", version="0.0.1")


@pytest.fixture
def rule_config() -> RuleConfig:
    return RuleConfig(
        token=SecretToken(TEST_TOKEN),
        endpoint=TEST_ENDPOINT,
        product="web-portal",
        timeout_s=5.0,
    )


# ─── Mock policy service ──────────────────────────────────────────────────────


def success_envelope(document: Any) -> bytes:
    """Envelope with status=1 and ``document`` double-encoded in ``data``."""
    return json.dumps({"status": 1, "message": "ok", "data": json.dumps(document)}).encode()


def error_envelope(message: str, data: Optional[str] = None) -> bytes:
    body: dict[str, Any] = {"status": 0, "message": message}
    if data is not None:
        body["data"] = data
    return json.dumps(body).encode()


class MockPolicyService:
    """Mock policy-check endpoint that records requests and returns a canned response."""

    def __init__(
        self,
        *,
        status_code: int = 200,
        body: bytes = b"",
        raise_on_send: Optional[Exception] = None,
        handler: Optional[Callable[[httpx.Request], Any]] = None,
    ) -> None:
        self.received_requests: list[httpx.Request] = []
        self._status_code = status_code
        self._body = body
        self._raise_on_send = raise_on_send
        self._handler = handler

    def handler(self, request: httpx.Request) -> Any:
        self.received_requests.append(request)
        if self._raise_on_send is not None:
            raise self._raise_on_send
        if self._handler is not None:
            return self._handler(request)
        return httpx.Response(
            self._status_code,
            content=self._body,
            headers={"content-type": "application/json"},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)

    @property
    def request_count(self) -> int:
        return len(self.received_requests)

    def form_fields(self, index: int = -1) -> list[tuple[str, str]]:
        """Decoded form fields of a received request, in wire order."""
        return parse_qsl(self.received_requests[index].content.decode("utf-8"))


@pytest.fixture
def policy_service() -> type[MockPolicyService]:
    """The MockPolicyService class (test modules cannot import conftest directly)."""
    return MockPolicyService


@pytest.fixture(name="success_envelope")
def success_envelope_fixture() -> Callable[[Any], bytes]:
    return success_envelope


@pytest.fixture(name="error_envelope")
def error_envelope_fixture() -> Callable[..., bytes]:
    return error_envelope

"""Unit tests for feedgate/rule.py — the host-facing PackageAccessRule.

The rule's outer safety net must turn ANY unexpected exception into a DENY,
while letting cancellation through.
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest
import structlog

from feedgate.config import RuleConfig
from feedgate.models.decision import ALLOWED
from feedgate.models.package import PackageDescriptor
from feedgate.rule import DESCRIPTION, DISPLAY_NAME, INTERNAL_ERROR_REASON, PackageAccessRule


class TestMetadata:
    def test_display_metadata(self) -> None:
        assert PackageAccessRule.display_name == DISPLAY_NAME
        assert "allowed to be downloaded" in DESCRIPTION


class TestGetPackageAccessPolicy:
    @pytest.mark.asyncio
    async def test_delegates_to_policy_service(
        self, policy_service: Any, success_envelope: Any, rule_config: RuleConfig, package: PackageDescriptor
    ) -> None:
        service = policy_service(body=success_envelope({}))
        async with service.client() as http_client:
            rule = PackageAccessRule.from_config(rule_config, http_client=http_client)
            decision = await rule.get_package_access_policy(package)
        assert decision is ALLOWED
        assert service.request_count == 1
        assert rule.config is rule_config

    @pytest.mark.asyncio
    async def test_unexpected_exception_denies(
        self, rule_config: RuleConfig, package: PackageDescriptor, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        rule = PackageAccessRule(rule_config)
        monkeypatch.setattr(
            rule._client, "check_access", AsyncMock(side_effect=KeyError("boom"))
        )
        decision = await rule.get_package_access_policy(package)
        assert not decision.allowed
        assert decision.reason == INTERNAL_ERROR_REASON
        assert decision.error == "INTERNAL_ERROR"
        await rule.aclose()

    @pytest.mark.asyncio
    async def test_cancellation_propagates(
        self, rule_config: RuleConfig, package: PackageDescriptor, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        rule = PackageAccessRule(rule_config)
        monkeypatch.setattr(
            rule._client, "check_access", AsyncMock(side_effect=asyncio.CancelledError())
        )
        with pytest.raises(asyncio.CancelledError):
            await rule.get_package_access_policy(package)
        await rule.aclose()

    @pytest.mark.asyncio
    async def test_check_id_forwarded(
        self, rule_config: RuleConfig, package: PackageDescriptor, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        rule = PackageAccessRule(rule_config)
        mock = AsyncMock(return_value=ALLOWED)
        monkeypatch.setattr(rule._client, "check_access", mock)
        await rule.get_package_access_policy(package, check_id="01TESTCHECKID0000000000000")
        mock.assert_awaited_once_with(package, check_id="01TESTCHECKID0000000000000")
        await rule.aclose()

    @pytest.mark.asyncio
    async def test_check_id_unbound_after_failure(
        self, rule_config: RuleConfig, package: PackageDescriptor, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        rule = PackageAccessRule(rule_config)
        monkeypatch.setattr(
            rule._client, "check_access", AsyncMock(side_effect=RuntimeError("boom"))
        )
        await rule.get_package_access_policy(package, check_id="01TESTCHECKID0000000000000")
        assert "check_id" not in structlog.contextvars.get_contextvars()
        await rule.aclose()

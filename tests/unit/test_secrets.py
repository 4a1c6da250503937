"""Unit tests for feedgate/secrets.py — the token never prints."""

from __future__ import annotations

import pytest

from feedgate.secrets import SecretToken

TOKEN = "org-token-abc123"


class TestSecretToken:
    def test_reveal_returns_plaintext(self) -> None:
        assert SecretToken(TOKEN).reveal() == TOKEN

    @pytest.mark.parametrize("render", [repr, str, lambda t: f"{t}", lambda t: "%s" % t])
    def test_rendering_masks_value(self, render) -> None:
        assert TOKEN not in render(SecretToken(TOKEN))

    def test_masked_in_containers(self) -> None:
        assert TOKEN not in repr({"token": SecretToken(TOKEN)})

    @pytest.mark.parametrize("value", ["", "   ", None, 123])
    def test_empty_or_non_string_rejected(self, value) -> None:
        with pytest.raises(ValueError):
            SecretToken(value)

    def test_equality(self) -> None:
        assert SecretToken(TOKEN) == SecretToken(TOKEN)
        assert SecretToken(TOKEN) != SecretToken(TOKEN + "x")
        assert SecretToken(TOKEN) != TOKEN

    def test_hashable(self) -> None:
        assert len({SecretToken(TOKEN), SecretToken(TOKEN)}) == 1

"""Tests for the token and configuration models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tokenauth.models import (
    DEFAULT_TOKEN_TYPE,
    GlobalConfig,
    ProviderConfig,
    TargetConfig,
    TokenResult,
)


class TestTokenResult:
    def test_scheme_defaults_to_bearer(self) -> None:
        token = TokenResult(token="abc")
        assert token.scheme == DEFAULT_TOKEN_TYPE == "Bearer"
        assert token.authorization == "Bearer abc"

    def test_explicit_token_type(self) -> None:
        assert TokenResult(token="abc", token_type="MAC").authorization == "MAC abc"

    def test_empty_token_type_falls_back(self) -> None:
        assert TokenResult(token="abc", token_type="").scheme == "Bearer"

    def test_validates_oauth2_response(self) -> None:
        token = TokenResult.model_validate(
            {"access_token": "abc", "token_type": "bearer", "expires_in": 3599, "scope": "read"}
        )
        assert token.token == "abc"
        assert token.authorization == "bearer abc"

    def test_empty_token_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TokenResult(token="")

    def test_frozen(self) -> None:
        token = TokenResult(token="abc")
        with pytest.raises(ValidationError):
            token.token = "xyz"  # type: ignore[misc]

    def test_no_expiry_never_expires(self) -> None:
        assert TokenResult(token="abc").is_expired(margin=10_000) is False

    def test_expiry_with_margin(self) -> None:
        token = TokenResult(token="abc", expires_in=60)
        assert token.is_expired() is False
        assert token.is_expired(margin=60) is True

    def test_obtained_at_not_serialised(self) -> None:
        dumped = TokenResult(token="abc").model_dump(by_alias=True)
        assert dumped == {"access_token": "abc", "token_type": None, "expires_in": None}


class TestConfigModels:
    def test_provider_config_keeps_extra_keys(self) -> None:
        config = ProviderConfig(type="credential", source="env:T", audience="billing")
        assert config.model_extra == {"audience": "billing"}
        assert config.timeout == 30.0
        assert config.refresh_margin == 30.0

    def test_target_defaults(self) -> None:
        target = TargetConfig(name="billing", provider=ProviderConfig(type="credential"))
        assert target.base_url is None
        assert target.request.timeout == 30
        assert target.request.verify_ssl is True

    def test_global_config_defaults(self) -> None:
        config = GlobalConfig()
        assert config.default_target is None
        assert config.targets == {}

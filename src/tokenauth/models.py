"""Canonical Pydantic models shared across all tokenauth modules.

The models fall into two groups:

**Token value** -- :class:`TokenResult`, the immutable credential produced by
a :class:`~tokenauth.providers.base.TokenProvider` and applied to outgoing
requests by :class:`~tokenauth.handler.TokenAuth`.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`ProviderConfig`, :class:`RequestConfig`,
:class:`TargetConfig`, and :class:`GlobalConfig`.

All models use Pydantic v2.  :class:`ProviderConfig` uses ``extra="allow"``
so that provider-specific keys are preserved in ``model_extra``.
"""

from __future__ import annotations

import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TOKEN_TYPE = "Bearer"


# --- Token value ---


class TokenResult(BaseModel):
    """An access token together with its type.

    Accepts both the short field name ``token`` and the OAuth2 token
    response key ``access_token``, so a decoded token endpoint response can
    be validated directly::

        TokenResult.model_validate({"access_token": "abc", "token_type": "Bearer"})

    ``token_type`` may be absent, in which case :attr:`scheme` falls back to
    ``"Bearer"``.  Instances are frozen and safe to share between threads.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    token: str = Field(alias="access_token", min_length=1)
    token_type: Optional[str] = None
    expires_in: Optional[float] = Field(
        default=None, description="Lifetime in seconds, None = no known expiry"
    )
    obtained_at: float = Field(default_factory=time.monotonic, exclude=True, repr=False)

    @property
    def scheme(self) -> str:
        """The authorization scheme, defaulting to ``Bearer``."""
        return self.token_type or DEFAULT_TOKEN_TYPE

    @property
    def authorization(self) -> str:
        """The ``Authorization`` header value, ``"<scheme> <token>"``."""
        return f"{self.scheme} {self.token}"

    def is_expired(self, margin: float = 0.0) -> bool:
        """Return True if the token is within *margin* seconds of expiry.

        Tokens without ``expires_in`` never expire on their own; they are
        only replaced after an explicit invalidation.
        """
        if self.expires_in is None:
            return False
        return time.monotonic() >= self.obtained_at + self.expires_in - margin


# --- Configuration ---


class ProviderConfig(BaseModel):
    """How a target obtains its token.

    The ``type`` field selects the provider implementation registered in
    :func:`tokenauth.registry.create_provider`.

    Example::

        ProviderConfig(type="credential", source="env:BILLING_TOKEN")
        ProviderConfig(type="command", command=["gcloud", "auth", "print-access-token"])
    """

    model_config = ConfigDict(extra="allow")

    type: str = Field(description="Provider type: credential, command")
    source: Optional[str] = Field(
        default=None,
        description="Credential source for the credential provider: env:VAR, file:/path, prompt",
    )
    command: Optional[list[str]] = Field(
        default=None, description="argv of a command printing a token to stdout"
    )
    token_type: Optional[str] = Field(
        default=None, description="Authorization scheme, defaults to Bearer"
    )
    expires_in: Optional[float] = Field(
        default=None, description="Cache lifetime in seconds when the source has none"
    )
    timeout: float = Field(default=30.0, description="Command timeout in seconds")
    refresh_margin: float = Field(
        default=30.0, description="Seconds before expiry at which a token is refetched"
    )


class RequestConfig(BaseModel):
    """HTTP request settings for a target."""

    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class TargetConfig(BaseModel):
    """A named API target bound to exactly one token provider.

    Example::

        TargetConfig(
            name="billing",
            base_url="https://billing.example.com",
            provider=ProviderConfig(type="credential", source="env:BILLING_TOKEN"),
        )
    """

    name: str = Field(description="Target name used to look up its provider")
    base_url: Optional[str] = Field(default=None, description="Base URL of the API")
    provider: ProviderConfig
    request: RequestConfig = Field(default_factory=RequestConfig)


class GlobalConfig(BaseModel):
    """Top-level configuration file contents.

    ``targets`` is keyed by target name.  Entries may omit ``name``; it is
    filled in from the key by :func:`tokenauth.config.load_config`.
    """

    default_target: Optional[str] = None
    targets: dict[str, TargetConfig] = Field(default_factory=dict)

"""Token provider backed by a credential source descriptor.

The source is re-resolved on every fetch, so a token rotated in the
environment or on disk is picked up the next time the cache is invalidated
(for example after the server answers 401).
"""

from __future__ import annotations

from typing import Optional

from tokenauth.config import resolve_credential
from tokenauth.models import TokenResult
from tokenauth.providers.base import TokenProvider, coerce_token


class CredentialSourceProvider(TokenProvider):
    """Read a token from ``env:VAR``, ``file:/path`` or ``prompt``.

    Args:
        source: Credential source descriptor understood by
            :func:`~tokenauth.config.resolve_credential`.
        token_type: Authorization scheme, ``Bearer`` when omitted.
        expires_in: Optional cache lifetime in seconds.
        refresh_margin: See :class:`~tokenauth.providers.base.TokenProvider`.
    """

    def __init__(
        self,
        source: str,
        token_type: Optional[str] = None,
        expires_in: Optional[float] = None,
        refresh_margin: float = 30.0,
    ) -> None:
        super().__init__(refresh_margin=refresh_margin)
        self._source = source
        self._token_type = token_type
        self._expires_in = expires_in

    @property
    def provider_type(self) -> str:
        return "credential"

    @property
    def source(self) -> str:
        return self._source

    def request_token(self) -> TokenResult:
        value = resolve_credential(self._source)
        return coerce_token(value, self._token_type, self._expires_in)

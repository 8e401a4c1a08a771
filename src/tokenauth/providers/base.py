"""Abstract base class for token providers.

A :class:`TokenProvider` is the credential source bound to a
:class:`~tokenauth.handler.TokenAuth` interceptor.  It owns the cached
:class:`~tokenauth.models.TokenResult` for one API target and is shared by
every request in flight against that target, so all of its state changes are
synchronised here rather than in the interceptor.

Fetches are single-flight: when the cache is empty or expired, the first
caller takes the fetch lock and calls :meth:`TokenProvider.request_token`
(or :meth:`TokenProvider.arequest_token`); callers queued behind it re-check
the cache after acquiring the lock and reuse the freshly fetched token.
Sync and async callers use separate locks, so one fetch per flavour can run
at a time.

Invalidation is compare-and-clear: :meth:`TokenProvider.clear_token` called
with the token a server rejected only drops the cache if it still holds that
token.  When several requests get a 401 for the same token at once, the first
one to refresh wins and the others reuse its result.

To implement a new credential source, subclass :class:`TokenProvider`, set
:attr:`~TokenProvider.provider_type`, and implement
:meth:`~TokenProvider.request_token`.  Override
:meth:`~TokenProvider.arequest_token` when the source has a native async
path; the default runs :meth:`~TokenProvider.request_token` in a worker
thread.

See Also:
    :mod:`tokenauth.registry` for provider registration and lookup.
"""

from __future__ import annotations

import asyncio
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError

from tokenauth.exceptions import TokenRequestError
from tokenauth.models import TokenResult
from tokenauth.output import get_output


def coerce_token(
    value: Any,
    token_type: Optional[str] = None,
    expires_in: Optional[float] = None,
) -> TokenResult:
    """Turn a provider's raw output into a :class:`~tokenauth.models.TokenResult`.

    Accepts a ``TokenResult`` (returned unchanged), a bare token string, or
    a mapping shaped like an OAuth2 token response.  *token_type* and
    *expires_in* fill in fields the value does not carry itself.

    Raises:
        TokenRequestError: If *value* is empty or cannot be interpreted.
    """
    if isinstance(value, TokenResult):
        return value
    if isinstance(value, str):
        value = {"access_token": value.strip()}
    if not isinstance(value, Mapping):
        raise TokenRequestError(
            f"Token provider returned unsupported value of type {type(value).__name__}"
        )
    data = dict(value)
    if data.get("token_type") is None:
        data["token_type"] = token_type
    if data.get("expires_in") is None:
        data["expires_in"] = expires_in
    try:
        return TokenResult.model_validate(data)
    except ValidationError as exc:
        raise TokenRequestError(f"Invalid token response: {exc}") from exc


class TokenProvider(ABC):
    """Caching, thread-safe and task-safe source of access tokens.

    Args:
        refresh_margin: Seconds before a token's expiry at which it is
            treated as expired and refetched.  Only applies to tokens that
            carry ``expires_in``.

    Example::

        class EnvProvider(TokenProvider):
            @property
            def provider_type(self) -> str:
                return "env"

            def request_token(self) -> TokenResult:
                return TokenResult(token=os.environ["API_TOKEN"])
    """

    def __init__(self, refresh_margin: float = 30.0) -> None:
        self._refresh_margin = refresh_margin
        self._token: Optional[TokenResult] = None
        self._state_lock = threading.Lock()
        self._fetch_lock = threading.Lock()
        self._async_fetch_lock: Optional[asyncio.Lock] = None
        self._async_lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    @abstractmethod
    def provider_type(self) -> str:
        """Return the identifier of this provider kind (e.g. ``"command"``)."""
        ...

    @abstractmethod
    def request_token(self) -> TokenResult:
        """Obtain a new token from the underlying source.

        Called only while the fetch lock is held, so implementations do not
        need their own locking.

        Returns:
            A fresh :class:`~tokenauth.models.TokenResult`.

        Raises:
            TokenRequestError: If the source cannot produce a token.
            ConfigError: If the source is misconfigured.
        """
        ...

    async def arequest_token(self) -> TokenResult:
        """Async counterpart of :meth:`request_token`.

        The default implementation runs :meth:`request_token` in a worker
        thread so the event loop is never blocked.
        """
        return await asyncio.to_thread(self.request_token)

    @property
    def cached_token(self) -> Optional[TokenResult]:
        """The currently cached token, or ``None``."""
        with self._state_lock:
            return self._token

    # ------------------------------------------------------------------ #
    # Fetch
    # ------------------------------------------------------------------ #

    def get_token(self) -> TokenResult:
        """Return the cached token, fetching a new one if needed.

        Returns:
            A token that is not known to be expired.
        """
        token = self._valid_token()
        if token is not None:
            return token
        with self._fetch_lock:
            token = self._valid_token()
            if token is None:
                get_output().debug(f"Requesting token from {self.provider_type} provider")
                token = self._store(self.request_token())
            return token

    async def aget_token(self) -> TokenResult:
        """Async counterpart of :meth:`get_token`.

        Concurrent tasks waiting on the same fetch share its result.  A
        cancelled waiter leaves the cache untouched.
        """
        token = self._valid_token()
        if token is not None:
            return token
        async with self._async_lock():
            token = self._valid_token()
            if token is None:
                get_output().debug(f"Requesting token from {self.provider_type} provider")
                token = self._store(await self.arequest_token())
            return token

    # ------------------------------------------------------------------ #
    # Invalidation
    # ------------------------------------------------------------------ #

    def clear_token(self, rejected: Optional[TokenResult] = None) -> None:
        """Drop the cached token so the next fetch requests a new one.

        Args:
            rejected: The token the server refused.  When given and the
                cache already holds a different token, the cache is kept.
        """
        with self._state_lock:
            if (
                rejected is not None
                and self._token is not None
                and self._token.token != rejected.token
            ):
                return
            self._token = None

    async def aclear_token(self, rejected: Optional[TokenResult] = None) -> None:
        """Async counterpart of :meth:`clear_token`."""
        self.clear_token(rejected)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _valid_token(self) -> Optional[TokenResult]:
        with self._state_lock:
            token = self._token
        if token is None or token.is_expired(self._refresh_margin):
            return None
        return token

    def _store(self, token: TokenResult) -> TokenResult:
        with self._state_lock:
            self._token = token
        return token

    def _async_lock(self) -> asyncio.Lock:
        # asyncio.Lock is bound to a single event loop.
        loop = asyncio.get_running_loop()
        with self._state_lock:
            if self._async_fetch_lock is None or self._async_lock_loop is not loop:
                self._async_fetch_lock = asyncio.Lock()
                self._async_lock_loop = loop
            return self._async_fetch_lock

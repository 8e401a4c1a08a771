"""Authorization interceptor -- attaches tokens and retries once on 401.

:class:`TokenAuth` is an :class:`httpx.Auth` flow.  Installed on an
:class:`httpx.Client` or :class:`httpx.AsyncClient` (``auth=...``), it runs
for every request the client sends:

1. Fetch the current token from the bound
   :class:`~tokenauth.providers.base.TokenProvider`.
2. Apply it to the request (``Authorization: <type> <token>`` by default).
3. Send the request and inspect the response.
4. If the response is unauthorized (HTTP 401 by default), invalidate the
   provider's cached token, fetch again, re-apply and send the same request
   once more.  The second response is returned whatever its status.

The three policy steps -- provider resolution, the unauthorized predicate,
and token application -- live on :class:`TokenAuthOptions` and can each be
swapped out independently::

    options = dataclasses.replace(
        TokenAuthOptions(),
        is_unauthorized=lambda response: response is not None
        and response.status_code in (401, 419),
    )
    client = httpx.Client(auth=TokenAuth(registry, "billing", options))

The interceptor holds no mutable state of its own.  Provider and transport
errors propagate unchanged and are never retried, and cancellation is never
turned into a retry.  Invalidation is best-effort: a provider that fails to
clear its cache gets a warning and the retry still fetches a token.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, replace
from typing import Any, AsyncGenerator, Callable, Generator, Optional, Union

import httpx

from tokenauth.exceptions import InvalidUsageError, ProviderNotFoundError
from tokenauth.models import TokenResult
from tokenauth.output import get_output
from tokenauth.providers.base import TokenProvider
from tokenauth.registry import ProviderRegistry, target_name

Resolver = Callable[[Any, Any], Optional[TokenProvider]]
UnauthorizedPredicate = Callable[[Optional[httpx.Response]], Union[bool, Awaitable[bool]]]
TokenApplier = Callable[[httpx.Request, TokenResult], None]


# ------------------------------------------------------------------ #
# Default policy steps
# ------------------------------------------------------------------ #


def resolve_provider(context: Any, target: Any) -> Optional[TokenProvider]:
    """Look *target* up in *context*.

    *context* is a :class:`~tokenauth.registry.ProviderRegistry` or a
    mapping of target names to providers.

    Raises:
        ProviderNotFoundError: If *context* is neither, or the registry has
            no provider for *target*.
    """
    if isinstance(context, ProviderRegistry):
        return context.get(target)
    if isinstance(context, Mapping):
        return context.get(target_name(target))
    raise ProviderNotFoundError(
        f"Cannot resolve a token provider for target '{target_name(target)}' "
        f"from {type(context).__name__}"
    )


def is_unauthorized(response: Optional[httpx.Response]) -> bool:
    """Return True if *response* is exactly HTTP 401.  ``None`` is never unauthorized."""
    return response is not None and response.status_code == 401


def apply_token(request: httpx.Request, token: TokenResult) -> None:
    """Set the request's ``Authorization`` header to ``"<type> <token>"``."""
    request.headers["Authorization"] = token.authorization


@dataclass(frozen=True)
class TokenAuthOptions:
    """Policy steps used by :class:`TokenAuth`.

    Attributes:
        resolver: ``(context, target) -> provider``.  Called once when the
            interceptor is constructed.  Returning ``None`` is a resolution
            failure.
        is_unauthorized: ``response -> bool``, or an awaitable of ``bool``
            for async clients.  Must not modify the response.
        apply_token: ``(request, token) -> None``.  May only modify the
            request's credential carrier.
        reads_response_body: Set when ``is_unauthorized`` inspects the body.
            The flow reads the body before the predicate runs, and the
            caller can still read it afterwards.
    """

    resolver: Resolver = resolve_provider
    is_unauthorized: UnauthorizedPredicate = is_unauthorized
    apply_token: TokenApplier = apply_token
    reads_response_body: bool = False


# ------------------------------------------------------------------ #
# Interceptor
# ------------------------------------------------------------------ #


class TokenAuth(httpx.Auth):
    """httpx auth flow that injects a token and retries once after a 401.

    Args:
        context: Dependency context passed to ``options.resolver``; by
            default a :class:`~tokenauth.registry.ProviderRegistry`.
        target: The API target (name or class) whose provider to bind.
        options: Policy steps.  Defaults to :class:`TokenAuthOptions()`.

    Raises:
        ProviderNotFoundError: If no provider can be bound for *target*.

    Example::

        registry = ProviderRegistry()
        registry.register("billing", CredentialSourceProvider("env:BILLING_TOKEN"))

        with httpx.Client(auth=TokenAuth(registry, "billing")) as client:
            client.get("https://billing.example.com/invoices")
    """

    requires_request_body = True

    def __init__(
        self,
        context: Any,
        target: Any,
        options: Optional[TokenAuthOptions] = None,
    ) -> None:
        self._options = options or TokenAuthOptions()
        self._target = target_name(target)
        provider = self._options.resolver(context, target)
        if provider is None:
            raise ProviderNotFoundError(
                f"No token provider could be resolved for target '{self._target}'"
            )
        self._provider = provider
        self.requires_response_body = self._options.reads_response_body

    @classmethod
    def for_provider(
        cls,
        provider: TokenProvider,
        options: Optional[TokenAuthOptions] = None,
        target: str = "default",
    ) -> TokenAuth:
        """Build an interceptor bound directly to *provider*, without a registry."""
        options = replace(
            options or TokenAuthOptions(),
            resolver=lambda _context, _target: provider,
        )
        return cls(None, target, options)

    @property
    def provider(self) -> TokenProvider:
        """The provider bound at construction."""
        return self._provider

    @property
    def target(self) -> str:
        return self._target

    @property
    def options(self) -> TokenAuthOptions:
        return self._options

    # ------------------------------------------------------------------ #
    # httpx flows
    # ------------------------------------------------------------------ #

    def sync_auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        if self.requires_request_body:
            request.read()
        token = self._provider.get_token()
        self._options.apply_token(request, token)
        response = yield request
        if self.requires_response_body:
            response.read()

        if not self._check_sync(response):
            return

        self._log_retry(request, response)
        try:
            self._provider.clear_token(token)
        except Exception as exc:
            self._warn_invalidate_failed(exc)

        token = self._provider.get_token()
        self._options.apply_token(request, token)
        response = yield request
        if self.requires_response_body:
            response.read()

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        if self.requires_request_body:
            await request.aread()
        token = await self._provider.aget_token()
        self._options.apply_token(request, token)
        response = yield request
        if self.requires_response_body:
            await response.aread()

        result = self._options.is_unauthorized(response)
        if inspect.isawaitable(result):
            result = await result
        if not result:
            return

        self._log_retry(request, response)
        try:
            await self._provider.aclear_token(token)
        except Exception as exc:
            self._warn_invalidate_failed(exc)

        token = await self._provider.aget_token()
        self._options.apply_token(request, token)
        response = yield request
        if self.requires_response_body:
            await response.aread()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _check_sync(self, response: httpx.Response) -> bool:
        result = self._options.is_unauthorized(response)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise InvalidUsageError(
                "An async is_unauthorized predicate requires httpx.AsyncClient"
            )
        return bool(result)

    def _log_retry(self, request: httpx.Request, response: httpx.Response) -> None:
        get_output().debug(
            f"{request.method} {request.url} returned {response.status_code} "
            f"for target '{self._target}', refreshing token and retrying once"
        )

    def _warn_invalidate_failed(self, exc: Exception) -> None:
        get_output().warning(
            f"Could not invalidate token for target '{self._target}': {exc}"
        )

"""Token provider wrapping an application callable."""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Optional

from tokenauth.exceptions import InvalidUsageError
from tokenauth.models import TokenResult
from tokenauth.providers.base import TokenProvider, coerce_token


class FunctionTokenProvider(TokenProvider):
    """Delegate token acquisition to a function.

    The function takes no arguments and returns a
    :class:`~tokenauth.models.TokenResult`, a token string, or a mapping
    shaped like an OAuth2 token response.  It may be a coroutine function;
    those can only be used through :meth:`aget_token`.

    Caching, expiry and single-flight behaviour come from
    :class:`~tokenauth.providers.base.TokenProvider`, so the function is
    only called when a new token is actually needed.

    Example::

        provider = FunctionTokenProvider(lambda: vault.read("api-token"))
    """

    def __init__(
        self,
        func: Callable[[], Any],
        token_type: Optional[str] = None,
        expires_in: Optional[float] = None,
        refresh_margin: float = 30.0,
    ) -> None:
        super().__init__(refresh_margin=refresh_margin)
        self._func = func
        self._token_type = token_type
        self._expires_in = expires_in

    @property
    def provider_type(self) -> str:
        return "function"

    def request_token(self) -> TokenResult:
        if _is_async_callable(self._func):
            raise _sync_misuse()
        value = self._func()
        if inspect.isawaitable(value):
            if inspect.iscoroutine(value):
                value.close()
            raise _sync_misuse()
        return coerce_token(value, self._token_type, self._expires_in)

    async def arequest_token(self) -> TokenResult:
        if _is_async_callable(self._func):
            value = self._func()
        else:
            value = await asyncio.to_thread(self._func)
        if inspect.isawaitable(value):
            value = await value
        return coerce_token(value, self._token_type, self._expires_in)


def _is_async_callable(func: Callable[[], Any]) -> bool:
    while isinstance(func, functools.partial):
        func = func.func
    return inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(
        getattr(func, "__call__", None)
    )


def _sync_misuse() -> InvalidUsageError:
    return InvalidUsageError(
        "Async token function cannot be used with a synchronous client; use httpx.AsyncClient"
    )

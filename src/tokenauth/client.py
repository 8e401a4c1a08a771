"""httpx client factories for configured API targets.

:func:`create_client` and :func:`create_async_client` return ready-to-use
:mod:`httpx` clients whose ``base_url``, timeout and TLS verification come
from a :class:`~tokenauth.models.TargetConfig`, with a
:class:`~tokenauth.handler.TokenAuth` installed as the client's auth flow.

Example::

    config = load_config()
    registry = create_registry(config)
    target = resolve_target(config, "billing")

    with create_client(target, registry) as client:
        response = client.get("/invoices")
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from tokenauth.handler import TokenAuth, TokenAuthOptions
from tokenauth.models import TargetConfig
from tokenauth.registry import ProviderRegistry


def _client_kwargs(
    target: TargetConfig,
    registry: ProviderRegistry,
    options: Optional[TokenAuthOptions],
) -> dict[str, Any]:
    return {
        "base_url": target.base_url or "",
        "timeout": target.request.timeout,
        "verify": target.request.verify_ssl,
        "follow_redirects": True,
        "auth": TokenAuth(registry, target.name, options),
    }


def create_client(
    target: TargetConfig,
    registry: ProviderRegistry,
    options: Optional[TokenAuthOptions] = None,
    **kwargs: Any,
) -> httpx.Client:
    """Create a blocking :class:`httpx.Client` for *target*.

    Args:
        target: The target's configuration.
        registry: Registry holding the target's provider.
        options: Interceptor policy steps, defaults when ``None``.
        **kwargs: Extra keyword arguments for :class:`httpx.Client`
            (e.g. ``transport``); they override the derived settings.

    Raises:
        ProviderNotFoundError: If *registry* has no provider for the target.
    """
    return httpx.Client(**{**_client_kwargs(target, registry, options), **kwargs})


def create_async_client(
    target: TargetConfig,
    registry: ProviderRegistry,
    options: Optional[TokenAuthOptions] = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """Create a non-blocking :class:`httpx.AsyncClient` for *target*.

    Accepts the same arguments as :func:`create_client`.
    """
    return httpx.AsyncClient(**{**_client_kwargs(target, registry, options), **kwargs})

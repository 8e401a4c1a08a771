"""tokenauth -- bearer token injection with one-shot refresh for httpx.

This package provides an :class:`httpx.Auth` flow that attaches an access
token to every outgoing request and, when the server answers
``401 Unauthorized``, invalidates the cached token, fetches a new one and
retries the request exactly once.  Where tokens come from is delegated to
pluggable *token providers* that cache tokens and coalesce concurrent
refreshes.

Typical usage::

    import httpx
    from tokenauth import CredentialSourceProvider, ProviderRegistry, TokenAuth

    registry = ProviderRegistry()
    registry.register("billing", CredentialSourceProvider("env:BILLING_TOKEN"))

    with httpx.Client(auth=TokenAuth(registry, "billing")) as client:
        client.get("https://billing.example.com/invoices")

Modules:
    handler: The :class:`TokenAuth` interceptor and its policy options.
    providers: Token provider base class and built-in providers.
    registry: Target-to-provider registry and config-driven factory.
    client: httpx client factories for configured targets.
    models: Pydantic models (token value and configuration).
    config: XDG-aware configuration loading and credential sources.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"

from tokenauth.exceptions import (  # noqa: E402
    ConfigError,
    InvalidUsageError,
    ProviderNotFoundError,
    TokenAuthError,
    TokenRequestError,
)
from tokenauth.handler import (  # noqa: E402
    TokenAuth,
    TokenAuthOptions,
    apply_token,
    is_unauthorized,
    resolve_provider,
)
from tokenauth.models import TokenResult  # noqa: E402
from tokenauth.providers import (  # noqa: E402
    CommandTokenProvider,
    CredentialSourceProvider,
    FunctionTokenProvider,
    TokenProvider,
)
from tokenauth.registry import ProviderRegistry, create_registry  # noqa: E402

__all__ = [
    "__version__",
    "ConfigError",
    "CommandTokenProvider",
    "CredentialSourceProvider",
    "FunctionTokenProvider",
    "InvalidUsageError",
    "ProviderNotFoundError",
    "ProviderRegistry",
    "TokenAuth",
    "TokenAuthError",
    "TokenAuthOptions",
    "TokenProvider",
    "TokenRequestError",
    "TokenResult",
    "apply_token",
    "create_registry",
    "is_unauthorized",
    "resolve_provider",
]
